import logging
from pathlib import Path

import polars as pl

from pathway_annotation.config import PathwayKind
from pathway_annotation.query.query_reference import QueryReferenceABC, build_reference_index

logger = logging.getLogger(__name__)


class QueryReferenceLocal(QueryReferenceABC):
    """
    Reference tables stored as ``<kind>_reference.tsv`` or ``<kind>_reference.parquet``
    under ``root``, each with at least an ``id`` and a ``description`` column.
    """

    def __init__(self, root):
        self.root = Path(root)
        self._cache = {}

    def path_reference(self, kind: PathwayKind) -> Path:
        for suffix in ('.parquet', '.tsv'):
            p = self.root / f'{kind.value}_reference{suffix}'
            if p.exists():
                return p
        raise FileNotFoundError(f'{kind.value} reference not found in {self.root}')

    def scan(self, kind: PathwayKind) -> pl.LazyFrame:
        p = self.path_reference(kind)
        if p.suffix == '.parquet':
            return pl.scan_parquet(p)
        return pl.scan_csv(p, separator='\t', infer_schema_length=0)

    def lookup(self, kind):
        kind = PathwayKind.parse(kind)
        if kind not in self._cache:
            logger.info(f'Loading {kind.value} reference data...')
            df = self.scan(kind).collect()
            for col in ('id', 'description'):
                if col not in df.columns:
                    raise ValueError(f'{kind.value} reference is missing column {col!r}')
            self._cache[kind] = build_reference_index(df.iter_rows(named=True))
        return self._cache[kind]
