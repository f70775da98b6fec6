from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping

from pathway_annotation.config import PathwayKind


def build_reference_index(rows: Iterable[Mapping[str, Any]], id_column='id') -> Dict[str, Dict[str, Any]]:
    """Map id -> row, keeping the first row seen for each id."""
    index = {}
    for row in rows:
        _id = row.get(id_column)
        if _id is not None and _id not in index:
            index[_id] = dict(row)
    return index


class QueryReferenceABC(ABC):

    @abstractmethod
    def lookup(self, kind: PathwayKind) -> Dict[str, Dict[str, Any]]:
        """Return the reference of the given kind as id -> descriptive fields."""
        raise NotImplementedError


class QueryReferenceMemory(QueryReferenceABC):

    def __init__(self, tables: Mapping[Any, Iterable[Mapping[str, Any]]]):
        self.indexes = {PathwayKind.parse(kind): build_reference_index(rows) for kind, rows in tables.items()}

    def lookup(self, kind):
        kind = PathwayKind.parse(kind)
        if kind not in self.indexes:
            raise KeyError(f'no {kind.value} reference loaded')
        return self.indexes[kind]
