import json
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Optional

from pathway_annotation.errors import UnsupportedPathwayKind

# KEGG /get/ accepts at most 10 identifiers per request
KEGG_GET_LIMIT = 10


class PathwayKind(str, Enum):
    KO = 'KO'
    EC = 'EC'
    METACYC = 'MetaCyc'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for kind in cls:
            if kind.value == value:
                return kind
        raise UnsupportedPathwayKind(value)


@dataclass
class AnnotationConfig:
    pathway: Optional[PathwayKind] = None
    ko_to_kegg: bool = False
    kegg_limit: int = KEGG_GET_LIMIT
    df_size_limit: int = 1000
    significance_threshold: float = 0.05
    max_attempts: Optional[int] = 5
    backoff_min: float = 1.0
    backoff_max: float = 30.0
    backoff_multiplier: float = 1.0
    reference_dir: Optional[Path] = None
    timeout: int = 30

    def __post_init__(self):
        if self.pathway is not None:
            self.pathway = PathwayKind.parse(self.pathway)
        if self.reference_dir is not None:
            self.reference_dir = Path(self.reference_dir)
        self.validate()

    def validate(self):
        if not 1 <= self.kegg_limit <= KEGG_GET_LIMIT:
            raise ValueError(f'kegg_limit must be between 1 and {KEGG_GET_LIMIT}, got {self.kegg_limit}')
        if self.df_size_limit < 1:
            raise ValueError(f'df_size_limit must be positive, got {self.df_size_limit}')
        if not 0 < self.significance_threshold <= 1:
            raise ValueError(f'significance_threshold must be in (0, 1], got {self.significance_threshold}')
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f'max_attempts must be positive or None, got {self.max_attempts}')
        if self.backoff_min < 0 or self.backoff_max < self.backoff_min:
            raise ValueError(f'invalid backoff window: [{self.backoff_min}, {self.backoff_max}]')

    @classmethod
    def from_params(cls, params: dict) -> 'AnnotationConfig':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in params.items() if k in known})


def load_params(filename) -> dict:
    path = Path(filename)
    if not path.exists():
        raise FileNotFoundError(f"Input params file not found: {path}")
    with open(path, 'r') as fh:
        return json.load(fh)
