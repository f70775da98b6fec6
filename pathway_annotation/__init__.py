from .config import AnnotationConfig, PathwayKind
from .annotate import annotate_features
from .significance import select_significant
from .extract import ABSENT, RemoteEntry, safe_field
from .enrichment import KeggEnrichment
from .pipeline import pathway_annotation

__all__ = [
    'AnnotationConfig',
    'PathwayKind',
    'annotate_features',
    'select_significant',
    'ABSENT',
    'RemoteEntry',
    'safe_field',
    'KeggEnrichment',
    'pathway_annotation',
]
