import logging
from typing import Any, Mapping

import pandas as pd

from pathway_annotation.config import PathwayKind
from pathway_annotation.extract import ABSENT

logger = logging.getLogger(__name__)


def annotate_features(table: pd.DataFrame,
                      reference: Mapping[str, Mapping[str, Any]],
                      kind,
                      feature_column: str = 'feature',
                      description_field: str = 'description') -> pd.DataFrame:
    """
    Return a copy of ``table`` with a ``description`` column filled from ``reference``.

    ``reference`` maps a feature id to its reference fields (first match per id,
    see ``build_reference_index``). Features without a reference entry get an
    absent description. A new ``description`` column is placed right after
    ``feature_column``; an existing one is overwritten in place.
    """
    kind = PathwayKind.parse(kind)
    if feature_column not in table.columns:
        raise KeyError(f'missing feature column {feature_column!r}')

    logger.info(f'Annotating data with {kind.value} reference...')
    descriptions = []
    for feature in table[feature_column]:
        entry = reference.get(feature) if isinstance(feature, str) else None
        descriptions.append(entry.get(description_field, ABSENT) if entry else ABSENT)

    annotated = table.copy()
    if 'description' in annotated.columns:
        annotated['description'] = pd.Series(descriptions, index=annotated.index, dtype=object)
    else:
        annotated.insert(annotated.columns.get_loc(feature_column) + 1, 'description',
                         pd.Series(descriptions, index=annotated.index, dtype=object))

    n_matched = sum(d is not ABSENT for d in descriptions)
    logger.info(f'{kind.value} annotation completed: {n_matched}/{len(descriptions)} features described')
    if kind == PathwayKind.EC:
        logger.info('Note: EC description may appear to be duplicated due to shared EC numbers '
                    'across different reactions.')
    return annotated
