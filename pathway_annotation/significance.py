import logging

import pandas as pd

from pathway_annotation.errors import NoSignificantFeatures

logger = logging.getLogger(__name__)

SIGNIFICANCE_THRESHOLD = 0.05


def select_significant(daa_results_df: pd.DataFrame,
                       threshold: float = SIGNIFICANCE_THRESHOLD,
                       df_size_limit: int = 1000,
                       p_column: str = 'p_adjust') -> pd.DataFrame:
    """
    Keep rows with ``p_column < threshold``, capped at ``df_size_limit`` rows.

    Rows keep their original index labels. When the cap applies, the kept rows
    are the ``df_size_limit`` smallest p-values in ascending order, ties broken
    by original row order; otherwise the input order is unchanged.
    """
    if p_column not in daa_results_df.columns:
        raise KeyError(f'missing column {p_column!r} in DAA results')

    filtered = daa_results_df[daa_results_df[p_column] < threshold]
    if len(filtered) == 0:
        raise NoSignificantFeatures(threshold)

    if len(filtered) > df_size_limit:
        logger.info("The number of statistically significant pathways exceeds the database's query limit. "
                    "Truncate only the top entries.")
        filtered = filtered.sort_values(p_column, kind='stable').head(df_size_limit)

    logger.info(f'{len(filtered)} of {len(daa_results_df)} features selected (p < {threshold})')
    return filtered.copy()
