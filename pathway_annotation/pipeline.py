"""
Pathway information annotation of "EC", "KO", "MetaCyc" features.

Two use cases:

1. Annotate a PICRUSt2 abundance export (``file``) with descriptions from the
   local reference of the requested kind.
2. Annotate DAA results (``daa_results_df``). With ``ko_to_kegg`` the
   significant KO features are additionally enriched with KEGG pathway
   name, description, class and map, queried in chunks from KEGG.

=== USAGE ===

    from pathway_annotation import pathway_annotation

    abundance = pathway_annotation(file='pred_metagenome_unstrat.tsv', pathway='KO',
                                   reference_dir='references/')
    kegg = pathway_annotation(daa_results_df=daa_results_df, pathway='KO', ko_to_kegg=True)
"""
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from pathway_annotation.annotate import annotate_features
from pathway_annotation.config import AnnotationConfig, PathwayKind
from pathway_annotation.enrichment import KeggEnrichment
from pathway_annotation.errors import InvalidFileFormat, InvalidInputKind, UnsupportedPathwayKind
from pathway_annotation.progress import TqdmProgress
from pathway_annotation.query.query_kegg import QueryKeggABC
from pathway_annotation.query.query_kegg_rest import QueryKeggREST
from pathway_annotation.query.query_reference import QueryReferenceABC
from pathway_annotation.query.query_reference_local import QueryReferenceLocal
from pathway_annotation.significance import select_significant

logger = logging.getLogger(__name__)

_SEPARATORS = {
    '.txt': '\t',
    '.tsv': '\t',
    '.csv': ',',
}


def read_abundance(file) -> pd.DataFrame:
    path = Path(file)
    sep = _SEPARATORS.get(path.suffix.lower())
    if sep is None:
        raise InvalidFileFormat(
            "Invalid file format. Please input file in .tsv, .txt or .csv format. The best input file format "
            "is the output file from PICRUSt2, specifically 'pred_metagenome_unstrat.tsv'.")
    logger.info(f'Loading {path.suffix} file...')
    abundance = pd.read_csv(path, sep=sep, skipinitialspace=True)
    abundance.columns = [str(c).strip() for c in abundance.columns]
    logger.info(f'{path.suffix} file successfully loaded.')
    return abundance


def _reference_provider(config: AnnotationConfig, reference: Optional[QueryReferenceABC]) -> QueryReferenceABC:
    if reference is not None:
        return reference
    if config.reference_dir is None:
        raise ValueError('reference_dir is required to load local reference tables')
    return QueryReferenceLocal(config.reference_dir)


def pathway_annotation(file=None,
                       pathway=None,
                       daa_results_df: Optional[pd.DataFrame] = None,
                       ko_to_kegg: bool = False,
                       kegg_limit: int = 10,
                       df_size_limit: int = 1000,
                       config: Optional[AnnotationConfig] = None,
                       reference: Optional[QueryReferenceABC] = None,
                       kegg: Optional[QueryKeggABC] = None,
                       progress=None,
                       cancel_event=None,
                       **kwargs) -> pd.DataFrame:
    """
    Annotate a PICRUSt2 export or DAA results.

    Args:
        file: path to a PICRUSt2 export (.tsv, .txt or .csv); takes precedence over ``daa_results_df``
        pathway: one of "KO", "EC", "MetaCyc"
        daa_results_df: DAA results with ``feature`` and ``p_adjust`` columns
        ko_to_kegg: query KEGG for pathway details of the significant features
        kegg_limit: ids per KEGG request, at most 10
        df_size_limit: maximum number of significant rows sent to KEGG
        config: full configuration; overrides the keyword arguments above
        reference: reference provider, defaults to local tables under ``config.reference_dir``
        kegg: remote lookup, defaults to the KEGG REST API
        progress: progress sink for the KEGG chunks, defaults to a tqdm bar
        cancel_event: ``threading.Event`` that stops the KEGG loop when set

    Returns:
        The annotated table. For ``ko_to_kegg`` only the selected significant
        rows are returned, with pathway_name, pathway_description,
        pathway_class and pathway_map columns.
    """
    if config is None:
        config = AnnotationConfig(pathway=pathway, ko_to_kegg=ko_to_kegg, kegg_limit=kegg_limit,
                                  df_size_limit=df_size_limit, **kwargs)
    logger.info('Starting pathway annotation...')

    if file is None and daa_results_df is None:
        raise InvalidInputKind('Please input the picrust2 output or results of pathway_daa daa_results_df')
    if config.pathway is None and (file is not None or not config.ko_to_kegg):
        raise UnsupportedPathwayKind(None)

    if file is not None:
        abundance = read_abundance(file)
        provider = _reference_provider(config, reference)
        return annotate_features(abundance, provider.lookup(config.pathway), config.pathway,
                                 feature_column=abundance.columns[0])

    if not config.ko_to_kegg:
        logger.info('KO to KEGG is set to FALSE. Proceeding with standard workflow...')
        provider = _reference_provider(config, reference)
        return annotate_features(daa_results_df, provider.lookup(config.pathway), config.pathway)

    logger.info('KO to KEGG is set to TRUE. Proceeding with KEGG pathway annotations...')
    if config.pathway not in (None, PathwayKind.KO):
        logger.warning(f'ko_to_kegg expects KO features, got {config.pathway.value}')
    selected = select_significant(daa_results_df,
                                  threshold=config.significance_threshold,
                                  df_size_limit=config.df_size_limit)

    logger.info('We are connecting to the KEGG database to get the latest results, please wait patiently.')
    progress = progress or TqdmProgress()
    engine = KeggEnrichment.from_config(kegg or QueryKeggREST(timeout=config.timeout), config,
                                        progress=progress,
                                        cancel_event=cancel_event)
    try:
        return engine.enrich(selected)
    finally:
        if isinstance(progress, TqdmProgress):
            progress.close()
