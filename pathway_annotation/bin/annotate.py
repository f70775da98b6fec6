import os
import logging
import argparse
from pathlib import Path

import pandas as pd

from pathway_annotation.config import AnnotationConfig, load_params
from pathway_annotation.pipeline import pathway_annotation


def build_parser():
    parser = argparse.ArgumentParser(
        description="Annotate PICRUSt2 outputs or DAA results with KO / EC / MetaCyc descriptions"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="Path to a PICRUSt2 export (.tsv, .txt or .csv)")
    source.add_argument("--daa-results", help="Path to a tab separated DAA results table")
    parser.add_argument("--pathway", help="KO, EC or MetaCyc")
    parser.add_argument("--ko-to-kegg", action="store_true", default=None,
                        help="Query KEGG for pathway details of significant KO features")
    parser.add_argument("--kegg-limit", type=int, help="KEGG ids per request (max 10)")
    parser.add_argument("--df-size-limit", type=int, help="Maximum significant rows sent to KEGG")
    parser.add_argument("--max-attempts", type=int, help="Attempts per KEGG request before giving up")
    parser.add_argument("--reference-dir", help="Folder with <kind>_reference.tsv tables")
    parser.add_argument("--params", help="Path to input params JSON file")
    parser.add_argument("--output", required=True, help="Output TSV path")
    return parser


def build_config(args) -> AnnotationConfig:
    params = load_params(args.params) if args.params else {}
    overrides = {
        'pathway': args.pathway,
        'ko_to_kegg': args.ko_to_kegg,
        'kegg_limit': args.kegg_limit,
        'df_size_limit': args.df_size_limit,
        'max_attempts': args.max_attempts,
        'reference_dir': args.reference_dir,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return AnnotationConfig.from_params(params)


def main(argv=None):
    logging.basicConfig(format='%(created)s %(levelname)s: %(message)s',
                        level=logging.INFO)
    args = build_parser().parse_args(argv)
    config = build_config(args)

    daa_results_df = None
    if args.daa_results:
        if not os.path.exists(args.daa_results):
            raise FileNotFoundError(f"DAA results file not found: {args.daa_results}")
        daa_results_df = pd.read_csv(args.daa_results, sep='\t')

    df = pathway_annotation(file=args.file, daa_results_df=daa_results_df, config=config)

    output = Path(args.output)
    df.to_csv(output, sep='\t', index=False)
    logging.getLogger(__name__).info(f'wrote {len(df)} rows to {output}')
    return output


if __name__ == "__main__":
    main()
