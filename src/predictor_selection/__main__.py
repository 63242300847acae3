#!/usr/bin/env python3
"""
Predictor selection command line.

Usage:
    python -m src.predictor_selection samples.csv -k 5 --output-dir results/
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .config import SelectionConfig
from .data.sample_table import load_predictor_samples
from .exceptions import InvalidArgument, MalformedMatrix
from .statistical.selection_engine import PredictorSelectionEngine

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Multicollinearity screening and least-correlated predictor selection'
    )
    parser.add_argument('samples', help='CSV table of sampled predictor values (one column per raster)')
    parser.add_argument('-k', '--subset-size', type=int, help='Number of predictors to select')
    parser.add_argument('--k-range', type=int, nargs=2, metavar=('MIN', 'MAX'),
                        help='Search every subset size in [MIN, MAX]')
    parser.add_argument('--variables', nargs='+', help='Predictor columns to analyse (default: all numeric)')
    parser.add_argument('--correlation-threshold', type=float, help='|r| above which predictors are collinear')
    parser.add_argument('--vif-threshold', type=float, help='Maximum VIF kept by stepwise filtering')
    parser.add_argument('--vif-cor', action='store_true', help='Use correlation-driven VIF filtering')
    parser.add_argument('--pca-variance', type=float, help='Cumulative variance retained by PCA')
    parser.add_argument('--nodata', type=float, nargs='+', help='Raster nodata values to drop')
    parser.add_argument('--config', help='JSON file with SelectionConfig fields')
    parser.add_argument('--output-dir', help='Directory for detailed result files')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging verbosity')
    return parser


def config_from_args(args: argparse.Namespace) -> SelectionConfig:
    """Command-line values override the JSON config, which overrides defaults."""
    config = SelectionConfig.from_json(args.config) if args.config else SelectionConfig()

    overrides = {
        'subset_size': args.subset_size,
        'subset_size_range': tuple(args.k_range) if args.k_range else None,
        'variables': args.variables,
        'correlation_threshold': args.correlation_threshold,
        'vif_threshold': args.vif_threshold,
        'pca_variance_threshold': args.pca_variance,
        'nodata_values': args.nodata,
        'output_dir': args.output_dir,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.vif_cor:
        overrides['use_vif_cor'] = True

    return replace(config, **overrides).validate()


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = config_from_args(args)
        samples = load_predictor_samples(args.samples)
        engine = PredictorSelectionEngine(config).fit(samples)
    except (InvalidArgument, MalformedMatrix, FileNotFoundError) as e:
        logger.error(f"Predictor selection failed: {e}")
        return 2

    for line in engine.get_report_lines():
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
