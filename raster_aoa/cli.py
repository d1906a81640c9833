#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main entry point for the area of applicability pipeline.

This script fits the AOA on a training table, scores query tables (one row
per raster cell) and exports the DI and AOA columns to CSV.
"""
import sys
import time
import argparse
from pathlib import Path
from typing import List, Optional

import pandas as pd

from raster_aoa import __version__
from raster_aoa.aoa.estimator import AreaOfApplicability
from raster_aoa.core.config import DEFAULT_OUTPUT_DIR, load_config
from raster_aoa.core.exceptions import AOAError
from raster_aoa.core.io import (
    export_results, load_fitted, load_importance, load_table,
    save_fitted, save_metadata, split_features
)
from raster_aoa.core.logging_config import setup_logging, get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to a YAML file overriding configuration sections"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-file",
        help="Also write log messages to this file"
    )


def _add_fit_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--train", "-t",
        required=True,
        help="Path to training CSV (one row per training pixel)"
    )
    parser.add_argument(
        "--group-column", "-g",
        help="Column holding the group (e.g. polygon id) of each training pixel"
    )
    parser.add_argument(
        "--exclude-columns",
        default="",
        help="Comma-separated non-predictor columns (labels, ids, coordinates)"
    )
    parser.add_argument(
        "--features", "-f",
        help="Comma-separated predictor columns (default: all remaining numeric columns)"
    )
    parser.add_argument(
        "--importance", "-i",
        help="CSV with feature and importance columns (default: uniform weights)"
    )
    parser.add_argument(
        "--multiplier", "-k",
        type=float,
        help="IQR multiplier of the outlier fence (default: 1.5)"
    )
    parser.add_argument(
        "--central",
        choices=["median", "mean"],
        help="Central self distance used to normalize DI (default: median)"
    )


def _add_score_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--query", "-q",
        required=True,
        help="Path to query CSV (one row per raster cell)"
    )
    parser.add_argument(
        "--output", "-o",
        help="Path to output CSV (default: <query_basename>_aoa.csv)"
    )
    parser.add_argument(
        "--valid-column",
        help="Boolean/0-1 column marking valid cells; other cells are no-data"
    )
    parser.add_argument(
        "--keep-columns",
        default="",
        help="Comma-separated query columns copied to the output (e.g. id,x,y)"
    )
    parser.add_argument(
        "--n-jobs", "-j",
        type=int,
        help="Number of parallel workers (default: from configuration)"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        help="Query rows per worker chunk (default: from configuration)"
    )
    parser.add_argument(
        "--save-metadata", "-m",
        action="store_true",
        help="Save fitted state and result summary next to the output"
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command line parser.

    Returns
    -------
    argparse.ArgumentParser
        Parser with ``fit``, ``score`` and ``run`` subcommands.
    """
    parser = argparse.ArgumentParser(
        description="Compute the dissimilarity index and area of applicability of raster predictions."
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Raster AOA v{__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.required = True

    fit_parser = subparsers.add_parser("fit", help="Fit the AOA on a training table")
    _add_fit_arguments(fit_parser)
    fit_parser.add_argument(
        "--output", "-o",
        help="Path for the fitted state (default: <train_basename>_aoa.joblib)"
    )
    _add_common_arguments(fit_parser)

    score_parser = subparsers.add_parser("score", help="Score a query table with a fitted state")
    score_parser.add_argument(
        "--state", "-s",
        required=True,
        help="Fitted state written by 'fit'"
    )
    _add_score_arguments(score_parser)
    _add_common_arguments(score_parser)

    run_parser = subparsers.add_parser("run", help="Fit on a training table and score a query table")
    _add_fit_arguments(run_parser)
    _add_score_arguments(run_parser)
    run_parser.add_argument(
        "--save-state",
        help="Also save the fitted state to this path"
    )
    _add_common_arguments(run_parser)

    return parser


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def fit_from_args(args: argparse.Namespace) -> AreaOfApplicability:
    """
    Fit an estimator from parsed ``fit``/``run`` arguments.

    Parameters
    ----------
    args : argparse.Namespace
        Command line arguments.

    Returns
    -------
    AreaOfApplicability
        Fitted estimator.
    """
    train_df = load_table(args.train)

    exclude = _split_list(args.exclude_columns) + [args.group_column]
    features = _split_list(args.features) or None
    train_features, feature_names = split_features(train_df, features, exclude=exclude)
    logger.info(f"Using {len(feature_names)} predictors: {feature_names}")

    groups = None
    if args.group_column:
        if args.group_column not in train_df.columns:
            raise KeyError(f"Group column '{args.group_column}' not found in {args.train}")
        groups = train_df[args.group_column].to_numpy()

    importance = load_importance(args.importance) if args.importance else None

    estimator = AreaOfApplicability(
        multiplier=args.multiplier,
        central=args.central,
        n_jobs=getattr(args, "n_jobs", None),
        chunk_size=getattr(args, "chunk_size", None),
    )
    return estimator.fit(train_features, groups=groups, model=importance)


def score_from_args(estimator: AreaOfApplicability, args: argparse.Namespace) -> pd.DataFrame:
    """
    Score the query table named in ``args`` and export the results.

    Parameters
    ----------
    estimator : AreaOfApplicability
        Fitted estimator.
    args : argparse.Namespace
        Command line arguments.

    Returns
    -------
    pd.DataFrame
        Exported output table.
    """
    if getattr(args, "n_jobs", None) is not None:
        estimator.n_jobs = args.n_jobs
    if getattr(args, "chunk_size", None) is not None:
        estimator.chunk_size = args.chunk_size

    if not args.output:
        args.output = str(DEFAULT_OUTPUT_DIR / f"{Path(args.query).stem}_aoa.csv")

    query_df = load_table(args.query)
    query_features, _ = split_features(query_df, list(estimator.feature_names_))

    mask = None
    if args.valid_column:
        mask = query_df[args.valid_column].fillna(0).astype(bool).to_numpy()

    result = estimator.score(query_features, mask=mask)

    output = pd.DataFrame(index=query_df.index)
    for column in _split_list(args.keep_columns):
        output[column] = query_df[column]
    results = result.to_frame()
    output["di"] = results["di"].to_numpy()
    output["aoa"] = results["aoa"].to_numpy()

    export_results(output, args.output)

    if args.save_metadata:
        save_metadata(
            {"fit": estimator.summary(), "result": result.summary(),
             "query": str(args.query), "output": str(args.output)},
            Path(args.output).with_suffix(".json"),
        )
    return output


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to run the AOA pipeline.

    Parameters
    ----------
    argv : list of str, optional
        Arguments; defaults to ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code.
    """
    args = build_parser().parse_args(argv)

    load_config(args.config)
    setup_logging(log_level=args.log_level, log_file=args.log_file)

    start_time = time.time()
    try:
        if args.command == "fit":
            estimator = fit_from_args(args)
            output = args.output or str(DEFAULT_OUTPUT_DIR / f"{Path(args.train).stem}_aoa.joblib")
            save_fitted(estimator, output)
        elif args.command == "score":
            estimator = load_fitted(args.state)
            score_from_args(estimator, args)
        elif args.command == "run":
            estimator = fit_from_args(args)
            if args.save_state:
                save_fitted(estimator, args.save_state)
            score_from_args(estimator, args)
        else:
            logger.error(f"Unknown command: {args.command}")
            return 1
    except (AOAError, KeyError, ValueError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    logger.info(f"Finished '{args.command}' in {time.time() - start_time:.2f} seconds")
    return 0


if __name__ == "__main__":
    sys.exit(main())
