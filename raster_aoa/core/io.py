#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Input/output handling for the area of applicability pipeline.

This module loads training and query tables, exports DI/AOA results and
metadata, and persists fitted estimators between runs.
"""
import os
import json
import gzip
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import joblib
import numpy as np
import pandas as pd
import yaml

from raster_aoa.core.config import DEFAULT_NODATA_VALUE, EXPORT_CONFIG
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)

PathLike = Union[str, Path]


def load_table(path: PathLike, nodata: Optional[float] = DEFAULT_NODATA_VALUE) -> pd.DataFrame:
    """
    Load a CSV table of samples or raster cells.

    Parameters
    ----------
    path : str or Path
        Path to the CSV file.
    nodata : float, optional
        Value marking missing cells; replaced by NaN. If None, no
        replacement is done.

    Returns
    -------
    pd.DataFrame
        Loaded table.
    """
    logger.info(f"Loading table from {path}")
    df = pd.read_csv(path)
    if nodata is not None:
        numeric = df.select_dtypes(include=[np.number]).columns
        df[numeric] = df[numeric].replace(nodata, np.nan)
    logger.info(f"Loaded {len(df)} rows with {len(df.columns)} columns")
    return df


def split_features(df: pd.DataFrame,
                   feature_names: Optional[Sequence[str]] = None,
                   exclude: Sequence[Optional[str]] = ()) -> Tuple[pd.DataFrame, List[str]]:
    """
    Select predictor columns from a table.

    Parameters
    ----------
    df : pd.DataFrame
        Input table.
    feature_names : sequence of str, optional
        Columns to use, in order. If None, all numeric columns not listed in
        ``exclude`` are used in table order.
    exclude : sequence of str, optional
        Columns that are never predictors (group, label, id columns).

    Returns
    -------
    tuple
        - DataFrame with only the predictor columns
        - List of predictor names
    """
    if feature_names is None:
        skip = {name for name in exclude if name}
        feature_names = [
            col for col in df.select_dtypes(include=[np.number]).columns if col not in skip
        ]
    feature_names = list(feature_names)

    missing = [name for name in feature_names if name not in df.columns]
    if missing:
        raise KeyError(f"Columns not found in table: {missing}")
    return df[feature_names], feature_names


def load_importance(path: PathLike) -> Dict[str, float]:
    """
    Load feature importance from a two-column CSV (feature, importance).

    Parameters
    ----------
    path : str or Path
        CSV file with columns ``feature`` and ``importance``. If those names
        are absent, the first two columns are used.

    Returns
    -------
    dict
        Feature name to importance score.
    """
    df = pd.read_csv(path)
    if {"feature", "importance"}.issubset(df.columns):
        names, scores = df["feature"], df["importance"]
    elif len(df.columns) >= 2:
        names, scores = df.iloc[:, 0], df.iloc[:, 1]
    else:
        raise ValueError(f"Importance file {path} needs a feature and an importance column")

    importance = {str(n): float(s) for n, s in zip(names, scores)}
    logger.info(f"Loaded importance for {len(importance)} features from {path}")
    return importance


def export_results(df: pd.DataFrame, output_path: PathLike) -> None:
    """
    Export results to a CSV file.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame containing results.
    output_path : str or Path
        Path to output CSV file.
    """
    output_path = str(output_path)
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    chunk_size = EXPORT_CONFIG.get("chunk_size", 100000)
    if EXPORT_CONFIG.get("chunk_export", True) and len(df) > chunk_size:
        n_chunks = (len(df) + chunk_size - 1) // chunk_size

        logger.info(f"Exporting {len(df)} rows in {n_chunks} chunks of size {chunk_size}")

        df.iloc[:chunk_size].to_csv(output_path, index=False)
        for i in range(1, n_chunks):
            start_idx = i * chunk_size
            end_idx = min((i + 1) * chunk_size, len(df))
            df.iloc[start_idx:end_idx].to_csv(output_path, mode="a", header=False, index=False)
    else:
        logger.info(f"Exporting {len(df)} rows to {output_path}")
        df.to_csv(output_path, index=False)

    if EXPORT_CONFIG.get("compress_output", False):
        logger.info("Compressing output file")
        with open(output_path, "rb") as f_in:
            with gzip.open(f"{output_path}.gz", "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)

        if EXPORT_CONFIG.get("remove_original_after_compression", False):
            os.remove(output_path)
            logger.info("Removed original file after compression")


def save_metadata(metadata: Dict[str, Any], output_path: PathLike,
                  format: Optional[str] = None) -> Path:
    """
    Save run metadata (fitted state summary, result summary) to disk.

    Parameters
    ----------
    metadata : dict
        JSON-serializable metadata.
    output_path : str or Path
        Output file; its suffix is replaced to match the format.
    format : str, optional
        'json' or 'yaml'. If None, uses EXPORT_CONFIG["metadata_format"].

    Returns
    -------
    Path
        Path of the written file.
    """
    format = (format or EXPORT_CONFIG.get("metadata_format", "json")).lower()
    document = {"timestamp": datetime.now().isoformat(), **metadata}

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == "json":
        output_path = output_path.with_suffix(".json")
        with open(output_path, "w") as f:
            json.dump(document, f, indent=2)
    elif format == "yaml":
        output_path = output_path.with_suffix(".yaml")
        with open(output_path, "w") as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
    else:
        raise ValueError(f"Unsupported metadata format: {format}")

    logger.info(f"Saved metadata to {output_path}")
    return output_path


def save_fitted(estimator: Any, path: PathLike) -> Path:
    """
    Persist a fitted AreaOfApplicability with joblib.

    Parameters
    ----------
    estimator : AreaOfApplicability
        Fitted estimator.
    path : str or Path
        Output file (conventionally ``.joblib``).
    """
    if not getattr(estimator, "is_fitted", False):
        raise ValueError("Only fitted estimators can be saved")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(estimator, path)
    logger.info(f"Saved fitted state to {path}")
    return path


def load_fitted(path: PathLike) -> Any:
    """
    Load an estimator written by ``save_fitted``.

    Parameters
    ----------
    path : str or Path
        File written by ``save_fitted``.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing fitted state file: {path}")
    estimator = joblib.load(path)
    if not getattr(estimator, "is_fitted", False):
        raise ValueError(f"{path} does not hold a fitted estimator")
    logger.info(f"Loaded fitted state from {path}")
    return estimator
