#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration settings for the area of applicability pipeline.

This module centralizes all configuration parameters used across the AOA
modules, making it easier to modify settings in one place.
"""
from typing import Dict, Any, Optional
from pathlib import Path
import yaml

# General configuration
DEFAULT_NODATA_VALUE: float = -9999.0
CHUNK_SIZE: int = 50000  # Query rows per worker chunk
N_JOBS: int = -1         # Number of parallel jobs (-1 = all cores)

# Path configuration
PROJECT_ROOT: Path = Path(__file__).parent.absolute()
DEFAULT_OUTPUT_DIR: Path = Path.cwd() / "output"

# Area of applicability configuration
AOA_CONFIG: Dict[str, Any] = {
    "iqr_multiplier": 1.5,       # Outlier fence: Q3 + k * IQR
    "central_value": "median",   # Options: 'median', 'mean'
    "std_tolerance": 1e-12,      # Features with std below this are treated as constant
    "use_kdtree": True,          # False = brute-force pairwise distances
}

# Performance tuning
PERFORMANCE_CONFIG: Dict[str, Any] = {
    "use_parallel": True,
    "n_jobs": N_JOBS,
    "chunk_size": CHUNK_SIZE,
    "prefer": "threads",  # Options: 'threads', 'processes'
}

# Export configuration
EXPORT_CONFIG: Dict[str, Any] = {
    "compress_output": False,    # Compress output CSV
    "export_metadata": True,     # Export metadata alongside results
    "metadata_format": "json",   # Options: 'json', 'yaml'
    "chunk_export": True,        # Export in chunks for large rasters
    "chunk_size": 100000,        # Rows per chunk when exporting
}

# Logging configuration
LOGGING_CONFIG: Dict[str, Any] = {
    "level": "INFO",  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    "log_to_file": False,
    "log_file": DEFAULT_OUTPUT_DIR / "aoa.log",
    "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

_SECTIONS: Dict[str, Dict[str, Any]] = {
    "aoa": AOA_CONFIG,
    "performance": PERFORMANCE_CONFIG,
    "export": EXPORT_CONFIG,
    "logging": LOGGING_CONFIG,
}


def load_config(path: Optional[str]) -> Dict[str, Dict[str, Any]]:
    """
    Override configuration sections from a YAML file.

    The file holds top-level keys ``aoa``, ``performance``, ``export`` and
    ``logging``; each maps to a dictionary of settings that are merged into
    the corresponding module-level dictionary in place.

    Parameters
    ----------
    path : str, optional
        Path to the YAML file. If None, nothing is changed.

    Returns
    -------
    dict
        Mapping of section name to the (updated) configuration dictionary.
    """
    if path is None:
        return _SECTIONS

    with open(path, "r") as f:
        overrides = yaml.safe_load(f) or {}

    if not isinstance(overrides, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    for section, values in overrides.items():
        if section not in _SECTIONS:
            raise ValueError(
                f"Unknown configuration section '{section}', "
                f"expected one of {sorted(_SECTIONS)}"
            )
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")
        _SECTIONS[section].update(values)

    return _SECTIONS
