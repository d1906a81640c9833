#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
DI/AOA assembly.

Packages per-row minimum distances into Dissimilarity Index and Area of
Applicability arrays aligned with the query rows. Rows flagged as no-data
upstream stay no-data (NaN) in both outputs so results can be reshaped back
to the raster grid.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
import pandas as pd

from raster_aoa.aoa.threshold import Threshold
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


@dataclass(eq=False)
class AOAResult:
    """
    Dissimilarity Index and Area of Applicability for a query batch.

    Attributes
    ----------
    di : np.ndarray
        Float DI per query row (or raster cell), NaN for no-data.
    aoa : np.ndarray
        1.0 inside the AOA, 0.0 outside, NaN for no-data.
    valid : np.ndarray
        Boolean mask of rows that were scored.
    threshold : Threshold
        Fitted threshold the AOA was derived from.
    """
    di: np.ndarray
    aoa: np.ndarray
    valid: np.ndarray
    threshold: Threshold

    @property
    def in_aoa(self) -> np.ndarray:
        """Boolean AOA; no-data counts as outside."""
        return self.aoa == 1.0

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.di.shape

    def summary(self) -> dict:
        n_valid = int(self.valid.sum())
        n_inside = int(self.in_aoa.sum())
        return {
            "cells": int(self.di.size),
            "valid_cells": n_valid,
            "inside_aoa": n_inside,
            "inside_percentage": float(n_inside / n_valid * 100) if n_valid else 0.0,
            "di_max": float(np.nanmax(self.di)) if n_valid else None,
            "di_mean": float(np.nanmean(self.di)) if n_valid else None,
        }

    def to_frame(self) -> pd.DataFrame:
        """Flatten into a DataFrame with ``di``, ``aoa`` and ``valid`` columns."""
        return pd.DataFrame({
            "di": self.di.reshape(-1),
            "aoa": self.aoa.reshape(-1),
            "valid": self.valid.reshape(-1),
        })


def valid_rows(values: np.ndarray, mask: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Rows that can be scored: finite in every feature and allowed by ``mask``.

    Parameters
    ----------
    values : np.ndarray
        Raw query values, shape (n_rows, n_features).
    mask : np.ndarray, optional
        Boolean validity per row (True = valid data), any shape with
        n_rows elements.
    """
    valid = np.all(np.isfinite(values), axis=1)
    if mask is not None:
        mask = np.asarray(mask, dtype=bool).reshape(-1)
        if mask.shape[0] != valid.shape[0]:
            raise ValueError(f"Mask has {mask.shape[0]} cells for {valid.shape[0]} query rows")
        valid &= mask
    return valid


def assemble(min_dist: np.ndarray, valid: np.ndarray, threshold: Threshold,
             shape: Optional[Tuple[int, ...]] = None) -> AOAResult:
    """
    Build DI and AOA arrays from distances of the valid rows.

    Parameters
    ----------
    min_dist : np.ndarray
        Minimum training distance for each valid row, in row order.
    valid : np.ndarray
        Boolean mask over all query rows; ``min_dist`` fills its True entries.
    threshold : Threshold
        Fitted cutoff and divisor.
    shape : tuple, optional
        Raster shape to reshape the outputs to; must hold ``valid.size`` cells.

    Returns
    -------
    AOAResult
    """
    valid = np.asarray(valid, dtype=bool).reshape(-1)
    if min_dist.shape[0] != int(valid.sum()):
        raise ValueError(
            f"Got {min_dist.shape[0]} distances for {int(valid.sum())} valid rows"
        )

    di = np.full(valid.shape[0], np.nan)
    aoa = np.full(valid.shape[0], np.nan)
    di[valid] = min_dist / threshold.divisor
    aoa[valid] = (min_dist <= threshold.cutoff).astype(np.float64)

    if shape is not None:
        shape = tuple(shape)
        di = di.reshape(shape)
        aoa = aoa.reshape(shape)
        valid = valid.reshape(shape)

    n_nodata = int(valid.size - valid.sum())
    if n_nodata:
        logger.debug(f"{n_nodata} no-data rows passed through as NaN")

    return AOAResult(di=di, aoa=aoa, valid=valid, threshold=threshold)
