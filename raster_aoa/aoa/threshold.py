#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Threshold estimation module.

Derives the outlier cutoff of the training self-distance distribution
(``Q3 + k * IQR``) and the central value that normalizes distances into
the Dissimilarity Index.
"""
from dataclasses import dataclass, asdict
from typing import Dict, Optional
import numpy as np

from raster_aoa.core.config import AOA_CONFIG
from raster_aoa.core.exceptions import DegenerateTrainingSet
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)

CENTRAL_VALUES = ("median", "mean")


@dataclass(frozen=True)
class Threshold:
    """Outlier fence on raw weighted distances and the DI divisor."""
    q1: float
    q3: float
    iqr: float
    multiplier: float
    cutoff: float
    divisor: float
    central: str = "median"

    @property
    def di_cutoff(self) -> float:
        """The cutoff expressed in DI units."""
        return self.cutoff / self.divisor

    def as_dict(self) -> Dict[str, float]:
        result = asdict(self)
        result["di_cutoff"] = self.di_cutoff
        return result


def estimate_threshold(self_distances: np.ndarray,
                       multiplier: Optional[float] = None,
                       central: Optional[str] = None) -> Threshold:
    """
    Compute the outlier fence of the training self distances.

    Parameters
    ----------
    self_distances : np.ndarray
        Nearest other-group distance of each training sample.
    multiplier : float, optional
        IQR multiplier k. If None, uses AOA_CONFIG["iqr_multiplier"] (1.5).
    central : str, optional
        Central value used as DI divisor: 'median' or 'mean'.
        If None, uses AOA_CONFIG["central_value"].

    Returns
    -------
    Threshold
        Quartiles, cutoff and divisor.

    Raises
    ------
    DegenerateTrainingSet
        If the distribution is empty, non-finite, or its central value is 0.
    """
    if multiplier is None:
        multiplier = AOA_CONFIG.get("iqr_multiplier", 1.5)
    if central is None:
        central = AOA_CONFIG.get("central_value", "median")
    multiplier = float(multiplier)

    if multiplier < 0:
        raise ValueError(f"IQR multiplier must be non-negative, got {multiplier}")
    if central not in CENTRAL_VALUES:
        raise ValueError(f"Central value must be one of {CENTRAL_VALUES}, got '{central}'")

    distances = np.asarray(self_distances, dtype=np.float64)
    if distances.size == 0:
        raise DegenerateTrainingSet("No training self distances to estimate a threshold from")
    if not np.all(np.isfinite(distances)):
        raise DegenerateTrainingSet(
            f"{int(np.sum(~np.isfinite(distances)))} training samples have no neighbour "
            "outside their own group"
        )

    q1, q3 = np.percentile(distances, [25, 75])
    iqr = q3 - q1
    cutoff = q3 + multiplier * iqr
    divisor = float(np.median(distances) if central == "median" else np.mean(distances))

    if not divisor > 0:
        raise DegenerateTrainingSet(
            f"The {central} training self distance is {divisor}; DI would be undefined. "
            "Training samples of different groups are identical in feature space"
        )

    threshold = Threshold(
        q1=float(q1), q3=float(q3), iqr=float(iqr), multiplier=multiplier,
        cutoff=float(cutoff), divisor=divisor, central=central
    )
    logger.info(
        f"Threshold: cutoff={threshold.cutoff:.6g} (Q3={threshold.q3:.6g}, IQR={threshold.iqr:.6g}, "
        f"k={multiplier}), {central} divisor={divisor:.6g}, DI cutoff={threshold.di_cutoff:.6g}"
    )
    return threshold
