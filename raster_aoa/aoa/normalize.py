#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Feature normalization module.

Standardizes every predictor with the mean and standard deviation of the
training set. Query data is always transformed with the training statistics
so that DI values stay comparable between calls.
"""
from dataclasses import dataclass
from typing import Dict, Optional
import numpy as np
from sklearn.preprocessing import StandardScaler

from raster_aoa.aoa.matrix import FeatureMatrix
from raster_aoa.core.config import AOA_CONFIG
from raster_aoa.core.exceptions import MalformedTrainingData, NotFittedError
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


@dataclass(frozen=True, eq=False)
class NormalizationStats:
    """Per-feature training mean and population standard deviation."""
    feature_names: tuple
    mean: np.ndarray
    std: np.ndarray
    constant: np.ndarray

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {"mean": float(m), "std": float(s), "constant": bool(c)}
            for name, m, s, c in zip(self.feature_names, self.mean, self.std, self.constant)
        }


def check_finite(matrix: FeatureMatrix) -> None:
    """
    Reject training data holding NaN or infinite values.

    Raises
    ------
    MalformedTrainingData
        Naming the first offending sample index and feature.
    """
    bad = ~np.isfinite(matrix.values)
    if bad.any():
        row, col = np.argwhere(bad)[0]
        feature = matrix.feature_names[col]
        value = matrix.values[row, col]
        raise MalformedTrainingData(
            f"Training sample {row} has non-finite value {value} for feature '{feature}' "
            f"({int(bad.sum())} non-finite values in total)",
            sample_index=int(row), feature=feature
        )


class FeatureNormalizer:
    """
    Z-score normalizer fitted on training data.

    Parameters
    ----------
    std_tolerance : float, optional
        Features whose training standard deviation is at or below this value
        are treated as constant and mapped to 0 for every row. If None, uses
        AOA_CONFIG["std_tolerance"].
    """

    def __init__(self, std_tolerance: Optional[float] = None):
        if std_tolerance is None:
            std_tolerance = AOA_CONFIG.get("std_tolerance", 1e-12)
        self.std_tolerance = float(std_tolerance)
        self.scaler_: Optional[StandardScaler] = None
        self.stats_: Optional[NormalizationStats] = None

    def fit(self, train: FeatureMatrix) -> "FeatureNormalizer":
        check_finite(train)

        scaler = StandardScaler()
        scaler.fit(train.values)

        std = np.sqrt(scaler.var_)
        constant = std <= self.std_tolerance
        if constant.any():
            names = [n for n, c in zip(train.feature_names, constant) if c]
            logger.warning(f"Constant training features contribute nothing to distances: {names}")

        self.scaler_ = scaler
        self.stats_ = NormalizationStats(
            feature_names=train.feature_names,
            mean=scaler.mean_.copy(),
            std=std,
            constant=constant,
        )
        logger.debug(f"Fitted normalization on {train.n_samples} samples, {train.n_features} features")
        return self

    def transform(self, matrix: FeatureMatrix) -> np.ndarray:
        """
        Standardize a matrix with the training statistics.

        Parameters
        ----------
        matrix : FeatureMatrix
            Training or query matrix with the training feature order.

        Returns
        -------
        np.ndarray
            Standardized values; constant features are 0, NaN stays NaN.
        """
        if self.stats_ is None:
            raise NotFittedError("FeatureNormalizer must be fitted before transform")
        matrix.check_features(self.stats_.feature_names)

        stats = self.stats_
        safe_std = np.where(stats.constant, 1.0, stats.std)
        scaled = (matrix.values - stats.mean) / safe_std
        scaled[:, stats.constant] = np.where(
            np.isnan(scaled[:, stats.constant]), np.nan, 0.0
        )
        return scaled

    def fit_transform(self, train: FeatureMatrix) -> np.ndarray:
        return self.fit(train).transform(train)
