#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Importance weighting module.

Turns a model's per-feature importance scores into the multiplicative
weights used by the weighted Euclidean distance.
"""
from typing import Dict, Mapping, Optional, Sequence
import numpy as np

from raster_aoa.core.exceptions import InvalidWeights
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def uniform_weights(feature_names: Sequence[str]) -> Dict[str, float]:
    """Weight of 1 for every feature."""
    return {name: 1.0 for name in feature_names}


def validate_weights(weights: Mapping[str, float],
                     feature_names: Sequence[str]) -> np.ndarray:
    """
    Check weights and return them as an array in feature order.

    Parameters
    ----------
    weights : Mapping[str, float]
        Feature name to weight. Features not listed get weight 0; names
        that are not training features are rejected.
    feature_names : Sequence[str]
        Training feature order.

    Returns
    -------
    np.ndarray
        Weights aligned with ``feature_names``.

    Raises
    ------
    InvalidWeights
        If a weight is negative or non-finite, a name is unknown, or all
        weights are zero.
    """
    unknown = [name for name in weights if name not in feature_names]
    if unknown:
        raise InvalidWeights(f"Weights given for unknown features: {unknown}", feature=unknown[0])

    values = np.zeros(len(feature_names), dtype=np.float64)
    for i, name in enumerate(feature_names):
        if name not in weights:
            continue
        w = float(weights[name])
        if not np.isfinite(w):
            raise InvalidWeights(f"Weight for feature '{name}' is not finite: {w}", feature=name)
        if w < 0:
            raise InvalidWeights(f"Weight for feature '{name}' is negative: {w}", feature=name)
        values[i] = w

    if not np.any(values > 0):
        raise InvalidWeights(
            f"All feature weights are zero for features {list(feature_names)}; "
            "the distance metric would be trivially zero"
        )
    return values


def weights_from_importance(importance: Optional[Mapping[str, float]],
                            feature_names: Sequence[str]) -> Dict[str, float]:
    """
    Rescale importance scores so the largest weight is 1.

    Parameters
    ----------
    importance : Mapping[str, float] or None
        Raw non-negative importance per feature. Features missing from the
        mapping get weight 0. If None, the model exposes no importance and
        every feature gets weight 1.
    feature_names : Sequence[str]
        Training feature order.

    Returns
    -------
    dict
        Feature name to weight, one entry per training feature.
    """
    if importance is None:
        logger.warning("Model exposes no feature importance; using uniform weights of 1")
        return uniform_weights(feature_names)

    extra = [name for name in importance if name not in feature_names]
    if extra:
        logger.debug(f"Ignoring importance for features not in the training matrix: {extra}")
    relevant = {name: importance[name] for name in feature_names if name in importance}

    values = validate_weights(relevant, feature_names)
    values = values / values.max()

    dropped = [name for name, w in zip(feature_names, values) if w == 0]
    if dropped:
        logger.info(f"Features with zero weight are excluded from distances: {dropped}")

    return {name: float(w) for name, w in zip(feature_names, values)}
