#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Trained model adapters.

The AOA only needs one capability from a classifier: per-feature importance
scores. ``TrainedModel`` describes that capability; the adapters here
resolve the classifier families produced by the training step.
"""
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, runtime_checkable
import numpy as np

from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


@runtime_checkable
class TrainedModel(Protocol):
    """Anything exposing ``importance() -> mapping of feature to score``, or None."""

    def importance(self) -> Optional[Mapping[str, float]]:
        ...


class ImportanceMapping:
    """Importance scores supplied directly, e.g. read from a table."""

    def __init__(self, scores: Optional[Mapping[str, float]]):
        self.scores = None if scores is None else {str(k): float(v) for k, v in scores.items()}

    def importance(self) -> Optional[Dict[str, float]]:
        return self.scores


class SklearnModel:
    """
    Adapter for fitted scikit-learn estimators.

    Tree ensembles expose ``feature_importances_``; linear models expose
    ``coef_``, whose absolute values are averaged over classes. Estimators
    with neither report no importance.

    Parameters
    ----------
    estimator : object
        Fitted scikit-learn estimator (or pipeline whose last step has
        importance attributes).
    feature_names : Sequence[str], optional
        Names for the importance vector, used only when the estimator was
        fitted without column names (no ``feature_names_in_``).
    """

    def __init__(self, estimator: Any, feature_names: Optional[Sequence[str]] = None):
        self.estimator = estimator
        self.feature_names = feature_names

    def _final_estimator(self) -> Any:
        steps = getattr(self.estimator, "steps", None)
        if steps:
            return steps[-1][1]
        return self.estimator

    def importance(self) -> Optional[Dict[str, float]]:
        est = self._final_estimator()

        if hasattr(est, "feature_importances_"):
            scores = np.asarray(est.feature_importances_, dtype=np.float64)
        elif hasattr(est, "coef_"):
            coef = np.atleast_2d(np.asarray(est.coef_, dtype=np.float64))
            scores = np.abs(coef).mean(axis=0)
        else:
            logger.debug(f"{type(est).__name__} has no importance attributes")
            return None

        # Names the estimator was fitted with win over the caller's order
        names = getattr(self.estimator, "feature_names_in_", None)
        if names is None:
            names = getattr(est, "feature_names_in_", None)
        if names is None:
            names = self.feature_names
        if names is None:
            raise ValueError(
                f"Feature names are required to map importance of {type(est).__name__}"
            )
        names = [str(n) for n in names]
        if len(names) != scores.shape[0]:
            raise ValueError(
                f"{type(est).__name__} reports {scores.shape[0]} importance values "
                f"for {len(names)} feature names"
            )
        return dict(zip(names, scores.tolist()))


def as_trained_model(obj: Any, feature_names: Optional[Sequence[str]] = None) -> Optional[TrainedModel]:
    """
    Resolve a model-like object to a ``TrainedModel``.

    Parameters
    ----------
    obj : object
        None, an object with ``importance()``, a mapping of scores or a
        fitted scikit-learn estimator.
    feature_names : Sequence[str], optional
        Feature names for estimators without ``feature_names_in_``.

    Returns
    -------
    TrainedModel or None
    """
    if obj is None:
        return None
    if isinstance(obj, TrainedModel):
        return obj
    if isinstance(obj, Mapping):
        return ImportanceMapping(obj)
    if hasattr(obj, "predict") or hasattr(obj, "feature_importances_") or hasattr(obj, "coef_"):
        return SklearnModel(obj, feature_names)
    raise TypeError(f"Cannot derive feature importance from {type(obj).__name__}")
