#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Area of Applicability estimator.

Runs the two phases of the AOA computation:

- Fit: training normalization statistics, feature weights, training self
  distances and the outlier threshold. Executed once per training set and
  model.
- Score: normalization of a query batch, minimum distances to the training
  set and assembly of DI/AOA. Repeatable against the same fitted state.
"""
from typing import Any, Mapping, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from raster_aoa.aoa.assemble import AOAResult, assemble, valid_rows
from raster_aoa.aoa.distance import (
    QueryDistanceEngine, encode_groups, training_self_distances, weighted_space
)
from raster_aoa.aoa.matrix import FeatureMatrix
from raster_aoa.aoa.models import as_trained_model
from raster_aoa.aoa.normalize import FeatureNormalizer, NormalizationStats
from raster_aoa.aoa.threshold import Threshold, estimate_threshold
from raster_aoa.aoa.weights import validate_weights, weights_from_importance
from raster_aoa.core.config import AOA_CONFIG
from raster_aoa.core.exceptions import NotFittedError
from raster_aoa.core.logging_config import get_module_logger
from raster_aoa.utils.utils import timer

# Initialize logger
logger = get_module_logger(__name__)


class AreaOfApplicability:
    """
    Dissimilarity Index and Area of Applicability of a trained model.

    Parameters
    ----------
    multiplier : float, optional
        IQR multiplier of the outlier fence. If None, uses
        AOA_CONFIG["iqr_multiplier"] (1.5).
    central : str, optional
        'median' or 'mean' self distance used as DI divisor. If None, uses
        AOA_CONFIG["central_value"].
    use_kdtree : bool, optional
        Nearest-neighbour strategy. If None, uses AOA_CONFIG["use_kdtree"].
    n_jobs : int, optional
        Workers for the Score phase. If None, uses PERFORMANCE_CONFIG["n_jobs"].
    chunk_size : int, optional
        Query rows per worker chunk. If None, uses PERFORMANCE_CONFIG["chunk_size"].

    Attributes
    ----------
    feature_names_ : tuple of str
    stats_ : NormalizationStats
    weights_ : dict
        Feature name to weight used in distances.
    groups_ : np.ndarray
        Integer group code per training sample.
    self_distances_ : np.ndarray
        Nearest other-group distance per training sample.
    threshold_ : Threshold
    train_di_ : np.ndarray
        Self distances expressed as DI.
    """

    def __init__(self, multiplier: Optional[float] = None, central: Optional[str] = None,
                 use_kdtree: Optional[bool] = None, n_jobs: Optional[int] = None,
                 chunk_size: Optional[int] = None):
        self.multiplier = AOA_CONFIG.get("iqr_multiplier", 1.5) if multiplier is None else multiplier
        self.central = AOA_CONFIG.get("central_value", "median") if central is None else central
        self.use_kdtree = AOA_CONFIG.get("use_kdtree", True) if use_kdtree is None else use_kdtree
        self.n_jobs = n_jobs
        self.chunk_size = chunk_size

        self.feature_names_: Optional[Tuple[str, ...]] = None
        self.normalizer_: Optional[FeatureNormalizer] = None
        self.weights_ = None
        self.groups_: Optional[np.ndarray] = None
        self.train_weighted_: Optional[np.ndarray] = None
        self.self_distances_: Optional[np.ndarray] = None
        self.threshold_: Optional[Threshold] = None
        self.train_di_: Optional[np.ndarray] = None
        self._group_labels: Optional[list] = None
        self._engine: Optional[QueryDistanceEngine] = None

    @property
    def stats_(self) -> Optional[NormalizationStats]:
        return None if self.normalizer_ is None else self.normalizer_.stats_

    @property
    def is_fitted(self) -> bool:
        return self.threshold_ is not None

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise NotFittedError("AreaOfApplicability must be fitted before scoring")

    @property
    def engine(self) -> QueryDistanceEngine:
        """Query engine over the fitted training set, rebuilt lazily after loading."""
        self._check_fitted()
        if self._engine is None:
            self._engine = QueryDistanceEngine(self.train_weighted_, self.groups_,
                                               use_kdtree=self.use_kdtree)
        return self._engine

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_engine"] = None
        return state

    def _resolve_weights(self, model: Any, weights: Optional[Mapping[str, float]]) -> dict:
        names = self.feature_names_
        if weights is not None:
            if model is not None:
                logger.warning("Both model and explicit weights given; using explicit weights")
            values = validate_weights(weights, names)
            return {name: float(w) for name, w in zip(names, values)}

        trained = as_trained_model(model, names)
        importance = None if trained is None else trained.importance()
        return weights_from_importance(importance, names)

    @timer
    def fit(self, train, groups: Optional[Sequence] = None, model: Any = None,
            weights: Optional[Mapping[str, float]] = None,
            feature_names: Optional[Sequence[str]] = None) -> "AreaOfApplicability":
        """
        Run the Fit phase.

        Parameters
        ----------
        train : FeatureMatrix, pd.DataFrame or array-like
            Training predictors.
        groups : sequence, optional
            Group label (e.g. polygon id) per training sample. Neighbours of
            the same group are ignored for self distances. If None, each
            sample forms its own group.
        model : object, optional
            Anything ``as_trained_model`` resolves: an object with
            ``importance()``, a mapping of scores, or a fitted scikit-learn
            estimator. If None and no weights are given, all features get
            weight 1.
        weights : Mapping[str, float], optional
            Explicit feature weights, used unchanged. Takes precedence over
            ``model``.
        feature_names : sequence of str, optional
            Names for array input.

        Returns
        -------
        AreaOfApplicability
            The fitted estimator.
        """
        matrix = FeatureMatrix.coerce(train, feature_names)
        logger.info(f"Fitting AOA on {matrix.n_samples} training samples "
                    f"with {matrix.n_features} features")

        self._engine = None
        self.feature_names_ = matrix.feature_names

        normalizer = FeatureNormalizer()
        scaled = normalizer.fit_transform(matrix)
        codes = encode_groups(groups, matrix.n_samples)

        resolved = self._resolve_weights(model, weights)
        weight_values = np.array([resolved[name] for name in self.feature_names_])
        train_weighted = weighted_space(scaled, weight_values)

        self_distances = training_self_distances(train_weighted, codes, use_kdtree=self.use_kdtree)
        threshold = estimate_threshold(self_distances, multiplier=self.multiplier,
                                       central=self.central)

        self.normalizer_ = normalizer
        self.weights_ = resolved
        self.groups_ = codes
        self._group_labels = (list(range(matrix.n_samples)) if groups is None
                              else np.unique(np.asarray(groups)).tolist())
        self.train_weighted_ = train_weighted
        self.self_distances_ = self_distances
        self.threshold_ = threshold
        self.train_di_ = self_distances / threshold.divisor

        n_outside = int(np.sum(self_distances > threshold.cutoff))
        logger.info(f"Fit complete: {n_outside} of {matrix.n_samples} training samples "
                    f"lie beyond the cutoff")
        return self

    def _prepare_query(self, query, feature_names, mask) -> Tuple[FeatureMatrix, np.ndarray, np.ndarray]:
        if feature_names is None and not isinstance(query, pd.DataFrame):
            feature_names = self.feature_names_
        matrix = FeatureMatrix.coerce(query, feature_names)
        matrix.check_features(self.feature_names_)

        valid = valid_rows(matrix.values, mask)
        weight_values = np.array([self.weights_[name] for name in self.feature_names_])
        scaled = self.normalizer_.transform(matrix)
        return matrix, valid, weighted_space(scaled[valid], weight_values)

    @timer
    def min_distances(self, query, feature_names: Optional[Sequence[str]] = None,
                      exclude_groups: Optional[Sequence] = None) -> np.ndarray:
        """
        Minimum weighted distance of each finite query row to the training set.

        Parameters
        ----------
        query : FeatureMatrix, pd.DataFrame or array-like
            Query predictors; rows with non-finite values are rejected.
        feature_names : sequence of str, optional
            Names for array input; defaults to the training names.
        exclude_groups : sequence, optional
            Training group label per query row whose samples are skipped.
            Labels must be ones seen during fit.

        Returns
        -------
        np.ndarray
        """
        self._check_fitted()
        matrix, valid, query_weighted = self._prepare_query(query, feature_names, None)
        if not valid.all():
            raise ValueError(f"{int((~valid).sum())} query rows hold non-finite values")

        codes = None
        if exclude_groups is not None:
            codes = self._group_codes(exclude_groups)
        return self.engine.min_distances(query_weighted, exclude_groups=codes,
                                         n_jobs=self.n_jobs, chunk_size=self.chunk_size)

    def _group_codes(self, labels: Sequence) -> np.ndarray:
        self._check_fitted()
        lookup = {label: code for code, label in enumerate(self._group_labels)}
        try:
            return np.array([lookup[label] for label in np.asarray(labels).tolist()])
        except KeyError as e:
            raise ValueError(f"Unknown group label: {e.args[0]}") from e

    @timer
    def score(self, query, mask: Optional[np.ndarray] = None,
              shape: Optional[Tuple[int, ...]] = None,
              feature_names: Optional[Sequence[str]] = None) -> AOAResult:
        """
        Run the Score phase on a query batch.

        Parameters
        ----------
        query : FeatureMatrix, pd.DataFrame or array-like
            Query predictors, one row per raster cell, in the training
            feature order.
        mask : np.ndarray, optional
            Boolean validity per row (True = valid). Rows that are masked
            out or hold NaN/inf values are returned as no-data.
        shape : tuple, optional
            Raster shape to reshape DI and AOA to.
        feature_names : sequence of str, optional
            Names for array input; defaults to the training names.

        Returns
        -------
        AOAResult

        Raises
        ------
        NotFittedError
            If ``fit`` has not completed.
        FeatureMismatch
            If query feature names differ from the training names.
        """
        self._check_fitted()
        if shape is None and mask is not None and np.ndim(mask) > 1:
            shape = np.shape(mask)
        matrix, valid, query_weighted = self._prepare_query(query, feature_names, mask)
        logger.info(f"Scoring {int(valid.sum())} valid of {matrix.n_samples} query rows")

        dist = self.engine.min_distances(query_weighted, n_jobs=self.n_jobs,
                                         chunk_size=self.chunk_size)
        result = assemble(dist, valid, self.threshold_, shape=shape)

        summary = result.summary()
        logger.info(f"{summary['inside_aoa']} of {summary['valid_cells']} valid rows "
                    f"({summary['inside_percentage']:.2f}%) inside the AOA")
        return result

    def fit_score(self, train, query, groups: Optional[Sequence] = None, model: Any = None,
                  weights: Optional[Mapping[str, float]] = None, **score_kwargs) -> AOAResult:
        """Fit on ``train`` and score ``query`` in one call."""
        return self.fit(train, groups=groups, model=model, weights=weights).score(query, **score_kwargs)

    def summary(self) -> dict:
        """Fitted state as plain Python values, suitable for metadata export."""
        self._check_fitted()
        return {
            "feature_names": list(self.feature_names_),
            "n_training_samples": int(self.self_distances_.shape[0]),
            "n_groups": int(len(np.unique(self.groups_))),
            "weights": dict(self.weights_),
            "normalization": self.stats_.as_dict(),
            "threshold": self.threshold_.as_dict(),
        }
