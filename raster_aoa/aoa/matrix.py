#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Immutable named feature matrix.

Training and query predictors travel through the pipeline as a
``FeatureMatrix``: a read-only 2D float array with one column per named
feature.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from raster_aoa.core.exceptions import FeatureMismatch


@dataclass(frozen=True, eq=False)
class FeatureMatrix:
    """Samples x features, with the feature names in column order.

    Parameters
    ----------
    values : np.ndarray
        2D array of shape (n_samples, n_features). Copied and made read-only.
    feature_names : tuple of str
        One name per column.
    """
    values: np.ndarray
    feature_names: Tuple[str, ...]

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(-1, 1) if len(self.feature_names) == 1 else values.reshape(1, -1)
        if values.ndim != 2:
            raise ValueError(f"Feature matrix must be 2D, got shape {values.shape}")

        names = tuple(str(name) for name in self.feature_names)
        if values.shape[1] != len(names):
            raise ValueError(
                f"Feature matrix has {values.shape[1]} columns but "
                f"{len(names)} feature names were given"
            )
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate feature names: {list(names)}")

        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "feature_names", names)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame,
                       feature_names: Optional[Sequence[str]] = None) -> "FeatureMatrix":
        """Build a matrix from DataFrame columns (all columns if none are named)."""
        if feature_names is None:
            feature_names = list(df.columns)
        missing = [name for name in feature_names if name not in df.columns]
        if missing:
            raise FeatureMismatch(list(feature_names),
                                  [name for name in feature_names if name in df.columns])
        return cls(df[list(feature_names)].to_numpy(dtype=np.float64), tuple(feature_names))

    @classmethod
    def coerce(cls, data: Union["FeatureMatrix", pd.DataFrame, np.ndarray, Any],
               feature_names: Optional[Sequence[str]] = None) -> "FeatureMatrix":
        """Accept a FeatureMatrix, a DataFrame or an array plus names."""
        if isinstance(data, FeatureMatrix):
            return data
        if isinstance(data, pd.DataFrame):
            return cls.from_dataframe(data, feature_names)

        arr = np.asarray(data, dtype=np.float64)
        if feature_names is None:
            n_cols = arr.shape[1] if arr.ndim == 2 else 1
            feature_names = [f"feature_{i + 1}" for i in range(n_cols)]
        else:
            n_cols = None
            if arr.ndim == 2:
                n_cols = arr.shape[1]
            elif arr.ndim == 1 and len(feature_names) > 1:
                # A 1D array is a single row unless there is only one feature
                n_cols = arr.shape[0]
            if n_cols is not None and n_cols != len(feature_names):
                raise FeatureMismatch(list(feature_names),
                                      [f"column_{i + 1}" for i in range(n_cols)])
        return cls(arr, tuple(feature_names))

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @property
    def n_features(self) -> int:
        return self.values.shape[1]

    def check_features(self, expected: Sequence[str]) -> None:
        """Raise FeatureMismatch unless names match ``expected`` exactly, in order."""
        if tuple(expected) != self.feature_names:
            raise FeatureMismatch(expected, self.feature_names)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, columns=list(self.feature_names))
