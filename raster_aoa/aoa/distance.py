#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Weighted nearest-neighbour distances.

Distances are weighted Euclidean, ``sqrt(sum_f w_f * (x_f - y_f)^2)``,
computed as plain Euclidean distances after scaling every standardized
feature by ``sqrt(w_f)``. This module builds the training self-distance
distribution (nearest neighbour outside a sample's own group) and the
query-to-training minimum distances.
"""
from typing import Optional
import numpy as np
from scipy.spatial import cKDTree
from scipy.spatial.distance import cdist

from raster_aoa.core.config import AOA_CONFIG, PERFORMANCE_CONFIG
from raster_aoa.core.exceptions import DegenerateTrainingSet, MalformedTrainingData
from raster_aoa.core.logging_config import get_module_logger
from raster_aoa.utils.utils import timer, chunk_slices, parallel_apply

# Initialize logger
logger = get_module_logger(__name__)

# Rows per block in the brute-force path
_BRUTE_BLOCK = 2048


def weighted_space(scaled: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Map standardized values into the space where Euclidean distance equals
    the weighted distance.

    Parameters
    ----------
    scaled : np.ndarray
        Standardized values, shape (n_samples, n_features).
    weights : np.ndarray
        Non-negative weights, shape (n_features,).

    Returns
    -------
    np.ndarray
        ``scaled * sqrt(weights)``.
    """
    return scaled * np.sqrt(weights)


def encode_groups(groups, n_samples: int) -> np.ndarray:
    """
    Convert group labels to integer codes.

    Without labels every sample is its own group, so only the sample
    itself is excluded from its neighbour search.
    """
    if groups is None:
        return np.arange(n_samples)

    labels = np.asarray(groups)
    if labels.ndim != 1 or labels.shape[0] != n_samples:
        raise MalformedTrainingData(
            f"Expected {n_samples} group labels, got shape {labels.shape}"
        )
    if labels.dtype.kind == "f" and np.isnan(labels).any():
        row = int(np.flatnonzero(np.isnan(labels))[0])
        raise MalformedTrainingData(f"Group label of training sample {row} is NaN",
                                    sample_index=row)
    _, codes = np.unique(labels, return_inverse=True)
    return codes.reshape(-1)


def _nearest_outside_tree(reference: np.ndarray, ref_groups: np.ndarray,
                          points: np.ndarray, point_groups: Optional[np.ndarray],
                          tree: Optional[cKDTree] = None) -> np.ndarray:
    """
    Nearest reference distance for each point, skipping references of the point's group.

    Each group's points are queried with ``k=1`` against a tree built on the
    references outside that group. ``tree`` over all references is reused
    when no group is excluded.
    """
    if point_groups is None:
        if tree is None:
            tree = cKDTree(reference)
        dist, _ = tree.query(points, k=1)
        return np.asarray(dist, dtype=np.float64)

    out = np.full(points.shape[0], np.inf)
    for group in np.unique(point_groups):
        rows = np.flatnonzero(point_groups == group)
        complement = reference[ref_groups != group]
        if complement.shape[0] == 0:
            # Group covers every reference
            continue
        dist, _ = cKDTree(complement).query(points[rows], k=1)
        out[rows] = dist
    return out


def _nearest_outside_brute(reference: np.ndarray, ref_groups: np.ndarray,
                           points: np.ndarray, point_groups: Optional[np.ndarray]) -> np.ndarray:
    """Same result as the tree search using blocked pairwise distances."""
    out = np.empty(points.shape[0])
    for start in range(0, points.shape[0], _BRUTE_BLOCK):
        stop = min(start + _BRUTE_BLOCK, points.shape[0])
        d = cdist(points[start:stop], reference)
        if point_groups is not None:
            d[point_groups[start:stop, None] == ref_groups[None, :]] = np.inf
        out[start:stop] = d.min(axis=1) if d.shape[1] else np.inf
    return out


@timer
def training_self_distances(train_weighted: np.ndarray, groups: np.ndarray,
                            use_kdtree: Optional[bool] = None) -> np.ndarray:
    """
    Distance from each training sample to its nearest neighbour in another group.

    Parameters
    ----------
    train_weighted : np.ndarray
        Training samples in weighted space, shape (n_samples, n_features).
    groups : np.ndarray
        Integer group code per sample (see ``encode_groups``).
    use_kdtree : bool, optional
        Use a k-d tree (True) or brute-force pairwise distances (False).
        If None, uses AOA_CONFIG["use_kdtree"].

    Returns
    -------
    np.ndarray
        One distance per training sample.

    Raises
    ------
    DegenerateTrainingSet
        If there are fewer than 2 samples or fewer than 2 groups.
    """
    if use_kdtree is None:
        use_kdtree = AOA_CONFIG.get("use_kdtree", True)

    n_samples = train_weighted.shape[0]
    n_groups = len(np.unique(groups))
    if n_samples < 2:
        raise DegenerateTrainingSet(f"Need at least 2 training samples, got {n_samples}")
    if n_groups < 2:
        raise DegenerateTrainingSet(
            f"All {n_samples} training samples belong to a single group; "
            "no sample has a neighbour outside its own group"
        )

    logger.info(f"Computing self distances for {n_samples} training samples in {n_groups} groups")

    if use_kdtree:
        return _nearest_outside_tree(train_weighted, groups, train_weighted, groups)
    return _nearest_outside_brute(train_weighted, groups, train_weighted, groups)


class QueryDistanceEngine:
    """
    Minimum weighted distance from query points to the training set.

    Holds read-only references to the fitted training matrix; scoring is
    split into chunks that run independently on a worker pool.

    Parameters
    ----------
    train_weighted : np.ndarray
        Training samples in weighted space.
    groups : np.ndarray
        Integer group code per training sample.
    use_kdtree : bool, optional
        Use a k-d tree (True) or brute-force pairwise distances (False).
        If None, uses AOA_CONFIG["use_kdtree"].
    """

    def __init__(self, train_weighted: np.ndarray, groups: np.ndarray,
                 use_kdtree: Optional[bool] = None):
        if use_kdtree is None:
            use_kdtree = AOA_CONFIG.get("use_kdtree", True)
        self.train_weighted = train_weighted
        self.groups = groups
        self.use_kdtree = use_kdtree
        self.tree = cKDTree(train_weighted) if use_kdtree else None

    def _query_block(self, points: np.ndarray,
                     exclude_groups: Optional[np.ndarray]) -> np.ndarray:
        if self.tree is not None:
            return _nearest_outside_tree(self.train_weighted, self.groups, points,
                                         exclude_groups, tree=self.tree)
        return _nearest_outside_brute(self.train_weighted, self.groups, points, exclude_groups)

    @timer
    def min_distances(self, query_weighted: np.ndarray,
                      exclude_groups: Optional[np.ndarray] = None,
                      n_jobs: Optional[int] = None,
                      chunk_size: Optional[int] = None,
                      prefer: Optional[str] = None) -> np.ndarray:
        """
        Compute the minimum distance of every query row to the training set.

        Parameters
        ----------
        query_weighted : np.ndarray
            Query rows in weighted space; must be finite.
        exclude_groups : np.ndarray, optional
            Integer group code per query row; training samples of that group
            are ignored for the row. If None, the whole training set is used.
        n_jobs : int, optional
            Worker count. If None, uses PERFORMANCE_CONFIG["n_jobs"].
        chunk_size : int, optional
            Rows per chunk. If None, uses PERFORMANCE_CONFIG["chunk_size"].
        prefer : str, optional
            'threads' or 'processes'. If None, uses PERFORMANCE_CONFIG["prefer"].

        Returns
        -------
        np.ndarray
            One distance per query row, in input order.
        """
        if chunk_size is None:
            chunk_size = PERFORMANCE_CONFIG.get("chunk_size", 50000)

        n_rows = query_weighted.shape[0]
        out = np.empty(n_rows, dtype=np.float64)
        if n_rows == 0:
            return out

        if exclude_groups is not None:
            exclude_groups = np.asarray(exclude_groups).reshape(-1)
            if exclude_groups.shape[0] != n_rows:
                raise ValueError(
                    f"Expected {n_rows} exclusion groups, got {exclude_groups.shape[0]}"
                )

        slices = chunk_slices(n_rows, chunk_size)
        logger.debug(f"Scoring {n_rows} query rows in {len(slices)} chunks")

        def score_chunk(sl: slice) -> np.ndarray:
            excl = None if exclude_groups is None else exclude_groups[sl]
            return self._query_block(query_weighted[sl], excl)

        results = parallel_apply(score_chunk, slices, n_jobs=n_jobs, prefer=prefer)
        for sl, result in zip(slices, results):
            out[sl] = result

        return out
