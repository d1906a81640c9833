#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility functions for the area of applicability pipeline.

This module provides common utility functions used across the AOA modules,
including timing, chunking of large query matrices and parallel processing.
"""
import numpy as np
import time
import functools
from typing import Callable, Any, List, Optional
from tqdm import tqdm
from joblib import Parallel, delayed

from raster_aoa.core.config import PERFORMANCE_CONFIG
from raster_aoa.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def timer(func: Callable) -> Callable:
    """
    Decorator to time function execution.

    Parameters
    ----------
    func : Callable
        Function to time.

    Returns
    -------
    Callable
        Wrapped function with timing.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        elapsed = time.time() - start_time
        logger.debug(f"Function {func.__name__} took {elapsed:.2f} seconds to run")
        return result
    return wrapper


def chunk_slices(n_rows: int, chunk_size: int) -> List[slice]:
    """
    Split ``n_rows`` rows into contiguous slices of at most ``chunk_size`` rows.

    Parameters
    ----------
    n_rows : int
        Number of rows to cover.
    chunk_size : int
        Maximum rows per slice, must be positive.

    Returns
    -------
    List[slice]
        Disjoint slices covering ``range(n_rows)`` in order.
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")

    n_chunks = max(1, -(-n_rows // chunk_size))
    bounds = np.array_split(np.arange(n_rows), n_chunks)
    return [slice(int(b[0]), int(b[-1]) + 1) for b in bounds if len(b) > 0]


def parallel_apply(
    func: Callable,
    iterable: List[Any],
    n_jobs: Optional[int] = None,
    prefer: Optional[str] = None,
    progress: bool = False,
    **kwargs
) -> List[Any]:
    """
    Apply a function to an iterable in parallel.

    Parameters
    ----------
    func : Callable
        Function to apply.
    iterable : List[Any]
        Items to process.
    n_jobs : int, optional
        Number of jobs. If None, uses PERFORMANCE_CONFIG["n_jobs"].
    prefer : str, optional
        'processes' or 'threads'. If None, uses PERFORMANCE_CONFIG["prefer"].
    progress : bool, optional
        Whether to show a progress bar, by default False.
    **kwargs
        Additional arguments to pass to the function.

    Returns
    -------
    List[Any]
        Results of applying the function to each item, in input order.
    """
    if n_jobs is None:
        n_jobs = PERFORMANCE_CONFIG.get("n_jobs", -1)
    if prefer is None:
        prefer = PERFORMANCE_CONFIG.get("prefer", "threads")

    if not PERFORMANCE_CONFIG.get("use_parallel", True) or n_jobs == 1 or len(iterable) <= 1:
        logger.debug(f"Running {len(iterable)} tasks sequentially")
        if progress:
            iterable = tqdm(iterable, desc=f"Running {func.__name__}")
        return [func(item, **kwargs) for item in iterable]

    logger.debug(f"Running {len(iterable)} tasks in parallel with {n_jobs} jobs")
    results = Parallel(n_jobs=n_jobs, prefer=prefer, verbose=10 if progress else 0)(
        delayed(func)(item, **kwargs) for item in iterable
    )

    return results
