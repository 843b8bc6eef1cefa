'''
Numba-Accelerated Core Functions for the Likelihood Models

Performance-critical reductions over data matrices, compiled with Numba's
@jit decorator. Every log-likelihood evaluation in an optimizer run reduces
the full data set, so these loops run once per iterate.

Functions:
    _column_totals_core: Column sums of a rank (count) table
    _positive_summary_core: Count, sum and sum of logs of the positive cells
    _cell_summary_core: Count and sum of all cells
    _min_cell_core: Smallest cell of a matrix
'''

import logging
from typing import Tuple

import numpy as np
from numba import jit

logger = logging.getLogger("apop.models._numba_core")


@jit(nopython=True, cache=True)
def _column_totals_core(data: np.ndarray) -> np.ndarray:
    """
    Column sums of a rank table.

    Column k of a rank table counts the elements of rank k+1, so the total
    of column k is the weight of log p(k+1) in the log-likelihood.

    Args:
        data: Rank table (observation sets x ranks)

    Returns:
        Total count per rank
    """
    n_rows, n_cols = data.shape
    totals = np.zeros(n_cols)
    for i in range(n_rows):
        for j in range(n_cols):
            totals[j] += data[i, j]
    return totals


@jit(nopython=True, cache=True)
def _positive_summary_core(data: np.ndarray) -> Tuple[float, float, float]:
    """
    Sufficient statistics of the positive cells of a value table.

    Zero cells are skipped (their log is undefined), matching the Gamma
    model's treatment of zeros as missing observations.

    Returns:
        Tuple of (number of positive cells, their sum, sum of their logs)
    """
    n_rows, n_cols = data.shape
    count = 0.0
    total = 0.0
    log_total = 0.0
    for i in range(n_rows):
        for j in range(n_cols):
            x = data[i, j]
            if x > 0.0:
                count += 1.0
                total += x
                log_total += np.log(x)
    return count, total, log_total


@jit(nopython=True, cache=True)
def _cell_summary_core(data: np.ndarray) -> Tuple[float, float]:
    """Number of cells and their sum."""
    n_rows, n_cols = data.shape
    total = 0.0
    for i in range(n_rows):
        for j in range(n_cols):
            total += data[i, j]
    return float(n_rows * n_cols), total


@jit(nopython=True, cache=True)
def _min_cell_core(data: np.ndarray) -> float:
    n_rows, n_cols = data.shape
    smallest = np.inf
    for i in range(n_rows):
        for j in range(n_cols):
            if data[i, j] < smallest:
                smallest = data[i, j]
    return smallest
