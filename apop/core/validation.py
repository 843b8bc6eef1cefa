# apop/core/validation.py

"""
Validation utilities for apop.

Input checks shared by the models, the estimation driver and the linear
algebra helpers. Each function returns the validated (and, where noted,
converted) input so it can be used inline, and raises the typed errors from
:mod:`apop.core.exceptions` with the offending shapes in their context.
"""

from typing import Any

import numpy as np
import pandas as pd

from apop.core.exceptions import DataError, raise_dimension_error


def validate_data_matrix(data: Any, data_name: str = "data") -> np.ndarray:
    """Convert a data set to a finite two-dimensional float64 array.

    One-dimensional input is treated as a single column, one observation per
    row. pandas objects are converted through their ``to_numpy`` method.

    Args:
        data: Array-like, ``pandas.Series`` or ``pandas.DataFrame``
        data_name: Name of the data for error messages

    Returns:
        np.ndarray: The validated data matrix

    Raises:
        DataError: If the data is empty, non-numeric or not finite
        DimensionError: If the data has more than two dimensions
    """
    if data is None:
        raise DataError(f"{data_name} cannot be None", data_name=data_name, issue="missing")

    if isinstance(data, (pd.DataFrame, pd.Series)):
        data = data.to_numpy()

    try:
        matrix = np.asarray(data, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"{data_name} must be numeric",
            data_name=data_name,
            issue=str(e)
        ) from e

    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    elif matrix.ndim != 2:
        raise_dimension_error(
            f"{data_name} must be 1- or 2-dimensional, got {matrix.ndim} dimensions",
            array_name=data_name,
            expected_shape="2D matrix",
            actual_shape=matrix.shape
        )

    if matrix.size == 0:
        raise DataError(f"{data_name} is empty", data_name=data_name, issue="no observations")

    if not np.all(np.isfinite(matrix)):
        bad = tuple(int(i) for i in np.argwhere(~np.isfinite(matrix))[0])
        raise DataError(
            f"{data_name} contains NaN or infinite values",
            data_name=data_name,
            issue="non-finite values",
            index=bad
        )

    return matrix


def validate_parameter_vector(
    beta: Any,
    expected_length: int,
    vector_name: str = "beta"
) -> np.ndarray:
    """Validate a parameter vector against a model's parameter count.

    The vector is never truncated or padded: any length other than
    ``expected_length`` is an error.

    Returns:
        np.ndarray: A one-dimensional float64 view of ``beta``

    Raises:
        DimensionError: If the length does not match
    """
    vector = np.asarray(beta, dtype=np.float64)
    if vector.ndim == 0:
        vector = vector.reshape(1)
    if vector.ndim != 1 or vector.shape[0] != expected_length:
        raise_dimension_error(
            f"{vector_name} has {vector.size} elements, expected {expected_length}",
            array_name=vector_name,
            expected_shape=(expected_length,),
            actual_shape=vector.shape
        )
    return vector


def validate_vector(vector: Any, vector_name: str = "vector") -> np.ndarray:
    """Convert to a one-dimensional float64 array or raise DimensionError."""
    array = np.asarray(vector, dtype=np.float64)
    if array.ndim != 1:
        raise_dimension_error(
            f"{vector_name} must be 1-dimensional, got {array.ndim} dimensions",
            array_name=vector_name,
            expected_shape="1D vector",
            actual_shape=array.shape
        )
    return array
