"""
Numerical Differentiation Module

Central finite-difference gradients and Hessians of scalar functions. The
estimation driver uses the Hessian of the negated log-likelihood at the
optimum for the parameter covariance, and the test suite checks every
analytic model gradient against :func:`gradient_2sided`.

Functions:
    gradient_2sided: Compute two-sided numerical gradient of a function
    hessian_2sided: Compute two-sided numerical Hessian of a function
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np

from apop.core.exceptions import raise_dimension_error, raise_numeric_error
from apop.core.types import Matrix, ObjectiveFunction, Vector

logger = logging.getLogger("apop.utils.differentiation")

_EPS = np.finfo(float).eps


def _step_sizes(x: np.ndarray, epsilon: Optional[Union[float, np.ndarray]], power: float) -> np.ndarray:
    if epsilon is None:
        return np.power(_EPS, power) * np.maximum(np.abs(x), 1.0)
    steps = np.broadcast_to(np.asarray(epsilon, dtype=float), x.shape).copy()
    if np.any(steps <= 0):
        raise ValueError("epsilon must be positive")
    return steps


def _as_point(x: Vector) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise_dimension_error(
            "Input must be a 1D vector",
            array_name="x",
            expected_shape="(n,)",
            actual_shape=x.shape
        )
    return x


def _evaluate(func: ObjectiveFunction, point: np.ndarray, args: Tuple, operation: str) -> float:
    value = float(func(point, *args))
    if not np.isfinite(value):
        raise_numeric_error(
            f"Function returned a non-finite value in {operation}",
            operation=operation,
            values=point.copy(),
            error_type="non_finite"
        )
    return value


def gradient_2sided(func: ObjectiveFunction,
                    x: Vector,
                    epsilon: Optional[Union[float, np.ndarray]] = None,
                    args: Tuple = ()) -> Vector:
    """
    Compute two-sided numerical gradient of a function.

    For a function f(x), the gradient is computed as:

    ∂f/∂x_i ≈ [f(x + h_i*e_i) - f(x - h_i*e_i)] / (2*h_i)

    where e_i is the i-th unit vector and h_i the step for coordinate i.

    Args:
        func: Function to differentiate, should take a vector and return a scalar
        x: Point at which to compute the gradient
        epsilon: Step size (scalar or per coordinate). If None, each step is
                 eps**(1/3) scaled by max(|x_i|, 1)
        args: Additional arguments to pass to the function

    Returns:
        Gradient vector of the same shape as x

    Raises:
        DimensionError: If x is not a 1D array
        NumericError: If a function evaluation is NaN or infinite

    Examples:
        >>> import numpy as np
        >>> from apop.utils.differentiation import gradient_2sided
        >>> def f(x): return x[0]**2 + x[1]**2
        >>> np.round(gradient_2sided(f, np.array([1.0, 2.0])), 6)
        array([2., 4.])
    """
    x = _as_point(x)
    steps = _step_sizes(x, epsilon, 1.0 / 3.0)

    n = x.shape[0]
    grad = np.zeros(n, dtype=float)
    x_plus = x.copy()
    x_minus = x.copy()

    for i in range(n):
        x_plus[i] = x[i] + steps[i]
        x_minus[i] = x[i] - steps[i]
        f_plus = _evaluate(func, x_plus, args, "gradient_2sided")
        f_minus = _evaluate(func, x_minus, args, "gradient_2sided")
        grad[i] = (f_plus - f_minus) / (2.0 * steps[i])
        x_plus[i] = x[i]
        x_minus[i] = x[i]

    return grad


def hessian_2sided(func: ObjectiveFunction,
                   x: Vector,
                   epsilon: Optional[Union[float, np.ndarray]] = None,
                   args: Tuple = ()) -> Matrix:
    """
    Compute two-sided numerical Hessian of a function.

    Diagonal elements use

    ∂²f/∂x_i² ≈ [f(x + 2h_i*e_i) - 2f(x) + f(x - 2h_i*e_i)] / (4*h_i²)

    and off-diagonal elements the four-point cross difference

    ∂²f/∂x_i∂x_j ≈ [f(x+h_i e_i+h_j e_j) - f(x+h_i e_i-h_j e_j)
                    - f(x-h_i e_i+h_j e_j) + f(x-h_i e_i-h_j e_j)] / (4*h_i*h_j)

    Args:
        func: Function to differentiate, should take a vector and return a scalar
        x: Point at which to compute the Hessian
        epsilon: Step size (scalar or per coordinate). If None, each step is
                 eps**(1/4) scaled by max(|x_i|, 1)
        args: Additional arguments to pass to the function

    Returns:
        Symmetric Hessian matrix of shape (n, n)

    Raises:
        DimensionError: If x is not a 1D array
        NumericError: If a function evaluation is NaN or infinite
    """
    x = _as_point(x)
    steps = _step_sizes(x, epsilon, 0.25)

    n = x.shape[0]
    hess = np.zeros((n, n), dtype=float)
    f0 = _evaluate(func, x, args, "hessian_2sided")

    point = x.copy()
    for i in range(n):
        point[i] = x[i] + 2.0 * steps[i]
        f_pp = _evaluate(func, point, args, "hessian_2sided")
        point[i] = x[i] - 2.0 * steps[i]
        f_mm = _evaluate(func, point, args, "hessian_2sided")
        point[i] = x[i]
        hess[i, i] = (f_pp - 2.0 * f0 + f_mm) / (4.0 * steps[i] * steps[i])

    for i in range(n):
        for j in range(i + 1, n):
            total = 0.0
            for si, sj, sign in ((1, 1, 1.0), (1, -1, -1.0), (-1, 1, -1.0), (-1, -1, 1.0)):
                point[i] = x[i] + si * steps[i]
                point[j] = x[j] + sj * steps[j]
                total += sign * _evaluate(func, point, args, "hessian_2sided")
            point[i] = x[i]
            point[j] = x[j]
            hess[i, j] = hess[j, i] = total / (4.0 * steps[i] * steps[j])

    return hess
