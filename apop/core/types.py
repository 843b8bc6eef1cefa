# apop/core/types.py

"""
Core type annotations and enumerations for apop.

Type aliases document the shape contracts used across the estimation code,
and the enumerations give type-safe names to the optimization algorithms and
the termination states an estimation can end in.
"""

from enum import Enum
from typing import Callable, Literal, Union

import numpy as np
import pandas as pd

# NumPy array type aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array
ParameterVector = np.ndarray  # Vector of model parameters

# Anything the driver accepts as a data set
DataLike = Union[np.ndarray, pd.DataFrame]

# Scalar function of a parameter vector
ObjectiveFunction = Callable[[np.ndarray], float]

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
StackPosition = Literal["r", "c"]


class OptimizationAlgorithm(Enum):
    """Optimization algorithms available to the MLE driver.

    The value is the method name understood by ``scipy.optimize.minimize``.
    """
    BFGS = "BFGS"
    CONJUGATE_GRADIENT = "CG"
    NELDER_MEAD = "Nelder-Mead"

    @property
    def uses_gradient(self) -> bool:
        return self is not OptimizationAlgorithm.NELDER_MEAD

    @classmethod
    def from_name(cls, name: Union[str, "OptimizationAlgorithm"]) -> "OptimizationAlgorithm":
        """Resolve a user-facing method name such as ``"bfgs"`` or ``"simplex"``."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("_", "-")
        try:
            return _ALGORITHM_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unknown optimization method: {name!r}") from None


_ALGORITHM_ALIASES = {
    "bfgs": OptimizationAlgorithm.BFGS,
    "variable-metric": OptimizationAlgorithm.BFGS,
    "cg": OptimizationAlgorithm.CONJUGATE_GRADIENT,
    "conjugate-gradient": OptimizationAlgorithm.CONJUGATE_GRADIENT,
    "nelder-mead": OptimizationAlgorithm.NELDER_MEAD,
    "simplex": OptimizationAlgorithm.NELDER_MEAD,
}


class EstimationStatus(Enum):
    """Termination state of a maximum-likelihood estimation."""
    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration_limit"
    FAILURE = "failure"
