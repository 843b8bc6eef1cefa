'''
Base class for likelihood models.

A :class:`Model` describes one parametric family to the estimation driver:
its name, the size of its parameter vector, the negated log-likelihood of a
data set, and optionally the negated gradient, a fused evaluator computing
both at once, and a random draw.

Subclasses implement the mathematics on parameters that are known to be
inside the valid domain; this class supplies the surrounding contract:

* parameter vectors are checked against :meth:`Model.parameter_count` and a
  mismatch raises :class:`~apop.core.exceptions.DimensionError`;
* parameters outside the domain (or non-finite ones) are answered by the
  boundary guard in :mod:`apop.models.penalty`, never by evaluating the
  density, so the returned value is always finite;
* models hold no mutable state, so one instance serves any number of
  concurrent estimations.
'''

import abc
import logging
from typing import ClassVar, List, Optional, Tuple, Union

import numpy as np

from apop.core.exceptions import (
    ConfigurationError, DataError, DomainViolation, raise_parameter_error
)
from apop.core.types import DataLike, ParameterVector
from apop.core.validation import validate_data_matrix, validate_parameter_vector
from apop.models._numba_core import _column_totals_core, _min_cell_core
from apop.models.penalty import BoundaryGuard, penalty_gradient, penalty_value

logger = logging.getLogger("apop.models.base")

# Distance charged for a NaN or infinite parameter entry
NON_FINITE_DISTANCE = 1000.0

# Returned in place of an overflowing in-domain evaluation
OVERFLOW_VALUE = 1e300

DEFAULT_RESCUE_OFFSET = 1e-6


class Model(abc.ABC):
    """Abstract base class for likelihood models.

    Class attributes:
        name: Identifying name, also the registry key (case-insensitive)
        n_params: Fixed parameter count, or None if it depends on the data
        param_names: Names of the parameters when the count is fixed
        lower_bounds: Lower bound per parameter (None for unbounded)
        open_bounds: Whether the bound itself is outside the domain
        has_gradient: Whether an analytic gradient is provided
        has_fused: Whether the fused evaluator shares work between value and gradient
        has_random_draw: Whether :meth:`random_draw` is implemented
        rescue_offset: Distance inside the bound used for rescue points
    """

    name: ClassVar[str] = "Model"
    n_params: ClassVar[Optional[int]] = None
    param_names: ClassVar[Tuple[str, ...]] = ()
    lower_bounds: ClassVar[Tuple[Optional[float], ...]] = ()
    open_bounds: ClassVar[Tuple[bool, ...]] = ()
    has_gradient: ClassVar[bool] = True
    has_fused: ClassVar[bool] = False
    has_random_draw: ClassVar[bool] = False
    rescue_offset: ClassVar[float] = DEFAULT_RESCUE_OFFSET

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"

    def parameter_count(self, data: Optional[DataLike] = None) -> int:
        """Length of the parameter vector for ``data``.

        Raises:
            ConfigurationError: If the count depends on the data and none is given
        """
        if self.n_params is None:
            raise ConfigurationError(
                f"{self.name} needs data to determine its parameter count",
                setting="data",
                issue="missing"
            )
        return self.n_params

    def parameter_names(self, data: Optional[DataLike] = None) -> List[str]:
        if self.param_names:
            return list(self.param_names)
        return [f"beta[{i}]" for i in range(self.parameter_count(data))]

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        """Model-specific checks of a validated data matrix; override as needed."""
        return data

    def _prepare(self, beta: ParameterVector, data: DataLike) -> Tuple[np.ndarray, np.ndarray]:
        matrix = self.validate_data(validate_data_matrix(data))
        vector = validate_parameter_vector(beta, self.parameter_count(matrix))
        return vector, matrix

    # Domain handling

    def domain_violation(self, beta: np.ndarray) -> Optional[DomainViolation]:
        """
        Describe how far ``beta`` lies outside the valid domain.

        The distance is the sum over violated axes of the distance to the
        bound. NaN and infinite entries count as violated at a fixed large
        distance. The rescue point moves each violated axis to just inside
        its bound and keeps the others.

        Returns:
            A DomainViolation, or None when ``beta`` is inside the domain
        """
        distance = 0.0
        violated = []
        limits = []
        rescue = beta.astype(np.float64, copy=True)

        for index, value in enumerate(beta):
            bound = self.lower_bounds[index] if index < len(self.lower_bounds) else None
            is_open = self.open_bounds[index] if index < len(self.open_bounds) else True
            if not np.isfinite(value):
                distance += NON_FINITE_DISTANCE
            elif bound is None or value > bound or (value == bound and not is_open):
                continue
            else:
                distance += bound - value
            limit = 0.0 if bound is None else bound
            violated.append(index)
            limits.append(limit)
            rescue[index] = limit + self.rescue_offset if bound is not None else 0.0

        if not violated:
            return None

        return DomainViolation(
            self.name, distance, tuple(float(v) for v in rescue), tuple(violated), tuple(limits)
        )

    def interior_value(self, beta: np.ndarray, data: np.ndarray) -> float:
        """Negated log-likelihood at a point known to be inside the domain."""
        value = float(self._negative_loglikelihood(beta, data))
        if not np.isfinite(value):
            return OVERFLOW_VALUE
        return value

    # Optimizer-facing roles

    def log_likelihood(self, beta: ParameterVector, data: DataLike,
                       guard: Optional[BoundaryGuard] = None) -> float:
        """
        Negated log-likelihood of ``data`` at ``beta``.

        Args:
            beta: Parameter vector of length ``parameter_count(data)``
            data: Data matrix in the layout the model expects
            guard: Boundary guard of the current estimation session, if any

        Returns:
            A finite float; the minimizer of this value is the MLE

        Raises:
            DimensionError: If ``beta`` has the wrong length
            DataError: If the data is unusable for this model
        """
        beta, data = self._prepare(beta, data)
        violation = self.domain_violation(beta)
        if violation is not None:
            return penalty_value(self, data, violation, guard)
        return self.interior_value(beta, data)

    def gradient(self, beta: ParameterVector, data: DataLike,
                 guard: Optional[BoundaryGuard] = None) -> np.ndarray:
        """
        Negated gradient of the log-likelihood, one entry per parameter.

        Raises:
            ConfigurationError: If the model has no analytic gradient
            DimensionError: If ``beta`` has the wrong length
        """
        self._require_gradient()
        beta, data = self._prepare(beta, data)
        violation = self.domain_violation(beta)
        if violation is not None:
            return penalty_gradient(self, data, beta, violation, guard)
        return self._interior_gradient(beta, data)

    def fused_value_and_gradient(self, beta: ParameterVector, data: DataLike,
                                 guard: Optional[BoundaryGuard] = None) -> Tuple[float, np.ndarray]:
        """
        Negated log-likelihood and its gradient in one call.

        Agrees with calling :meth:`log_likelihood` and :meth:`gradient`
        separately; models with ``has_fused`` share intermediate work.
        """
        self._require_gradient()
        beta, data = self._prepare(beta, data)
        violation = self.domain_violation(beta)
        if violation is not None:
            return (penalty_value(self, data, violation, guard),
                    penalty_gradient(self, data, beta, violation, guard))

        value, grad = self._negative_loglikelihood_and_gradient(beta, data)
        value = float(value)
        if not np.isfinite(value):
            value = OVERFLOW_VALUE
        return value, self._finite_gradient(grad)

    def random_draw(self, rng: np.random.Generator, params: ParameterVector,
                    size: Optional[Union[int, Tuple[int, ...]]] = None) -> Union[float, np.ndarray]:
        """
        Draw from the distribution at fixed parameters.

        Args:
            rng: NumPy random generator
            params: Parameter vector inside the valid domain
            size: Output shape; None draws a single float

        Raises:
            ConfigurationError: If the model provides no random draws
            ParameterError: If ``params`` lies outside the valid domain
        """
        if not self.has_random_draw:
            raise ConfigurationError(
                f"{self.name} does not provide random draws",
                setting="random_draw",
                issue="not implemented for this model"
            )
        params = validate_parameter_vector(params, self.parameter_count(), "params")
        violation = self.domain_violation(params)
        if violation is not None:
            index = violation.violated[0]
            is_open = self.open_bounds[index] if index < len(self.open_bounds) else True
            raise_parameter_error(
                f"{self.name} draws require parameters inside the valid domain",
                param_name=self.parameter_names()[index],
                param_value=float(params[index]),
                constraint=f"{'>' if is_open else '>='} {violation.limits[0]}"
            )
        return self._draw(rng, params, size)

    # Hooks for subclasses

    @abc.abstractmethod
    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        """Negated log-likelihood for in-domain ``beta``."""

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        raise NotImplementedError(f"{self.name} has no analytic gradient")

    def _negative_loglikelihood_and_gradient(self, beta: np.ndarray,
                                             data: np.ndarray) -> Tuple[float, np.ndarray]:
        return (self._negative_loglikelihood(beta, data),
                self._negative_loglikelihood_gradient(beta, data))

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        raise NotImplementedError(f"{self.name} has no random draw")

    # Helpers

    def _require_gradient(self) -> None:
        if not self.has_gradient:
            raise ConfigurationError(
                f"{self.name} does not provide an analytic gradient",
                setting="gradient",
                issue="use a derivative-free method"
            )

    def _interior_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        return self._finite_gradient(self._negative_loglikelihood_gradient(beta, data))

    @staticmethod
    def _finite_gradient(grad: np.ndarray) -> np.ndarray:
        grad = np.asarray(grad, dtype=np.float64)
        if not np.all(np.isfinite(grad)):
            grad = np.nan_to_num(grad, nan=0.0, posinf=OVERFLOW_VALUE, neginf=-OVERFLOW_VALUE)
        return grad


def rank_table(data: np.ndarray, model_name: str) -> np.ndarray:
    """Check that ``data`` is a table of non-negative counts.

    Raises:
        DataError: If any cell is negative
    """
    if _min_cell_core(data) < 0.0:
        raise DataError(
            f"{model_name} expects a rank table of non-negative counts",
            data_name="data",
            issue="negative cell"
        )
    return data


def rank_weights(data: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Ranks 1..K and the total count observed at each rank."""
    totals = _column_totals_core(data)
    ranks = np.arange(1, totals.shape[0] + 1, dtype=np.float64)
    return ranks, totals
