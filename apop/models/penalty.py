'''
Boundary guard for likelihood models.

When an optimizer proposes parameters outside a model's valid domain the
model does not evaluate its density there. It answers with a barrier value
built from :func:`keep_away`, anchored at the true negated log-likelihood of
a nearby rescue point just inside the domain, and growing exponentially with
the distance from the boundary so that any descent method is pushed back.

The exponential is its own derivative, so the same formula supplies the
barrier's gradient on each violated axis: the barrier value, negated on the
lower-bound side. The rescue point keeps the current value of every axis
that is inside its bound, so on those axes the barrier moves with the rescue
likelihood and its gradient is the rescue gradient scaled by the barrier's
growth factor.

Rescue values are memoized by a :class:`BoundaryGuard`, which belongs to a
single estimation session (one model, one data set). Without a guard the
rescue value is recomputed on every out-of-domain evaluation, so nothing is
ever shared between different data sets or concurrent estimations.
'''

import logging
import math
from typing import TYPE_CHECKING, Dict, Optional, Sequence, Tuple

import numpy as np

from apop.core.exceptions import ConfigurationError, DomainViolation

if TYPE_CHECKING:
    from apop.models.base import Model

logger = logging.getLogger("apop.models.penalty")

# Beyond this distance the barrier continues along its tangent line instead
# of exp(), so it stays finite and strictly increasing for any finite input.
_EXPONENTIAL_RANGE = 50.0
_MAX_VALUE = np.finfo(np.float64).max / 16.0


def keep_away(value: float, limit: float, base: float) -> float:
    """
    Barrier value ``exp(|value - limit|) * base``.

    Args:
        value: The offending parameter (or a distance, with ``limit=0``)
        limit: The boundary of the valid region
        base: Scale of the barrier, normally the rescue likelihood

    Returns:
        The barrier value; it equals ``base`` at the limit and grows
        exponentially away from it
    """
    return math.exp(abs(value - limit)) * base


def keep_away_gradient(value: float, limit: float, base: float) -> float:
    """
    Derivative of :func:`keep_away` with respect to ``value``.

    This is ``sign(value - limit) * keep_away(value, limit, base)``. At the
    limit itself the lower-bound side is used, so the result points back
    into a region bounded from below.
    """
    sign = 1.0 if value > limit else -1.0
    return sign * keep_away(value, limit, base)


def barrier_scale(base: float) -> float:
    """Positive scale for a barrier anchored at a rescue value ``base``."""
    scale = abs(base)
    return scale if scale > 0.0 and math.isfinite(scale) else 1.0


def barrier(distance: float, base: float) -> float:
    """
    Barrier value at ``distance`` outside the domain.

    Equal to ``keep_away(distance, 0, barrier_scale(base))`` up to a distance
    of 50, then continued linearly with matching slope. Values saturate at a
    large finite ceiling.
    """
    scale = barrier_scale(base)
    if distance <= _EXPONENTIAL_RANGE:
        return min(keep_away(distance, 0.0, scale), _MAX_VALUE)
    edge = keep_away(_EXPONENTIAL_RANGE, 0.0, scale)
    return min(edge * (1.0 + distance - _EXPONENTIAL_RANGE), _MAX_VALUE)


def barrier_slope(distance: float, base: float) -> float:
    """Derivative of :func:`barrier` with respect to the distance."""
    scale = barrier_scale(base)
    return min(keep_away(min(distance, _EXPONENTIAL_RANGE), 0.0, scale), _MAX_VALUE)


def barrier_growth(distance: float, base: float) -> float:
    """
    Derivative of :func:`barrier` with respect to ``base``.

    The barrier is ``|base|`` times a factor of the distance, so this is
    that factor signed like ``base``. It is zero where the scale does not
    follow ``base`` (zero or non-finite) and where the barrier has
    saturated at its ceiling.
    """
    if base == 0.0 or not math.isfinite(base) or barrier(distance, base) >= _MAX_VALUE:
        return 0.0
    if distance <= _EXPONENTIAL_RANGE:
        factor = math.exp(distance)
    else:
        factor = math.exp(_EXPONENTIAL_RANGE) * (1.0 + distance - _EXPONENTIAL_RANGE)
    return math.copysign(factor, base)


class BoundaryGuard:
    """
    Per-session memo of rescue likelihoods.

    A guard is bound to one model and one data set. Rescue values are keyed
    by the rescue point, so different rescue points never share a value.

    Attributes:
        model: The model being estimated
        data: The data set of the session
        hits: Number of rescue lookups answered from the memo
        misses: Number of rescue values computed
    """

    def __init__(self, model: "Model", data: np.ndarray) -> None:
        self.model = model
        self.data = data
        self.hits = 0
        self.misses = 0
        self._values: Dict[Tuple[float, ...], float] = {}

    def __len__(self) -> int:
        return len(self._values)

    def belongs_to(self, model: "Model", data: np.ndarray) -> bool:
        if model is not self.model:
            return False
        if data is self.data:
            return True
        return data.shape == self.data.shape and bool(np.array_equal(data, self.data))

    def rescue(self, point: Sequence[float]) -> float:
        """Negated log-likelihood at ``point``, computed once per session."""
        key = tuple(float(v) for v in point)
        try:
            value = self._values[key]
        except KeyError:
            value = self.model.interior_value(np.array(key), self.data)
            self._values[key] = value
            self.misses += 1
            logger.debug(f"{self.model.name}: rescue value at {key} is {value:.6g}")
        else:
            self.hits += 1
        return value

    def clear(self) -> None:
        self._values.clear()
        self.hits = 0
        self.misses = 0


def rescue_value(model: "Model", data: np.ndarray, violation: DomainViolation,
                 guard: Optional[BoundaryGuard] = None) -> float:
    """
    Rescue likelihood for a domain violation.

    Raises:
        ConfigurationError: If ``guard`` belongs to another model or data set
    """
    if guard is None:
        return model.interior_value(np.asarray(violation.rescue_point, dtype=np.float64), data)
    if not guard.belongs_to(model, data):
        raise ConfigurationError(
            "Boundary guard belongs to a different estimation session",
            setting="guard",
            issue=f"guard is bound to {guard.model.name}, called with {model.name}"
        )
    return guard.rescue(violation.rescue_point)


def penalty_value(model: "Model", data: np.ndarray, violation: DomainViolation,
                  guard: Optional[BoundaryGuard] = None) -> float:
    """Barrier value substituted for the negated log-likelihood."""
    return barrier(violation.distance, rescue_value(model, data, violation, guard))


def penalty_gradient(model: "Model", data: np.ndarray, beta: np.ndarray,
                     violation: DomainViolation,
                     guard: Optional[BoundaryGuard] = None) -> np.ndarray:
    """
    Gradient of the barrier with respect to ``beta``.

    Each violated axis gets the barrier slope, negated because every bound
    is a lower bound: moving the parameter up shortens the distance. Axes
    inside their bounds carry into the rescue point unchanged, so they get
    the model's gradient at the rescue point times :func:`barrier_growth`.
    """
    base = rescue_value(model, data, violation, guard)
    gradient = np.zeros(beta.shape[0], dtype=np.float64)

    growth = barrier_growth(violation.distance, base)
    if growth != 0.0 and len(violation.violated) < beta.shape[0] and model.has_gradient:
        rescue_point = np.asarray(violation.rescue_point, dtype=np.float64)
        gradient += growth * model._interior_gradient(rescue_point, data)

    slope = barrier_slope(violation.distance, base)
    for index, limit in zip(violation.violated, violation.limits):
        gradient[index] = slope if beta[index] > limit else -slope
    return np.clip(gradient, -_MAX_VALUE, _MAX_VALUE)
