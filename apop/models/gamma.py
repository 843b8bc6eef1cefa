'''
Gamma distribution model.

Every positive cell of the data matrix is one observation; zero cells are
treated as missing. With shape ``a`` and scale ``b`` the log-density of an
observation ``x`` is

    ln G(x; a, b) = -ln Γ(a) - a ln b + (a - 1) ln x - x / b

with partial derivatives

    d/da = -ψ(a) - ln b + ln x
    d/db = -a / b + x / b²

Only the count, sum and sum of logs of the observations enter, so each
evaluation reduces the data once through a Numba kernel.
'''

from typing import Optional, Tuple, Union

import numpy as np
from scipy import special

from apop.core.exceptions import DataError
from apop.models._numba_core import _min_cell_core, _positive_summary_core
from apop.models.base import Model


class Gamma(Model):
    """Gamma distribution with parameters (shape a, scale b)."""

    name = "Gamma"
    n_params = 2
    param_names = ("shape", "scale")
    lower_bounds = (0.0, 0.0)
    open_bounds = (True, True)
    has_random_draw = True

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        if _min_cell_core(data) < 0.0:
            raise DataError(
                "Gamma observations must be non-negative",
                data_name="data",
                issue="negative cell"
            )
        return data

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        a, b = beta
        count, total, log_total = _positive_summary_core(data)
        ll = count * (-special.gammaln(a) - a * np.log(b)) + (a - 1.0) * log_total - total / b
        return -ll

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        a, b = beta
        count, total, log_total = _positive_summary_core(data)
        d_a = count * (-special.digamma(a) - np.log(b)) + log_total
        d_b = -count * a / b + total / (b * b)
        return -np.array([d_a, d_b])

    def _negative_loglikelihood_and_gradient(self, beta: np.ndarray,
                                             data: np.ndarray) -> Tuple[float, np.ndarray]:
        a, b = beta
        count, total, log_total = _positive_summary_core(data)
        log_b = np.log(b)
        ll = count * (-special.gammaln(a) - a * log_b) + (a - 1.0) * log_total - total / b
        d_a = count * (-special.digamma(a) - log_b) + log_total
        d_b = -count * a / b + total / (b * b)
        return -ll, -np.array([d_a, d_b])

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        a, b = params
        draws = rng.gamma(shape=a, scale=b, size=size)
        return float(draws) if size is None else draws
