'''
Yule distribution model for rank data.

The data is a rank table: column ``k`` counts elements observed at rank
``r = k + 1``. With parameter ``b > 1``

    ln P(r) = ln(b - 1) + ln Γ(b) + ln Γ(r) - ln Γ(r + b)

so each column contributes its total count times ``ln P(k + 1)``.
'''

import logging
from typing import Optional, Tuple, Union

import numpy as np
from scipy import special

from apop.models.base import Model, rank_table, rank_weights

logger = logging.getLogger("apop.models.yule")


class Yule(Model):
    """Yule distribution with parameter b > 1."""

    name = "Yule"
    n_params = 1
    param_names = ("b",)
    lower_bounds = (1.0,)
    open_bounds = (True,)
    has_random_draw = True

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        return rank_table(data, self.name)

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        b = beta[0]
        ranks, totals = rank_weights(data)
        log_p = np.log(b - 1.0) + special.gammaln(b) + special.gammaln(ranks) - special.gammaln(ranks + b)
        return -float(np.dot(totals, log_p))

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        b = beta[0]
        ranks, totals = rank_weights(data)
        d_b = 1.0 / (b - 1.0) + special.digamma(b) - special.digamma(ranks + b)
        return np.array([-float(np.dot(totals, d_b))])

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        b = params[0]
        if size is None:
            return _yule_variate(rng, b)
        draws = np.empty(size, dtype=np.float64)
        for index in np.ndindex(draws.shape):
            draws[index] = _yule_variate(rng, b)
        return draws


def _yule_variate(rng: np.random.Generator, b: float) -> float:
    # Mixture of geometrics: with e1, e2 ~ Exp(1) the geometric's success
    # probability is exp(-e2 / (b - 1)).
    e1 = rng.exponential()
    e2 = rng.exponential()
    return float(np.floor(-e1 / np.log1p(-np.exp(-e2 / (b - 1.0)))) + 1.0)
