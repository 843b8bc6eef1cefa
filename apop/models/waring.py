'''
Waring distribution model for rank data.

A two-parameter generalization of the Yule distribution; with ``a = 0`` it
reduces to Yule. Parameters are ordered ``(b, a)`` with ``b > 1`` and
``a >= 0``. Column ``k`` of the rank table counts elements at rank
``r = k + 1`` and

    ln P(r) = ln(b - 1) + ln Γ(b + a) + ln Γ(r + a) - ln Γ(a + 1) - ln Γ(r + a + b)

Partial derivatives:

    d/db = 1 / (b - 1) + ψ(b + a) - ψ(r + a + b)
    d/da = ψ(b + a) + ψ(r + a) - ψ(a + 1) - ψ(r + a + b)

Random draws follow Devroye, "Random variate generation for the digamma and
trigamma distributions", J. Stat. Comput. Simul. 43 (1992), which rejects
from a generalized hypergeometric (GHgB3) proposal.
'''

from typing import Optional, Tuple, Union

import numpy as np
from scipy import special

from apop.models.base import Model, rank_table, rank_weights

_POISSON_LIMIT = 1e15


class Waring(Model):
    """Waring distribution with parameters (b > 1, a >= 0)."""

    name = "Waring"
    n_params = 2
    param_names = ("b", "a")
    lower_bounds = (1.0, 0.0)
    open_bounds = (True, False)
    has_random_draw = True

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        return rank_table(data, self.name)

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        b, a = beta
        ranks, totals = rank_weights(data)
        log_p = (np.log(b - 1.0) + special.gammaln(b + a) + special.gammaln(ranks + a)
                 - special.gammaln(a + 1.0) - special.gammaln(ranks + a + b))
        return -float(np.dot(totals, log_p))

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        b, a = beta
        ranks, totals = rank_weights(data)
        psi_ba = special.digamma(b + a)
        psi_rab = special.digamma(ranks + a + b)
        d_b = 1.0 / (b - 1.0) + psi_ba - psi_rab
        d_a = psi_ba + special.digamma(ranks + a) - special.digamma(a + 1.0) - psi_rab
        return -np.array([np.dot(totals, d_b), np.dot(totals, d_a)])

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        b, a = params
        if size is None:
            return _waring_variate(rng, b, a)
        draws = np.empty(size, dtype=np.float64)
        for index in np.ndindex(draws.shape):
            draws[index] = _waring_variate(rng, b, a)
        return draws


def _ghgb3_variate(rng: np.random.Generator, first: float, second: float, third: float) -> float:
    """Poisson mixture with mean G(first) G(second) / G(third), G unit-scale gammas.

    Means beyond the range of NumPy's Poisson sampler are returned rounded
    down; at that size the Poisson spread is negligible.
    """
    numerator = rng.gamma(first) * rng.gamma(second)
    denominator = rng.gamma(third)
    if denominator <= 0.0 or numerator / denominator >= _POISSON_LIMIT:
        largest = float(np.finfo(np.float64).max)
        return largest if denominator <= 0.0 else float(np.floor(min(numerator / denominator, largest)))
    return float(rng.poisson(numerator / denominator))


def _waring_variate(rng: np.random.Generator, b: float, a: float) -> float:
    # In GHgB3 notation the Waring (b, a) is (a + 1, 1, b - 1), shifted by one.
    ceiling = max(a + 1.0, 1.0)
    while True:
        x = 1.0 + _ghgb3_variate(rng, a + 1.0, 1.0, b - 1.0)
        u = rng.random()
        if u < (x + a) / (ceiling * x):
            return x
