'''
Zipf distribution model for rank data.

With parameter ``a > 1`` the probability of rank ``r`` is
``r^(-a) / ζ(a)``, ζ the Riemann zeta function, so a rank table with totals
``n_r`` has

    ln L = -N ln ζ(a) - a Σ n_r ln r

The derivative of ζ has no convenient closed form in SciPy, so the model
provides no analytic gradient and is estimated with a derivative-free
method.
'''

from typing import Optional, Tuple, Union

import numpy as np
from scipy import special

from apop.models.base import Model, rank_table, rank_weights


class Zipf(Model):
    """Zipf distribution with parameter a > 1."""

    name = "Zipf"
    n_params = 1
    param_names = ("a",)
    lower_bounds = (1.0,)
    open_bounds = (True,)
    has_gradient = False
    has_random_draw = True

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        return rank_table(data, self.name)

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        a = beta[0]
        ranks, totals = rank_weights(data)
        ll = -totals.sum() * np.log(special.zeta(a, 1.0)) - a * float(np.dot(totals, np.log(ranks)))
        return -ll

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        a = params[0]
        if size is None:
            return _zipf_variate(rng, a)
        draws = np.empty(size, dtype=np.float64)
        for index in np.ndindex(draws.shape):
            draws[index] = _zipf_variate(rng, a)
        return draws


def _zipf_variate(rng: np.random.Generator, a: float) -> float:
    # Devroye (1986), p. 551.
    b = 2.0 ** (a - 1.0)
    exponent = -1.0 / (a - 1.0)
    while True:
        u = 1.0 - rng.random()
        v = rng.random()
        x = np.floor(u ** exponent)
        t = (1.0 + 1.0 / x) ** (a - 1.0)
        if v * x * (t - 1.0) / (b - 1.0) <= t / b:
            return float(x)
