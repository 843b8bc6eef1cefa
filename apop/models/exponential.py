'''
Exponential distribution model.

Every cell of the data matrix is one observation. The model is parameterized
by its scale ``C`` (the mean), so for ``n`` cells summing to ``S``

    -ln L = n ln C + S / C,    d(-ln L)/dC = n / C - S / C²

and the estimate is the sample mean.
'''

from typing import Optional, Tuple, Union

import numpy as np

from apop.core.exceptions import DataError
from apop.models._numba_core import _cell_summary_core, _min_cell_core
from apop.models.base import Model


class Exponential(Model):
    """Exponential distribution with a single scale parameter."""

    name = "Exponential"
    n_params = 1
    param_names = ("scale",)
    lower_bounds = (0.0,)
    open_bounds = (True,)
    has_random_draw = True

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        if _min_cell_core(data) < 0.0:
            raise DataError(
                "Exponential observations must be non-negative",
                data_name="data",
                issue="negative cell"
            )
        return data

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        scale = beta[0]
        n, total = _cell_summary_core(data)
        return n * np.log(scale) + total / scale

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        scale = beta[0]
        n, total = _cell_summary_core(data)
        return np.array([n / scale - total / (scale * scale)])

    def _draw(self, rng: np.random.Generator, params: np.ndarray,
              size: Optional[Union[int, Tuple[int, ...]]]) -> Union[float, np.ndarray]:
        draws = rng.exponential(scale=params[0], size=size)
        return float(draws) if size is None else draws
