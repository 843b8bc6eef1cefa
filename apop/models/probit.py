'''
Probit model for binary outcomes.

Column 0 of the data matrix is the outcome ``y`` and the remaining columns
are the regressors ``X``, so a data set with ``k + 1`` columns has ``k``
parameters. With ``z = Xβ`` an observation contributes ``ln Φ(z)`` when
``y = 0`` and ``ln Φ(-z)`` otherwise, Φ the standard normal CDF. Writing
``s = 1`` for ``y = 0`` and ``s = -1`` otherwise,

    ln L = Σ ln Φ(s z),    d ln L / dβ = Xᵀ w,    w = s φ(z) / Φ(s z)

``ln Φ`` is evaluated with :func:`scipy.special.log_ndtr`, which stays
accurate deep in the tails, and ``w`` is formed in log space for the same
reason. The fused evaluator computes ``Xβ`` once for both quantities.
'''

import logging
from typing import Optional, Tuple

import numpy as np
from scipy import special

from apop.core.exceptions import raise_dimension_error
from apop.core.types import DataLike
from apop.core.validation import validate_data_matrix
from apop.models.base import Model

logger = logging.getLogger("apop.models.probit")

_HALF_LOG_2PI = 0.5 * np.log(2.0 * np.pi)


class Probit(Model):
    """Probit regression; the parameter count is the number of regressors."""

    name = "Probit"
    n_params = None
    has_fused = True

    def parameter_count(self, data: Optional[DataLike] = None) -> int:
        if data is None:
            return super().parameter_count(data)
        if not (isinstance(data, np.ndarray) and data.ndim == 2):
            data = validate_data_matrix(data)
        return max(data.shape[1] - 1, 0)

    def validate_data(self, data: np.ndarray) -> np.ndarray:
        if data.shape[1] < 2:
            raise_dimension_error(
                "Probit data needs an outcome column and at least one regressor",
                array_name="data",
                expected_shape="(n, k + 1) with k >= 1",
                actual_shape=data.shape
            )
        return data

    @staticmethod
    def _split(beta: np.ndarray, data: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        regressors = data[:, 1:]
        signs = np.where(data[:, 0] == 0.0, 1.0, -1.0)
        return regressors, signs, regressors @ beta

    def _negative_loglikelihood(self, beta: np.ndarray, data: np.ndarray) -> float:
        _, signs, z = self._split(beta, data)
        return -float(np.sum(special.log_ndtr(signs * z)))

    def _negative_loglikelihood_gradient(self, beta: np.ndarray, data: np.ndarray) -> np.ndarray:
        return self._negative_loglikelihood_and_gradient(beta, data)[1]

    def _negative_loglikelihood_and_gradient(self, beta: np.ndarray,
                                             data: np.ndarray) -> Tuple[float, np.ndarray]:
        regressors, signs, z = self._split(beta, data)
        log_cdf = special.log_ndtr(signs * z)
        weights = signs * np.exp(-0.5 * z * z - _HALF_LOG_2PI - log_cdf)
        return -float(np.sum(log_cdf)), -(regressors.T @ weights)
