'''
Comparison of two fitted models on the same data.

The per-observation log-likelihood ratio of two (possibly non-nested)
models is averaged and tested against zero with a paired t statistic, after
Vuong (1989). A positive mean difference favors the first model.
'''

import logging
from typing import Optional, Union

import numpy as np
from scipy import stats

from apop.core.exceptions import EstimationFailure, raise_dimension_error
from apop.core.results import MLEResult, ModelComparison
from apop.core.types import DataLike, ParameterVector, Vector
from apop.core.validation import validate_data_matrix
from apop.models.base import Model
from apop.models.registry import get_model

logger = logging.getLogger("apop.estimation.comparison")


def likelihood_vector(data: DataLike, model: Union[str, Model],
                      parameters: ParameterVector) -> Vector:
    """
    Log-likelihood of each data row at fixed parameters.

    Each row is evaluated as a one-row data set, so the entries sum to the
    log-likelihood of the whole data set.

    Args:
        data: Data matrix in the model's layout
        model: Model instance or registered name
        parameters: Parameter vector

    Returns:
        np.ndarray: One log-likelihood (positive sense) per row
    """
    model = get_model(model)
    matrix = model.validate_data(validate_data_matrix(data))
    return np.array([-model.log_likelihood(parameters, matrix[i:i + 1, :])
                     for i in range(matrix.shape[0])])


def compare_models(data: DataLike,
                   first: MLEResult,
                   second: MLEResult,
                   first_model: Optional[Union[str, Model]] = None,
                   second_model: Optional[Union[str, Model]] = None) -> ModelComparison:
    """
    Test which of two fitted models explains ``data`` better.

    Args:
        data: The data set both models were fitted to
        first: Estimation result of the first model
        second: Estimation result of the second model
        first_model: Model for ``first``; resolved from its name when omitted
        second_model: Model for ``second``; resolved from its name when omitted

    Returns:
        ModelComparison: Mean log-likelihood difference, paired t statistic
        and the confidence that the preferred model fits better

    Raises:
        EstimationFailure: If either result has no parameters
        DimensionError: If the results were fitted to a different number of rows
    """
    matrix = validate_data_matrix(data)
    for result in (first, second):
        if result.parameters is None:
            raise EstimationFailure(
                "Cannot compare a result without parameters",
                model_name=result.model_name,
                issue=f"status {result.status.value}"
            )
        if result.n_observations and result.n_observations != matrix.shape[0]:
            raise_dimension_error(
                f"{result.model_name} was fitted to {result.n_observations} rows, "
                f"data has {matrix.shape[0]}",
                array_name="data",
                expected_shape=(result.n_observations, matrix.shape[1]),
                actual_shape=matrix.shape
            )

    first_model = get_model(first_model if first_model is not None else first.model_name)
    second_model = get_model(second_model if second_model is not None else second.model_name)

    differences = (likelihood_vector(matrix, first_model, first.parameters)
                   - likelihood_vector(matrix, second_model, second.parameters))
    n = differences.shape[0]
    mean = float(np.mean(differences))
    spread = float(np.std(differences, ddof=1)) if n > 1 else 0.0

    if n < 2 or spread == 0.0:
        t_statistic = 0.0 if mean == 0.0 else float(np.copysign(np.inf, mean))
        confidence = 0.5 if mean == 0.0 else 1.0
    else:
        t_statistic = mean / (spread / np.sqrt(n))
        confidence = float(stats.t.cdf(abs(t_statistic), n - 1))

    preferred = first.model_name if mean >= 0.0 else second.model_name
    logger.info(f"{first.model_name} vs {second.model_name}: mean difference {mean:.6g}, "
                f"t = {t_statistic:.4g}, confidence {confidence:.4f}")

    return ModelComparison(
        model_name=f"{first.model_name} vs {second.model_name}",
        first_model=first.model_name,
        second_model=second.model_name,
        mean_difference=mean,
        t_statistic=t_statistic,
        confidence=confidence,
        preferred=preferred,
        n_observations=n
    )
