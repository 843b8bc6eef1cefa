# tests/test_comparison.py
"""
Tests for per-observation likelihoods and the paired model comparison.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from apop.core.exceptions import DimensionError, EstimationFailure
from apop.core.results import MLEResult
from apop.core.types import EstimationStatus
from apop.estimation import compare_models, likelihood_vector, maximum_likelihood
from apop.models import Exponential, Gamma, Probit


class TestLikelihoodVector:
    """Row-by-row log-likelihoods."""

    def test_rows_sum_to_total(self, gamma_data):
        data = gamma_data[:300]
        vector = likelihood_vector(data, Gamma(), [2.5, 1.8])
        assert vector.shape == (300,)
        assert_allclose(vector.sum(), -Gamma().log_likelihood([2.5, 1.8], data))

    def test_probit_rows(self, probit_data):
        data, beta = probit_data
        vector = likelihood_vector(data[:50], "probit", beta)
        assert np.all(vector < 0.0)
        assert_allclose(vector.sum(), -Probit().log_likelihood(beta, data[:50]))


class TestCompareModels:
    """Paired t comparison of two fits."""

    def test_gamma_beats_exponential_on_gamma_data(self, gamma_data):
        data = gamma_data[:1000]
        gamma_fit = maximum_likelihood(data, Gamma(), starting_point=[1.0, 1.0])
        exponential_fit = maximum_likelihood(data, Exponential(), starting_point=[1.0])

        comparison = compare_models(data, gamma_fit, exponential_fit)
        assert comparison.preferred == "Gamma"
        assert comparison.mean_difference > 0.0
        assert comparison.t_statistic > 0.0
        assert comparison.confidence > 0.99
        assert comparison.n_observations == 1000
        assert "Gamma vs Exponential" in comparison.summary()

    def test_order_reverses_sign(self, gamma_data):
        data = gamma_data[:500]
        gamma_fit = maximum_likelihood(data, "gamma", starting_point=[1.0, 1.0])
        exponential_fit = maximum_likelihood(data, "exponential", starting_point=[1.0])
        forward = compare_models(data, gamma_fit, exponential_fit)
        backward = compare_models(data, exponential_fit, gamma_fit)
        assert_allclose(forward.mean_difference, -backward.mean_difference)
        assert_allclose(forward.confidence, backward.confidence)
        assert backward.preferred == "Gamma"

    def test_identical_models(self, exponential_data):
        data = exponential_data[:100]
        fit = maximum_likelihood(data, Exponential(), starting_point=[1.0])
        comparison = compare_models(data, fit, fit)
        assert comparison.mean_difference == 0.0
        assert comparison.confidence == 0.5

    def test_mismatched_rows(self, gamma_data):
        fit = maximum_likelihood(gamma_data[:200], Gamma(), starting_point=[1.0, 1.0])
        with pytest.raises(DimensionError):
            compare_models(gamma_data[:300], fit, fit)

    def test_result_without_parameters(self, gamma_data):
        empty = MLEResult(model_name="Gamma", status=EstimationStatus.FAILURE)
        fit = maximum_likelihood(gamma_data[:200], Gamma(), starting_point=[1.0, 1.0])
        with pytest.raises(EstimationFailure):
            compare_models(gamma_data[:200], fit, empty)

    def test_explicit_models(self, gamma_data):
        data = gamma_data[:200]
        fit = MLEResult(model_name="custom", parameters=np.array([3.0, 2.0]), n_observations=200)
        other = MLEResult(model_name="other", parameters=np.array([6.0]), n_observations=200)
        comparison = compare_models(data, fit, other, first_model=Gamma(), second_model=Exponential())
        assert comparison.preferred == "custom"
