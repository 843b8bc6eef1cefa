# tests/test_models.py
"""
Tests for the likelihood models.

Covers the analytic gradients against central finite differences, the
parameter-count contract, data validation, Probit's fused evaluator and the
random draws of each distribution.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy import special, stats

from apop.core.exceptions import (
    ConfigurationError, DataError, DimensionError, ModelSpecificationError, ParameterError
)
from apop.models import (
    Exponential, Gamma, Model, Probit, Waring, Yule, Zipf,
    get_model, list_models, register_model
)
from apop.utils.differentiation import gradient_2sided


def numeric_gradient(model, beta, data):
    return gradient_2sided(lambda b: model.log_likelihood(b, data), np.asarray(beta, dtype=float))


# ---- Gradient Tests ----

class TestGradients:
    """Analytic gradients agree with central finite differences."""

    def test_gamma_gradient(self, gamma_data):
        model = Gamma()
        data = gamma_data[:500]
        for beta in ([2.5, 1.5], [3.0, 2.0], [0.8, 4.0]):
            assert_allclose(model.gradient(beta, data), numeric_gradient(model, beta, data),
                            rtol=1e-4, atol=1e-4)

    def test_exponential_gradient(self, exponential_data):
        model = Exponential()
        data = exponential_data[:500]
        for beta in ([0.3], [0.7], [2.0]):
            assert_allclose(model.gradient(beta, data), numeric_gradient(model, beta, data),
                            rtol=1e-4, atol=1e-4)

    def test_yule_gradient(self, rank_data):
        model = Yule()
        for beta in ([1.5], [2.3], [4.0]):
            assert_allclose(model.gradient(beta, rank_data), numeric_gradient(model, beta, rank_data),
                            rtol=1e-4, atol=1e-4)

    def test_waring_gradient(self, rank_data):
        model = Waring()
        for beta in ([2.5, 0.7], [1.8, 0.2], [3.0, 2.5]):
            assert_allclose(model.gradient(beta, rank_data), numeric_gradient(model, beta, rank_data),
                            rtol=1e-4, atol=1e-4)

    def test_probit_gradient(self, probit_data):
        data, _ = probit_data
        model = Probit()
        for beta in ([0.3, -0.5], [0.0, 0.0], [-1.0, 2.0]):
            assert_allclose(model.gradient(beta, data), numeric_gradient(model, beta, data),
                            rtol=1e-4, atol=1e-4)

    def test_zipf_has_no_gradient(self, rank_data):
        """Zipf is derivative-free; asking for its gradient is a configuration error."""
        assert not Zipf.has_gradient
        with pytest.raises(ConfigurationError):
            Zipf().gradient([2.0], rank_data)


# ---- Likelihood Value Tests ----

class TestLogLikelihood:
    """Values of the negated log-likelihood at in-domain parameters."""

    def test_exponential_matches_scipy(self, exponential_data):
        data = exponential_data[:200]
        expected = -np.sum(stats.expon.logpdf(data, scale=0.6))
        assert_allclose(Exponential().log_likelihood([0.6], data), expected, rtol=1e-10)

    def test_gamma_matches_scipy(self, gamma_data):
        data = gamma_data[:200]
        expected = -np.sum(stats.gamma.logpdf(data, a=2.5, scale=1.7))
        assert_allclose(Gamma().log_likelihood([2.5, 1.7], data), expected, rtol=1e-10)

    def test_gamma_skips_zero_cells(self):
        """Zero cells are missing observations, not observations at zero."""
        data = np.array([[1.0, 0.0], [2.0, 3.0]])
        expected = -np.sum(stats.gamma.logpdf([1.0, 2.0, 3.0], a=2.0, scale=1.5))
        assert_allclose(Gamma().log_likelihood([2.0, 1.5], data), expected, rtol=1e-10)

    def test_yule_single_rank(self):
        """One element at rank 1 has probability (b - 1) / b."""
        value = Yule().log_likelihood([3.0], np.array([[1.0]]))
        assert_allclose(value, -np.log(2.0 / 3.0), rtol=1e-12)

    def test_waring_with_zero_a_is_yule(self, rank_data):
        """a = 0 is inside Waring's domain and reduces it to Yule."""
        assert_allclose(Waring().log_likelihood([2.4, 0.0], rank_data),
                        Yule().log_likelihood([2.4], rank_data), rtol=1e-12)

    def test_zipf_value(self, rank_data):
        ranks = np.arange(1, rank_data.shape[1] + 1)
        totals = rank_data.sum(axis=0)
        expected = totals.sum() * np.log(special.zeta(2.0, 1.0)) + 2.0 * np.dot(totals, np.log(ranks))
        assert_allclose(Zipf().log_likelihood([2.0], rank_data), expected, rtol=1e-12)

    def test_probit_matches_normal_cdf(self, probit_data):
        data, beta = probit_data
        data = data[:100]
        z = data[:, 1:] @ beta
        expected = -np.sum(np.where(data[:, 0] == 0.0, stats.norm.logcdf(z), stats.norm.logcdf(-z)))
        assert_allclose(Probit().log_likelihood(beta, data), expected, rtol=1e-10)

    def test_repeated_calls_are_identical(self, rank_data, gamma_data):
        """Models hold no state, so identical calls give bit-identical output."""
        for model, beta, data in ((Waring(), [2.5, 0.5], rank_data),
                                  (Gamma(), [2.0, 2.0], gamma_data),
                                  (Waring(), [0.5, -1.0], rank_data)):
            first = model.log_likelihood(beta, data)
            second = model.log_likelihood(beta, data)
            assert first == second
            assert_array_equal(model.gradient(beta, data), model.gradient(beta, data))

    def test_accepts_pandas(self, gamma_data):
        import pandas as pd
        frame = pd.DataFrame(gamma_data[:100], columns=["x"])
        assert Gamma().log_likelihood([2.0, 2.0], frame) == Gamma().log_likelihood([2.0, 2.0], gamma_data[:100])


# ---- Parameter and Data Validation Tests ----

class TestValidation:
    """Parameter-count and data checks."""

    def test_wrong_parameter_length(self, rank_data, gamma_data):
        with pytest.raises(DimensionError):
            Waring().log_likelihood([2.0], rank_data)
        with pytest.raises(DimensionError):
            Gamma().gradient([1.0, 2.0, 3.0], gamma_data)

    def test_probit_parameter_count(self, probit_data):
        data, _ = probit_data
        model = Probit()
        assert model.parameter_count(data) == data.shape[1] - 1
        assert model.parameter_names(data) == ["beta[0]", "beta[1]"]
        with pytest.raises(DimensionError):
            model.log_likelihood([0.1, 0.2, 0.3], data)

    def test_probit_needs_data_for_count(self):
        with pytest.raises(ConfigurationError):
            Probit().parameter_count()

    def test_probit_needs_a_regressor(self):
        with pytest.raises(DimensionError):
            Probit().log_likelihood(np.zeros(0), np.array([[0.0], [1.0]]))

    def test_rank_table_rejects_negative_counts(self):
        with pytest.raises(DataError):
            Yule().log_likelihood([2.0], np.array([[3.0, -1.0]]))

    def test_gamma_rejects_negative_values(self):
        with pytest.raises(DataError):
            Gamma().log_likelihood([2.0, 2.0], np.array([[1.0], [-0.5]]))

    def test_non_finite_data(self):
        with pytest.raises(DataError):
            Exponential().log_likelihood([1.0], np.array([1.0, np.nan]))

    def test_fixed_parameter_names(self):
        assert Gamma().parameter_names() == ["shape", "scale"]
        assert Waring().parameter_names() == ["b", "a"]


# ---- Fused Evaluator Tests ----

class TestFusedEvaluation:
    """The fused evaluator agrees with separate value and gradient calls."""

    @pytest.mark.parametrize("beta", [[0.3, -0.5], [0.0, 0.0], [5.0, -5.0]])
    def test_probit_fused(self, probit_data, beta):
        data, _ = probit_data
        model = Probit()
        value, grad = model.fused_value_and_gradient(beta, data)
        assert value == model.log_likelihood(beta, data)
        assert_allclose(grad, model.gradient(beta, data), rtol=1e-12)

    def test_probit_fused_out_of_domain(self, probit_data):
        """A NaN coefficient is a domain violation with a finite penalty."""
        data, _ = probit_data
        value, grad = Probit().fused_value_and_gradient([np.nan, 0.0], data)
        assert np.isfinite(value)
        assert np.all(np.isfinite(grad))

    def test_gamma_fused(self, gamma_data):
        model = Gamma()
        value, grad = model.fused_value_and_gradient([2.0, 3.0], gamma_data)
        assert value == model.log_likelihood([2.0, 3.0], gamma_data)
        assert_array_equal(grad, model.gradient([2.0, 3.0], gamma_data))


# ---- Random Draw Tests ----

class TestRandomDraws:
    """Draws have the moments of their distributions."""

    def test_exponential_draws(self, rng):
        draws = Exponential().random_draw(rng, [0.5], size=20000)
        assert draws.shape == (20000,)
        assert abs(draws.mean() - 0.5) < 0.02

    def test_gamma_draws(self, rng):
        draws = Gamma().random_draw(rng, [3.0, 2.0], size=20000)
        assert abs(draws.mean() - 6.0) < 0.1

    def test_single_draw_is_float(self, rng):
        for model, params in ((Exponential(), [1.0]), (Gamma(), [2.0, 1.0]), (Yule(), [2.5]),
                              (Waring(), [2.5, 0.5]), (Zipf(), [2.0])):
            assert isinstance(model.random_draw(rng, params), float)

    def test_yule_draws(self, rng):
        """Yule(b) has mean (b - 1) / (b - 2) for b > 2."""
        draws = Yule().random_draw(rng, [4.0], size=20000)
        assert np.all(draws >= 1.0)
        assert_array_equal(draws, np.floor(draws))
        assert abs(draws.mean() - 1.5) < 0.06

    def test_waring_draws_match_yule_mean(self, rng):
        """With a = 0 the Waring distribution is Yule, so the means agree."""
        draws = Waring().random_draw(rng, [4.0, 0.0], size=20000)
        assert np.all(draws >= 1.0)
        assert abs(draws.mean() - 1.5) < 0.06

    def test_waring_draws_with_positive_a(self, rng):
        draws = Waring().random_draw(rng, [3.5, 1.0], size=(100, 20))
        assert draws.shape == (100, 20)
        assert np.all(draws >= 1.0)
        assert_array_equal(draws, np.floor(draws))

    def test_zipf_draws(self, rng):
        """P(rank 1) = 1 / zeta(a)."""
        draws = Zipf().random_draw(rng, [3.0], size=20000)
        assert np.all(draws >= 1.0)
        assert abs(np.mean(draws == 1.0) - 1.0 / special.zeta(3.0, 1.0)) < 0.02

    def test_draws_outside_domain(self, rng):
        with pytest.raises(ParameterError):
            Yule().random_draw(rng, [0.5])
        with pytest.raises(ParameterError):
            Waring().random_draw(rng, [2.0, -1.0])
        with pytest.raises(ParameterError):
            Exponential().random_draw(rng, [0.0])

    def test_draw_error_states_bound_type(self, rng):
        """Waring's a may equal its bound, Yule's b may not."""
        with pytest.raises(ParameterError) as excinfo:
            Waring().random_draw(rng, [2.0, -1.0])
        assert excinfo.value.param_name == "a"
        assert excinfo.value.constraint == ">= 0.0"
        with pytest.raises(ParameterError) as excinfo:
            Yule().random_draw(rng, [0.5])
        assert excinfo.value.constraint == "> 1.0"

    def test_probit_has_no_draw(self, rng):
        with pytest.raises(ConfigurationError):
            Probit().random_draw(rng, [0.0, 0.0])


# ---- Registry Tests ----

class TestRegistry:
    """Lookup of models by name."""

    def test_builtin_models(self):
        assert {"Exponential", "Gamma", "Probit", "Waring", "Yule", "Zipf"} <= set(list_models())
        assert list_models() == sorted(list_models())

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_model("waring"), Waring)
        assert isinstance(get_model("PROBIT"), Probit)

    def test_instances_and_classes_pass_through(self):
        model = Gamma()
        assert get_model(model) is model
        assert isinstance(get_model(Yule), Yule)

    def test_unknown_model(self):
        with pytest.raises(ModelSpecificationError) as excinfo:
            get_model("lognormal")
        assert "Gamma" in excinfo.value.valid_options

    def test_register_custom_model(self):
        class Uniform(Model):
            name = "UniformTest"
            n_params = 1
            has_gradient = False

            def _negative_loglikelihood(self, beta, data):
                return data.size * np.log(beta[0])

        register_model(Uniform)
        assert isinstance(get_model("uniformtest"), Uniform)

    def test_register_rejects_non_models(self):
        with pytest.raises(ModelSpecificationError):
            register_model(dict)
