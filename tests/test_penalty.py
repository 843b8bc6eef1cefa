# tests/test_penalty.py
"""
Tests for the boundary guard.

Out-of-domain parameters must produce finite values that grow with the
distance from the boundary, with gradients pointing back into the domain,
and rescue values must be memoized per session only.
"""

import math

import numpy as np
import pytest
from hypothesis import assume, given, settings, strategies as st
from numpy.testing import assert_allclose

from apop.core.exceptions import ConfigurationError
from apop.models import BoundaryGuard, Exponential, Gamma, Probit, Waring, Yule, Zipf
from apop.models.penalty import (
    barrier, barrier_growth, barrier_slope, keep_away, keep_away_gradient
)
from apop.utils.differentiation import gradient_2sided

SMALL_EXPONENTIAL = np.array([[0.2], [0.7], [1.1], [0.4], [0.9]])
RANKS = np.array([[30.0, 12.0, 6.0, 3.0, 2.0, 1.0]])


# ---- Barrier Function Tests ----

class TestBarrier:
    """The scalar barrier and its derivative."""

    def test_keep_away_at_limit(self):
        assert keep_away(1.0, 1.0, 3.5) == 3.5
        assert_allclose(keep_away(0.0, 1.0, 2.0), 2.0 * math.e)

    def test_keep_away_gradient_sign(self):
        assert keep_away_gradient(0.5, 1.0, 1.0) < 0.0
        assert keep_away_gradient(1.5, 1.0, 1.0) > 0.0
        assert_allclose(abs(keep_away_gradient(0.5, 1.0, 2.0)), keep_away(0.5, 1.0, 2.0))

    def test_barrier_uses_absolute_scale(self):
        assert barrier(1.0, -4.0) == barrier(1.0, 4.0)
        assert barrier(0.0, 0.0) == 1.0

    def test_barrier_linear_continuation(self):
        edge = math.exp(50.0)
        assert_allclose(barrier(50.0, 1.0), edge)
        assert_allclose(barrier(51.0, 1.0), 2.0 * edge)
        assert_allclose(barrier_slope(80.0, 1.0), edge)

    def test_barrier_growth(self):
        for distance in (0.0, 2.0, 60.0):
            h = 1e-6
            numeric = (barrier(distance, 3.0 + h) - barrier(distance, 3.0 - h)) / (2 * h)
            assert_allclose(barrier_growth(distance, 3.0), numeric, rtol=1e-6)
        assert_allclose(barrier_growth(1.0, -2.0), -math.e)
        assert barrier_growth(1.0, 0.0) == 0.0
        assert barrier_growth(1e300, 1e300) == 0.0

    def test_barrier_is_finite_for_huge_distances(self):
        assert math.isfinite(barrier(1e300, 1e300))

    @given(st.floats(min_value=0.0, max_value=1e6), st.floats(min_value=0.0, max_value=1e6))
    def test_barrier_monotone(self, d1, d2):
        assume(d2 - d1 > 1e-6 * max(1.0, d1))
        assert barrier(d1, 2.5) < barrier(d2, 2.5)


# ---- Out-of-Domain Likelihood Tests ----

class TestDomainPenalty:
    """Model evaluations outside the valid domain."""

    @settings(deadline=None, max_examples=50)
    @given(st.floats(min_value=1e-3, max_value=1e5), st.floats(min_value=1e-3, max_value=1e5))
    def test_exponential_penalty_monotone(self, d1, d2):
        assume(d2 - d1 > 1e-6 * max(1.0, d1))
        model = Exponential()
        near = model.log_likelihood([-d1], SMALL_EXPONENTIAL)
        far = model.log_likelihood([-d2], SMALL_EXPONENTIAL)
        assert np.isfinite(near) and np.isfinite(far)
        assert near < far

    @settings(deadline=None, max_examples=50)
    @given(st.floats(min_value=1e-3, max_value=1e4), st.floats(min_value=1e-3, max_value=1e4))
    def test_yule_penalty_monotone(self, d1, d2):
        assume(d2 - d1 > 1e-6 * max(1.0, d1))
        model = Yule()
        assert model.log_likelihood([1.0 - d1], RANKS) < model.log_likelihood([1.0 - d2], RANKS)

    def test_waring_scenario(self, rank_data):
        """Waring at (0.5, -1) is finite and above the rescue likelihood."""
        model = Waring()
        value = model.log_likelihood([0.5, -1.0], rank_data)
        rescue = model.log_likelihood([1.0 + 1e-6, 1e-6], rank_data)
        assert np.isfinite(value)
        assert value > rescue

    def test_closed_bound_is_inside(self, rank_data):
        """Waring's a = 0 is valid, Yule's b = 1 is not."""
        assert Waring().domain_violation(np.array([2.0, 0.0])) is None
        assert Yule().domain_violation(np.array([1.0])) is not None

    def test_multi_axis_distance(self):
        violation = Waring().domain_violation(np.array([0.5, -1.0]))
        assert violation.violated == (0, 1)
        assert_allclose(violation.distance, 1.5)
        assert_allclose(violation.rescue_point, (1.0 + 1e-6, 1e-6))

    def test_single_axis_keeps_other_coordinates(self):
        violation = Gamma().domain_violation(np.array([2.5, -3.0]))
        assert violation.violated == (1,)
        assert_allclose(violation.rescue_point, (2.5, 1e-6))

    def test_non_finite_parameters(self, rank_data, probit_data):
        data, _ = probit_data
        for model, beta, table in ((Yule(), [np.nan], rank_data),
                                   (Zipf(), [np.inf], rank_data),
                                   (Probit(), [np.nan, 1.0], data)):
            assert np.isfinite(model.log_likelihood(beta, table))
        violation = Probit().domain_violation(np.array([np.nan, 1.0]))
        assert violation.violated == (0,)
        assert violation.rescue_point == (0.0, 1.0)

    def test_penalty_gradient_points_inward(self, rank_data):
        grad = Waring().gradient([0.5, -1.0], rank_data)
        assert np.all(grad < 0.0)
        grad = Gamma().gradient([2.0, -1.0], SMALL_EXPONENTIAL)
        assert grad[1] < 0.0

    def test_penalty_gradient_follows_in_domain_axes(self):
        """The shape axis still moves the barrier through the rescue likelihood."""
        model = Gamma()
        grad = model.gradient([2.0, -1.0], SMALL_EXPONENTIAL)
        interior = model.gradient([2.0, 1e-6], SMALL_EXPONENTIAL)
        assert grad[0] != 0.0
        assert_allclose(grad[0], math.e * interior[0], rtol=1e-6)

    @pytest.mark.parametrize("model, beta, data", [
        (Gamma(), [2.0, -0.5], SMALL_EXPONENTIAL),
        (Gamma(), [-0.5, 1.5], SMALL_EXPONENTIAL),
        (Waring(), [3.0, -0.5], RANKS),
        (Waring(), [0.5, 2.0], RANKS),
    ])
    def test_penalty_gradient_matches_finite_differences(self, model, beta, data):
        beta = np.asarray(beta, dtype=float)
        numeric = gradient_2sided(lambda b: model.log_likelihood(b, data), beta)
        assert_allclose(model.gradient(beta, data), numeric, rtol=1e-4)
        value, grad = model.fused_value_and_gradient(beta, data)
        assert_allclose(grad, numeric, rtol=1e-4)

    def test_in_domain_overflow_is_finite(self):
        """An in-domain evaluation that overflows is clamped to a finite value."""
        value = Exponential().log_likelihood([1e-310], SMALL_EXPONENTIAL)
        assert value == 1e300


# ---- Boundary Guard Tests ----

class TestBoundaryGuard:
    """Memoization of rescue values."""

    def test_memo_is_keyed_by_rescue_point(self):
        model = Yule()
        guard = BoundaryGuard(model, RANKS)
        model.log_likelihood([0.5], RANKS, guard)
        model.log_likelihood([0.2], RANKS, guard)
        assert guard.misses == 1
        assert guard.hits == 1
        assert len(guard) == 1

    def test_distinct_rescue_points_are_not_shared(self):
        model = Waring()
        guard = BoundaryGuard(model, RANKS)
        first = model.log_likelihood([0.5, 2.0], RANKS, guard)
        second = model.log_likelihood([0.5, 3.0], RANKS, guard)
        assert guard.misses == 2
        assert first != second

    def test_guard_does_not_change_values(self):
        model = Waring()
        guard = BoundaryGuard(model, RANKS)
        for beta in ([0.5, -1.0], [0.9, 2.0], [3.0, -0.5]):
            assert model.log_likelihood(beta, RANKS, guard) == model.log_likelihood(beta, RANKS)

    def test_guard_bound_to_one_data_set(self, rank_data):
        model = Yule()
        guard = BoundaryGuard(model, RANKS)
        with pytest.raises(ConfigurationError):
            model.log_likelihood([0.5], rank_data, guard)
        with pytest.raises(ConfigurationError):
            Zipf().log_likelihood([0.5], RANKS, guard)

    def test_separate_data_sets_get_separate_values(self, rank_data):
        """No rescue value leaks between data sets."""
        model = Yule()
        small = model.log_likelihood([0.5], RANKS)
        large = model.log_likelihood([0.5], rank_data)
        assert_allclose(small / large,
                        model.log_likelihood([1.0 + 1e-6], RANKS)
                        / model.log_likelihood([1.0 + 1e-6], rank_data))

    def test_clear(self):
        model = Yule()
        guard = BoundaryGuard(model, RANKS)
        model.log_likelihood([0.5], RANKS, guard)
        guard.clear()
        assert len(guard) == 0
        assert guard.hits == 0 and guard.misses == 0
