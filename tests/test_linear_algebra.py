# tests/test_linear_algebra.py
"""
Tests for the linear algebra and numerical differentiation helpers.
"""

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st
from numpy.testing import assert_allclose, assert_array_equal

from apop.core.exceptions import ConfigurationError, DimensionError, NumericError
from apop.utils.differentiation import gradient_2sided, hessian_2sided
from apop.utils.linear_algebra import (
    Operand, det_and_inv, dot, matrix_determinant, matrix_inverse, matrix_stack,
    remove_columns, sv_decomposition, vector_bounded, vector_distance,
    vector_grid_distance, vector_stack
)


# ---- Determinant and Inverse Tests ----

class TestDetAndInv:
    """LU-based determinant and inverse."""

    def test_inverse_round_trip(self, rng):
        matrix = rng.standard_normal((5, 5)) + 5.0 * np.eye(5)
        _, inverse = det_and_inv(matrix)
        assert_allclose(matrix @ inverse, np.eye(5), atol=1e-9)

    def test_determinant(self, rng):
        matrix = rng.standard_normal((4, 4))
        det, inverse = det_and_inv(matrix, calc_inv=False)
        assert inverse is None
        assert_allclose(det, np.linalg.det(matrix), rtol=1e-10)

    def test_determinant_sign_with_pivoting(self):
        matrix = np.array([[0.0, 1.0], [1.0, 0.0]])
        assert_allclose(matrix_determinant(matrix), -1.0)

    def test_input_not_modified(self, rng):
        matrix = rng.standard_normal((3, 3)) + 3.0 * np.eye(3)
        before = matrix.copy()
        matrix_inverse(matrix)
        assert_array_equal(matrix, before)

    def test_non_square(self):
        with pytest.raises(ConfigurationError):
            det_and_inv(np.ones((2, 3)))

    def test_singular(self):
        with pytest.raises(NumericError):
            matrix_inverse(np.array([[1.0, 2.0], [2.0, 4.0]]))

    def test_singular_determinant_is_zero(self):
        det, _ = det_and_inv(np.array([[1.0, 2.0], [2.0, 4.0]]), calc_inv=False)
        assert det == 0.0


# ---- Principal Components Tests ----

class TestSvDecomposition:
    """Eigenvectors of the normalized cross-product matrix."""

    def test_shares_and_orthonormality(self, rng):
        data = rng.standard_normal((200, 4))
        data[:, 1] += 2.0 * data[:, 0]
        vectors, shares = sv_decomposition(data, 4)
        assert vectors.shape == (4, 4)
        assert_allclose(vectors.T @ vectors, np.eye(4), atol=1e-10)
        assert_allclose(shares.sum(), 1.0)
        assert np.all(np.diff(shares) <= 0.0)

    def test_leading_dimensions(self, rng):
        vectors, shares = sv_decomposition(rng.standard_normal((50, 5)), 2)
        assert vectors.shape == (5, 2)
        assert shares.shape == (2,)

    @pytest.mark.parametrize("dimensions", [0, 6])
    def test_invalid_dimensions(self, rng, dimensions):
        with pytest.raises(ConfigurationError):
            sv_decomposition(rng.standard_normal((50, 5)), dimensions)


# ---- Stacking Tests ----

class TestStacking:
    """Row/column stacking with None passthrough."""

    def test_stack_rows_and_columns(self):
        a = np.ones((2, 3))
        b = np.zeros((1, 3))
        assert matrix_stack(a, b, "r").shape == (3, 3)
        assert matrix_stack(a, np.zeros((2, 2)), "c").shape == (2, 5)

    def test_none_passthrough(self):
        a = np.ones((2, 2))
        stacked = matrix_stack(None, a)
        assert_array_equal(stacked, a)
        assert stacked is not a
        assert matrix_stack(None, None) is None
        assert_array_equal(vector_stack(None, [1.0, 2.0]), [1.0, 2.0])

    def test_incompatible_shapes(self):
        with pytest.raises(DimensionError):
            matrix_stack(np.ones((2, 3)), np.ones((2, 2)), "r")
        with pytest.raises(DimensionError):
            matrix_stack(np.ones((2, 3)), np.ones((3, 3)), "c")

    def test_bad_position(self):
        with pytest.raises(ConfigurationError):
            matrix_stack(np.ones((2, 2)), np.ones((2, 2)), "x")

    def test_vector_stack(self):
        assert_array_equal(vector_stack([1.0], [2.0, 3.0]), [1.0, 2.0, 3.0])

    def test_remove_columns(self):
        matrix = np.arange(12.0).reshape(3, 4)
        result = remove_columns(matrix, [False, True, False, True])
        assert_array_equal(result, matrix[:, [0, 2]])
        with pytest.raises(DimensionError):
            remove_columns(matrix, [True])

    def test_vector_bounded(self):
        assert vector_bounded([1.0, -2.0])
        assert not vector_bounded([1.0, np.inf])
        assert not vector_bounded([1.0, -2.0], max_value=2.0)


# ---- Dot Product Tests ----

class TestDot:
    """Dispatch over the four operand pairings."""

    def test_all_pairings(self):
        x = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        v2 = np.array([1.0, -1.0])
        v3 = np.array([1.0, 0.0, 2.0])
        assert dot(Operand.vector(v2), Operand.vector(v2)) == 2.0
        assert_allclose(dot(Operand.vector(v3), Operand.matrix(x)), v3 @ x)
        assert_allclose(dot(Operand.matrix(x), Operand.vector(v2)), x @ v2)
        assert_allclose(dot(Operand.matrix(x, transpose=True), Operand.matrix(x)), x.T @ x)

    def test_transpose_flag(self):
        x = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert_allclose(dot(Operand.matrix(x, transpose=True), Operand.vector([1.0, 1.0])), [4.0, 6.0])

    def test_inner_mismatch(self):
        x = np.ones((3, 2))
        with pytest.raises(DimensionError):
            dot(Operand.matrix(x), Operand.vector([1.0, 2.0, 3.0]))
        with pytest.raises(DimensionError):
            dot(Operand.matrix(x), Operand.matrix(x))

    def test_requires_operands(self):
        with pytest.raises(TypeError):
            dot(np.ones(2), np.ones(2))

    def test_matrix_operand_dimensions(self):
        with pytest.raises(DimensionError):
            Operand.matrix(np.ones(3))


# ---- Distance Tests ----

class TestDistances:
    """Euclidean and Manhattan distances."""

    def test_values(self):
        assert_allclose(vector_distance([0.0, 0.0], [3.0, 4.0]), 5.0)
        assert_allclose(vector_grid_distance([0.0, 0.0], [3.0, -4.0]), 7.0)

    def test_length_mismatch(self):
        with pytest.raises(ConfigurationError):
            vector_distance([1.0], [1.0, 2.0])
        with pytest.raises(ConfigurationError):
            vector_grid_distance([1.0], [1.0, 2.0])

    @settings(max_examples=50)
    @given(st.lists(st.floats(-1e3, 1e3), min_size=1, max_size=6))
    def test_euclidean_below_manhattan(self, values):
        a = np.array(values)
        b = np.zeros_like(a)
        assert vector_distance(a, b) <= vector_grid_distance(a, b) * (1.0 + 1e-12) + 1e-12


# ---- Numerical Differentiation Tests ----

class TestDifferentiation:
    """Central-difference gradient and Hessian."""

    @staticmethod
    def quadratic(x):
        return 3.0 * x[0] ** 2 + x[0] * x[1] + 2.0 * x[1] ** 2

    def test_gradient(self):
        x = np.array([1.0, -2.0])
        assert_allclose(gradient_2sided(self.quadratic, x), [6.0 - 2.0, 1.0 - 8.0], rtol=1e-7)

    def test_hessian(self):
        hess = hessian_2sided(self.quadratic, np.array([0.5, 1.5]))
        assert_allclose(hess, [[6.0, 1.0], [1.0, 4.0]], rtol=1e-5)
        assert_array_equal(hess, hess.T)

    def test_non_finite_evaluation(self):
        with pytest.raises(NumericError):
            gradient_2sided(lambda x: np.log(x[0]), np.array([0.0]))
