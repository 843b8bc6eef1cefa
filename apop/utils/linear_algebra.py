# apop/utils/linear_algebra.py
"""
Linear Algebra Convenience Module

Thin wrappers over NumPy and SciPy for the matrix chores that surround an
estimation: LU-based determinants and inverses, principal components of a
data matrix, stacking, column removal, bounded-vector checks, tagged dot
products and vector distances.

Every failure path raises a typed error. No function signals failure by
returning zero or ``None``.

Functions:
    det_and_inv: Determinant and/or inverse from a single LU factorization
    matrix_inverse: Inverse of a square matrix
    matrix_determinant: Determinant of a square matrix
    sv_decomposition: Leading eigenvectors of the normalized cross-product matrix
    matrix_stack: Stack two matrices by rows or columns
    vector_stack: Concatenate two vectors
    remove_columns: Drop flagged columns from a matrix
    vector_bounded: Check that a vector is finite and inside (-max, max)
    dot: Dot product of two tagged operands
    vector_distance: Euclidean distance between two vectors
    vector_grid_distance: Manhattan distance between two vectors
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import linalg

from apop.core.exceptions import (
    ConfigurationError, raise_dimension_error, raise_numeric_error
)
from apop.core.types import Matrix, StackPosition, Vector
from apop.core.validation import validate_vector

logger = logging.getLogger("apop.utils.linear_algebra")


def _square(matrix: Matrix, operation: str) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1] or matrix.shape[0] == 0:
        raise ConfigurationError(
            f"{operation} requires a non-empty square matrix",
            setting="matrix",
            issue=f"got shape {matrix.shape}"
        )
    return matrix


def det_and_inv(matrix: Matrix,
                calc_det: bool = True,
                calc_inv: bool = True) -> Tuple[Optional[float], Optional[Matrix]]:
    """
    Compute the determinant and/or inverse of a square matrix.

    Both quantities come from one LU factorization; the input is not
    modified.

    Args:
        matrix: Square matrix
        calc_det: Whether to compute the determinant
        calc_inv: Whether to compute the inverse

    Returns:
        Tuple of (determinant or None, inverse or None)

    Raises:
        ConfigurationError: If the matrix is not square
        NumericError: If the inverse is requested and the matrix is singular

    Examples:
        >>> import numpy as np
        >>> from apop.utils.linear_algebra import det_and_inv
        >>> det, inv = det_and_inv(np.array([[2.0, 0.0], [0.0, 4.0]]))
        >>> det
        8.0
        >>> inv
        array([[0.5 , 0.  ],
               [0.  , 0.25]])
    """
    matrix = _square(matrix, "det_and_inv")
    n = matrix.shape[0]

    lu, piv = linalg.lu_factor(matrix, check_finite=True)
    pivots = np.diag(lu)

    determinant = None
    if calc_det:
        swaps = np.count_nonzero(piv != np.arange(n))
        determinant = float(np.prod(pivots)) * (-1.0 if swaps % 2 else 1.0)

    inverse = None
    if calc_inv:
        if np.any(pivots == 0.0):
            raise_numeric_error(
                "Matrix is singular and cannot be inverted",
                operation="det_and_inv",
                values=matrix,
                error_type="singular"
            )
        inverse = linalg.lu_solve((lu, piv), np.eye(n))
        if not np.all(np.isfinite(inverse)):
            raise_numeric_error(
                "Inverse contains non-finite values",
                operation="det_and_inv",
                values=matrix,
                error_type="singular"
            )

    return determinant, inverse


def matrix_inverse(matrix: Matrix) -> Matrix:
    """Inverse of a square matrix; see :func:`det_and_inv`."""
    return det_and_inv(matrix, calc_det=False, calc_inv=True)[1]


def matrix_determinant(matrix: Matrix) -> float:
    """Determinant of a square matrix; see :func:`det_and_inv`."""
    return det_and_inv(matrix, calc_det=True, calc_inv=False)[0]


def sv_decomposition(data: Matrix, dimensions: int) -> Tuple[Matrix, Vector]:
    """
    Principal components of a data matrix.

    Forms X'X, scales it so the diagonal is one (dividing each row and column
    by the square root of its diagonal element), and decomposes the result.

    Args:
        data: Data matrix, observations in rows
        dimensions: Number of leading eigenvectors to return

    Returns:
        Tuple of (eigenvectors as columns ordered by descending eigenvalue,
        those eigenvalues as shares of the total over all eigenvalues)

    Raises:
        ConfigurationError: If ``dimensions`` is not between 1 and the column count
        NumericError: If a column of ``data`` is identically zero
    """
    data = np.asarray(data, dtype=np.float64)
    if data.ndim != 2:
        raise_dimension_error(
            "sv_decomposition requires a 2-dimensional data matrix",
            array_name="data",
            expected_shape="2D matrix",
            actual_shape=data.shape
        )
    if not 1 <= dimensions <= data.shape[1]:
        raise ConfigurationError(
            "Requested dimensions must be between 1 and the number of columns",
            setting="dimensions",
            value=dimensions,
            issue=f"data has {data.shape[1]} columns"
        )

    square = data.T @ data
    scale = np.sqrt(np.diag(square))
    if np.any(scale == 0.0):
        raise_numeric_error(
            "Cannot normalize a column with zero sum of squares",
            operation="sv_decomposition",
            values=scale,
            error_type="zero_column"
        )
    square = square / np.outer(scale, scale)

    eigenvectors, eigenvalues, _ = np.linalg.svd(square)
    shares = eigenvalues / eigenvalues.sum()
    return eigenvectors[:, :dimensions], shares[:dimensions]


def matrix_stack(m1: Optional[Matrix], m2: Optional[Matrix],
                 position: StackPosition = "r") -> Optional[Matrix]:
    """
    Stack two matrices.

    With ``position='r'`` the rows of ``m2`` go below ``m1`` (column counts
    must agree); with ``position='c'`` the columns of ``m2`` go to the right
    of ``m1`` (row counts must agree). If either input is None a copy of the
    other is returned.

    Raises:
        ConfigurationError: If position is not 'r' or 'c'
        DimensionError: If the shapes are incompatible
    """
    if position not in ("r", "c"):
        raise ConfigurationError(
            "position must be 'r' (rows) or 'c' (columns)",
            setting="position",
            value=position
        )
    if m1 is None:
        return None if m2 is None else np.array(m2, dtype=np.float64)
    if m2 is None:
        return np.array(m1, dtype=np.float64)

    m1 = np.atleast_2d(np.asarray(m1, dtype=np.float64))
    m2 = np.atleast_2d(np.asarray(m2, dtype=np.float64))
    axis = 0 if position == "r" else 1
    other = 1 - axis
    if m1.shape[other] != m2.shape[other]:
        raise_dimension_error(
            f"Cannot stack by {'rows' if axis == 0 else 'columns'}: "
            f"{m1.shape[other]} vs {m2.shape[other]} {'columns' if axis == 0 else 'rows'}",
            array_name="m2",
            expected_shape=("any", m1.shape[1]) if axis == 0 else (m1.shape[0], "any"),
            actual_shape=m2.shape
        )
    return np.concatenate((m1, m2), axis=axis)


def vector_stack(v1: Optional[Vector], v2: Optional[Vector]) -> Optional[Vector]:
    """Concatenate two vectors; a None input returns a copy of the other."""
    if v1 is None:
        return None if v2 is None else validate_vector(v2, "v2").copy()
    if v2 is None:
        return validate_vector(v1, "v1").copy()
    return np.concatenate((validate_vector(v1, "v1"), validate_vector(v2, "v2")))


def remove_columns(matrix: Matrix, drop: Sequence[bool]) -> Matrix:
    """
    Return a copy of ``matrix`` without the columns flagged in ``drop``.

    Raises:
        DimensionError: If ``drop`` does not have one flag per column
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    flags = np.asarray(drop, dtype=bool)
    if matrix.ndim != 2 or flags.shape != (matrix.shape[1],):
        raise_dimension_error(
            "drop must have one flag per column",
            array_name="drop",
            expected_shape=(matrix.shape[-1],),
            actual_shape=flags.shape
        )
    return matrix[:, ~flags].copy()


def vector_bounded(vector: Vector, max_value: float = np.inf) -> bool:
    """
    True if every element is finite and strictly inside (-max_value, max_value).

    With the default ``max_value`` this is a plain finiteness check, useful
    for spotting a diverging iterate before it breaks a computation.
    """
    vector = validate_vector(vector)
    return bool(np.all(np.isfinite(vector)) and np.all(np.abs(vector) < max_value))


class OperandKind(Enum):
    VECTOR = "vector"
    MATRIX = "matrix"


@dataclass(frozen=True)
class Operand:
    """A dot-product operand: a vector, or a matrix with a transpose flag.

    Build instances with :meth:`vector` and :meth:`matrix`, which validate
    the dimensionality of the wrapped array.
    """
    kind: OperandKind
    values: np.ndarray
    transpose: bool = False

    @classmethod
    def vector(cls, values: Vector) -> "Operand":
        return cls(OperandKind.VECTOR, validate_vector(values))

    @classmethod
    def matrix(cls, values: Matrix, transpose: bool = False) -> "Operand":
        array = np.asarray(values, dtype=np.float64)
        if array.ndim != 2:
            raise_dimension_error(
                "Matrix operand must be 2-dimensional",
                array_name="matrix",
                expected_shape="2D matrix",
                actual_shape=array.shape
            )
        return cls(OperandKind.MATRIX, array, bool(transpose))

    @property
    def effective(self) -> np.ndarray:
        return self.values.T if self.transpose else self.values


def _check_inner(left_size: int, right_size: int) -> None:
    if left_size != right_size:
        raise_dimension_error(
            f"Inner dimensions do not agree: {left_size} vs {right_size}",
            array_name="right",
            expected_shape=f"inner dimension {left_size}",
            actual_shape=(right_size,)
        )


def _vector_vector(left: Operand, right: Operand) -> float:
    _check_inner(left.values.size, right.values.size)
    return float(left.values @ right.values)


def _vector_matrix(left: Operand, right: Operand) -> Vector:
    m = right.effective
    _check_inner(left.values.size, m.shape[0])
    return left.values @ m


def _matrix_vector(left: Operand, right: Operand) -> Vector:
    m = left.effective
    _check_inner(m.shape[1], right.values.size)
    return m @ right.values


def _matrix_matrix(left: Operand, right: Operand) -> Matrix:
    lm, rm = left.effective, right.effective
    _check_inner(lm.shape[1], rm.shape[0])
    return lm @ rm


_DOT_TABLE: Dict[Tuple[OperandKind, OperandKind], Callable[[Operand, Operand], Union[float, np.ndarray]]] = {
    (OperandKind.VECTOR, OperandKind.VECTOR): _vector_vector,
    (OperandKind.VECTOR, OperandKind.MATRIX): _vector_matrix,
    (OperandKind.MATRIX, OperandKind.VECTOR): _matrix_vector,
    (OperandKind.MATRIX, OperandKind.MATRIX): _matrix_matrix,
}


def dot(left: Operand, right: Operand) -> Union[float, Vector, Matrix]:
    """
    Dot product of two tagged operands.

    vector·vector gives a float, any product involving one vector gives a
    vector, and matrix·matrix gives a matrix. Matrix operands are transposed
    first when built with ``transpose=True``.

    Examples:
        >>> import numpy as np
        >>> from apop.utils.linear_algebra import Operand, dot
        >>> x = np.array([[1.0, 2.0], [3.0, 4.0]])
        >>> dot(Operand.matrix(x, transpose=True), Operand.vector([1.0, 1.0]))
        array([4., 6.])

    Raises:
        TypeError: If an argument is not an Operand
        DimensionError: If the inner dimensions do not agree
    """
    if not isinstance(left, Operand) or not isinstance(right, Operand):
        raise TypeError("dot expects Operand arguments; use Operand.vector or Operand.matrix")
    return _DOT_TABLE[(left.kind, right.kind)](left, right)


def _paired_vectors(a: Vector, b: Vector, operation: str) -> Tuple[np.ndarray, np.ndarray]:
    a = validate_vector(a, "a")
    b = validate_vector(b, "b")
    if a.shape != b.shape:
        raise ConfigurationError(
            f"{operation} requires vectors of equal length",
            setting="vectors",
            issue=f"lengths {a.size} and {b.size}"
        )
    return a, b


def vector_distance(a: Vector, b: Vector) -> float:
    """Euclidean distance between two vectors of equal length.

    Raises:
        ConfigurationError: If the lengths differ
    """
    a, b = _paired_vectors(a, b, "vector_distance")
    return float(np.sqrt(np.sum((a - b) ** 2)))


def vector_grid_distance(a: Vector, b: Vector) -> float:
    """Manhattan (city-block) distance between two vectors of equal length.

    Raises:
        ConfigurationError: If the lengths differ
    """
    a, b = _paired_vectors(a, b, "vector_grid_distance")
    return float(np.sum(np.abs(a - b)))
