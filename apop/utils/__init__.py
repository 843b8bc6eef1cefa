"""
apop Utilities Module

Numerical helpers used around an estimation: linear-algebra conveniences
(LU determinant/inverse, principal components, stacking, tagged dot
products, vector distances) and finite-difference derivatives.
"""

import logging

logger = logging.getLogger("apop.utils")

from .linear_algebra import (
    det_and_inv,
    matrix_inverse,
    matrix_determinant,
    sv_decomposition,
    matrix_stack,
    vector_stack,
    remove_columns,
    vector_bounded,
    Operand,
    OperandKind,
    dot,
    vector_distance,
    vector_grid_distance,
)

from .differentiation import (
    gradient_2sided,
    hessian_2sided,
)

__all__ = [
    # Linear algebra
    'det_and_inv',
    'matrix_inverse',
    'matrix_determinant',
    'sv_decomposition',
    'matrix_stack',
    'vector_stack',
    'remove_columns',
    'vector_bounded',
    'Operand',
    'OperandKind',
    'dot',
    'vector_distance',
    'vector_grid_distance',

    # Differentiation
    'gradient_2sided',
    'hessian_2sided',
]
