# aad_tape/ops/linalg.py
"""
Linear-algebra operations on 1-D and 2-D arrays.

Vectors are handled by viewing them as a row (left operand) or a column
(right operand), which is how `np.matmul` treats them.
"""
import numpy as np

from ..core.intercept import differentiable
from ..core.sensitivity import per_argument, unbroadcast


def _as_matrices(a, b, ybar):
    a, b = np.asarray(a, dtype=float), np.asarray(b, dtype=float)
    if a.ndim > 2 or b.ndim > 2:
        raise ValueError("matmul/dot sensitivities support at most 2-D operands")
    a2 = a if a.ndim == 2 else a.reshape(1, -1)
    b2 = b if b.ndim == 2 else b.reshape(-1, 1)
    y2 = np.reshape(ybar, (a2.shape[0], b2.shape[1]))
    return a, b, a2, b2, y2


def _matmul_left(y, ybar, ctx, a, b):
    a, b, a2, b2, y2 = _as_matrices(a, b, ybar)
    return (y2 @ b2.T).reshape(a.shape)


def _matmul_right(y, ybar, ctx, a, b):
    a, b, a2, b2, y2 = _as_matrices(a, b, ybar)
    return (a2.T @ y2).reshape(b.shape)


@differentiable("matmul", per_argument(_matmul_left, _matmul_right))
def matmul(a, b):
    return np.matmul(a, b)


def _dot_left(y, ybar, ctx, a, b):
    # np.dot with a 0-d operand is elementwise multiplication
    if np.ndim(a) == 0 or np.ndim(b) == 0:
        return unbroadcast(a, ybar * b)
    return _matmul_left(y, ybar, ctx, a, b)


def _dot_right(y, ybar, ctx, a, b):
    if np.ndim(a) == 0 or np.ndim(b) == 0:
        return unbroadcast(b, ybar * a)
    return _matmul_right(y, ybar, ctx, a, b)


@differentiable("dot", per_argument(_dot_left, _dot_right))
def dot(a, b):
    """np.dot for scalars and 1-D / 2-D operands."""
    return np.dot(a, b)


@differentiable("inv", per_argument(lambda y, ybar, ctx, A: -y.T @ ybar @ y.T))
def inv(A):
    return np.linalg.inv(A)


# The inverse is computed once at forward time and reused by the sensitivity:
# ∂det(A)/∂A = det(A) * A^{-T}
@differentiable(
    "det",
    per_argument(lambda y, ybar, ctx, A: ybar * y * ctx.T),
    preprocess=lambda A: np.linalg.inv(A),
)
def det(A):
    return np.linalg.det(A)


@differentiable("trace", per_argument(lambda y, ybar, ctx, A: ybar * np.eye(*np.shape(A))))
def trace(A):
    return np.trace(A)
