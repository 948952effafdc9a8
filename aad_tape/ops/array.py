# aad_tape/ops/array.py
import numpy as np

from ..core.intercept import differentiable
from ..core.sensitivity import per_argument


def _getindex_sensitivity(y, ybar, ctx, x, idx):
    # Scatter ȳ back into a zero array; repeated indices accumulate.
    xbar = np.zeros(np.shape(x), dtype=float)
    np.add.at(xbar, idx, ybar)
    return xbar


@differentiable("getindex", per_argument(_getindex_sensitivity, None), mask=[True, False])
def getindex(x, idx):
    """x[idx]; the index itself is never differentiable."""
    return x[idx]


def expand_reduced(ybar, shape, axis=None, keepdims=False):
    """Broadcast the cotangent of a sum over `axis` back to the summed input's shape."""
    if axis is not None and not keepdims:
        ybar = np.expand_dims(ybar, axis)
    xbar = np.array(np.broadcast_to(ybar, shape), dtype=float)
    return xbar[()] if shape == () else xbar


def _sum_sensitivity(y, ybar, ctx, x, axis=None, keepdims=False):
    return expand_reduced(ybar, np.shape(x), axis, keepdims)


@differentiable("sum", per_argument(_sum_sensitivity))
def sum_(x, axis=None, keepdims=False):
    """np.sum with `axis` / `keepdims` passed through untouched."""
    return np.sum(x, axis=axis, keepdims=keepdims)


@differentiable("reshape", per_argument(
    lambda y, ybar, ctx, x, shape: np.reshape(ybar, np.shape(x)),
    None,
), mask=[True, False])
def reshape(x, shape):
    return np.reshape(x, shape)


def _transpose_sensitivity(y, ybar, ctx, x, axes=None):
    if axes is None:
        return np.transpose(ybar)
    return np.transpose(ybar, np.argsort(axes))


@differentiable("transpose", per_argument(_transpose_sensitivity))
def transpose(x, axes=None):
    return np.transpose(x, axes)
