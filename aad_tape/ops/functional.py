# aad_tape/ops/functional.py
"""
Higher-order operations: apply a user function to every element.

    map_(f, *xs)         : f applied elementwise; all xs must have one shape
    broadcast_(f, *xs)   : same, with NumPy broadcasting between the xs
    mapreduce_(f, x, axis=None, keepdims=False) : sum of f(x) over `axis`

`f` is never differentiated as an argument. It must take and return scalars
and be built from registered operations (or plain arithmetic on Nodes), so
that the reverse sweep can pull back through it: for each element, `f` is
re-run on a fresh Tape with the tracked inputs as leaves, and the partials
obtained from that nested sweep are multiplied with the outer cotangent.
`f` must not close over Nodes of the outer tape.
"""
import numpy as np

from ..core.engine import reverse
from ..core.intercept import differentiable
from ..core.node import Node
from ..core.sensitivity import per_argument, unbroadcast
from ..core.tape import Tape
from .array import expand_reduced


def _apply(f, xs):
    if not xs:
        raise TypeError("at least one array argument is required")
    out = np.vectorize(f, otypes=[float])(*[np.asarray(x, dtype=float) for x in xs])
    return out[()] if out.ndim == 0 else out


def elementwise_partials(f, xs, tracked):
    """
    Partial derivatives of the scalar function `f` at every element of the
    broadcast `xs`: one array of the broadcast shape per tracked input, None
    for the others.
    """
    arrays = np.broadcast_arrays(*[np.asarray(x, dtype=float) for x in xs])
    shape = arrays[0].shape
    partials = [np.zeros(shape) if t else None for t in tracked]
    for idx in np.ndindex(*shape):
        tape = Tape()
        args = [tape.leaf(a[idx]) if t else a[idx] for a, t in zip(arrays, tracked)]
        y = f(*args)
        if not isinstance(y, Node):
            continue  # constant in every tracked input
        cot = reverse(y)
        for k, arg in enumerate(args):
            if tracked[k]:
                partials[k][idx] = cot[arg]
    return partials


def _elementwise_sensitivity(args, output, cotangent, context, tracked, kwargs):
    f, xs = args[0], args[1:]
    partials = elementwise_partials(f, xs, tracked[1:])
    return (None,) + tuple(
        None if p is None else unbroadcast(x, cotangent * p)
        for x, p in zip(xs, partials)
    )


@differentiable("map", _elementwise_sensitivity, mask=[False, True])
def map_(f, *xs):
    """Elementwise f(x1[i], x2[i], ...) over arrays of one shape."""
    shapes = {np.shape(x) for x in xs}
    if len(shapes) > 1:
        raise ValueError(f"map_: arguments have different shapes {sorted(shapes)}")
    return _apply(f, xs)


@differentiable("broadcast", _elementwise_sensitivity, mask=[False, True])
def broadcast_(f, *xs):
    """Elementwise f over the NumPy broadcast of xs."""
    return _apply(f, xs)


def _mapreduce_x(y, ybar, ctx, f, x, axis=None, keepdims=False):
    (partial,) = elementwise_partials(f, (x,), (True,))
    return expand_reduced(ybar, np.shape(x), axis, keepdims) * partial


@differentiable("mapreduce", per_argument(None, _mapreduce_x), mask=[False, True])
def mapreduce_(f, x, axis=None, keepdims=False):
    """sum(f(x)) over `axis`, with `axis` / `keepdims` as in np.sum."""
    return np.sum(_apply(f, (x,)), axis=axis, keepdims=keepdims)
