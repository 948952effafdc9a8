# aad_tape/ops/arithmetic.py
import functools
import operator

import numpy as np

from ..core.intercept import differentiable
from ..core.sensitivity import per_argument, unbroadcast


@differentiable("add", per_argument(
    lambda y, ybar, ctx, a, b: unbroadcast(a, ybar),
    lambda y, ybar, ctx, a, b: unbroadcast(b, ybar),
))
def add(a, b):
    return a + b


@differentiable("sub", per_argument(
    lambda y, ybar, ctx, a, b: unbroadcast(a, ybar),
    lambda y, ybar, ctx, a, b: unbroadcast(b, -ybar),
))
def sub(a, b):
    return a - b


@differentiable("mul", per_argument(
    lambda y, ybar, ctx, a, b: unbroadcast(a, ybar * b),
    lambda y, ybar, ctx, a, b: unbroadcast(b, ybar * a),
))
def mul(a, b):
    return a * b


@differentiable("div", per_argument(
    lambda y, ybar, ctx, a, b: unbroadcast(a, ybar / b),
    lambda y, ybar, ctx, a, b: unbroadcast(b, -ybar * a / np.square(b)),
))
def div(a, b):
    return a / b


@differentiable("neg", per_argument(lambda y, ybar, ctx, x: -ybar))
def neg(x):
    return -x


def _pow_base(y, ybar, ctx, x, p):
    # ∂(x^p)/∂x = p * x^(p-1)
    return unbroadcast(x, ybar * p * np.power(x, np.subtract(p, 1.0)))


def _pow_exponent(y, ybar, ctx, x, p):
    # ∂(x^p)/∂p = x^p * log(x); only defined for x > 0, taken as 0 elsewhere
    xv = np.asarray(x, dtype=float)
    safe_log = np.log(np.where(xv > 0, xv, 1.0))
    return unbroadcast(p, ybar * y * safe_log)


@differentiable("pow", per_argument(_pow_base, _pow_exponent))
def pow(x, p):
    """
    Power (demo-level domain handling): x ** p.
    The exponent sensitivity requires x > 0 for non-integer p.
    """
    return x ** p


@differentiable("add_n", per_argument(
    variadic=lambda i, y, ybar, ctx, *xs: unbroadcast(xs[i], ybar),
))
def add_n(*xs):
    """Sum of any number of arguments: add_n(a, b, c, ...) = a + b + c + ..."""
    return functools.reduce(operator.add, xs)
