# aad_tape/ops/transcendental.py
import numpy as np
from scipy.special import erf as scipy_erf

from ..core.intercept import differentiable
from ..core.sensitivity import per_argument


@differentiable("exp", per_argument(lambda y, ybar, ctx, x: ybar * y))
def exp(x):
    return np.exp(x)


@differentiable("log", per_argument(lambda y, ybar, ctx, x: ybar / x))
def log(x):
    return np.log(x)


@differentiable("sqrt", per_argument(lambda y, ybar, ctx, x: ybar * 0.5 / y))
def sqrt(x):
    return np.sqrt(x)


@differentiable("sin", per_argument(lambda y, ybar, ctx, x: ybar * np.cos(x)))
def sin(x):
    return np.sin(x)


@differentiable("cos", per_argument(lambda y, ybar, ctx, x: -ybar * np.sin(x)))
def cos(x):
    return np.cos(x)


@differentiable("tanh", per_argument(lambda y, ybar, ctx, x: ybar * (1.0 - y * y)))
def tanh(x):
    return np.tanh(x)


@differentiable("erf", per_argument(
    lambda y, ybar, ctx, x: ybar * (2.0 / np.sqrt(np.pi)) * np.exp(-np.square(x)),
))
def erf(x):
    """
    Error function: erf(x) = (2/√π) ∫₀ˣ e^(-t²) dt

    Derivative: d/dx erf(x) = (2/√π) * e^(-x²)
    """
    return scipy_erf(x)
