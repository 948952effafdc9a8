"""
Finite-difference checks for sensitivities.

Formulas:
    df/dx_i ≈ [f(x + ε e_i) - f(x - ε e_i)] / (2ε)                  (central_difference)
    <ȳ, J v> ≈ <ȳ, f(x + ε v) - f(x - ε v)> / (2ε)                  (directional_errors)

`directional_errors` compares the reverse-mode quantity Σ_i <x̄_i, v_i>
against the central difference along a random direction v, which checks every
argument's sensitivity with two extra forward evaluations.
"""

import numpy as np
from typing import Any, Callable, Optional, Sequence, Tuple

from .core.engine import reverse
from .core.intercept import Intercepted
from .core.tape import Tape


def central_difference(f: Callable[[Any], Any], x, eps: float = 1e-6):
    """
    Gradient of a scalar-valued f at x by bumping one component at a time.
    Returns a float for scalar x, an array of x's shape otherwise.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim == 0:
        return float((f(x + eps) - f(x - eps)) / (2 * eps))
    g = np.zeros_like(x)
    for idx in np.ndindex(x.shape):
        e = np.zeros_like(x)
        e[idx] = eps
        g[idx] = (f(x + e) - f(x - e)) / (2 * eps)
    return g


def _default_wrt(op: Intercepted, args: Sequence[Any]) -> Tuple[int, ...]:
    operation = op.operation
    return tuple(
        i for i, a in enumerate(args)
        if operation.is_differentiable(i)
        and isinstance(a, (float, np.floating, np.ndarray))
    )


def directional_errors(op: Intercepted, *args, wrt: Optional[Sequence[int]] = None,
                       seed: Any = None, eps: float = 1e-6,
                       rng: Optional[np.random.Generator] = None, **kwargs) -> Tuple[float, float]:
    """
    Return (reverse-mode, finite-difference) estimates of <ȳ, J v> for the
    registered operation `op` at `args`.

    Args:
        op: an operation returned by `register_operation` / `@differentiable`.
        wrt: argument positions to perturb; default every differentiable
             float / ndarray argument.
        seed: output cotangent ȳ; default a random array of the output's shape.
        eps: finite-difference step.
        rng: random generator for ȳ and v.
        **kwargs: forwarded to the operation.
    """
    rng = rng if rng is not None else np.random.default_rng(0)
    wrt = tuple(_default_wrt(op, args) if wrt is None else wrt)
    if not wrt:
        raise ValueError(f"{op.name}: no argument to differentiate")

    # Reverse mode
    tape = Tape()
    call_args = list(args)
    for i in wrt:
        call_args[i] = tape.leaf(args[i])
    y = op(*call_args, **kwargs)
    y_shape = np.shape(y.value)
    ybar = rng.standard_normal(y_shape) if seed is None else seed
    if np.ndim(ybar) == 0:
        ybar = np.float64(ybar)
    cot = reverse(y, ybar)

    directions = {i: rng.standard_normal(np.shape(args[i])) for i in wrt}
    ad = sum(float(np.sum(cot[call_args[i]] * directions[i])) for i in wrt)

    # Central difference along v
    def bumped(sign):
        xs = list(args)
        for i in wrt:
            xs[i] = np.asarray(args[i], dtype=float) + sign * eps * directions[i]
            if np.ndim(args[i]) == 0:
                xs[i] = float(xs[i])
        return op.forward(*xs, **kwargs)

    fd = float(np.sum(ybar * (bumped(+1.0) - bumped(-1.0)))) / (2 * eps)
    return ad, fd


def check_sensitivity(op: Intercepted, *args, rtol: float = 1e-5, atol: float = 1e-8, **kwargs) -> bool:
    """True when reverse-mode and finite differences agree (see `directional_errors`)."""
    ad, fd = directional_errors(op, *args, **kwargs)
    return bool(np.isclose(ad, fd, rtol=rtol, atol=atol))
