# aad_tape/core/sensitivity.py
"""
Interface between the core and per-operation sensitivity definitions.

A sensitivity provider (a "pullback") is any callable

    provider(args, output, cotangent, context, tracked, kwargs) -> Sequence

where
    args      : unwrapped positional arguments of the recorded call
    output    : the forward value of the call
    cotangent : accumulated cotangent of the output
    context   : whatever the operation's preprocessing hook returned
    tracked   : tuple of bools, one per argument (is it a Node)
    kwargs    : keyword arguments of the call

and returns one entry per positional argument: the cotangent contribution
for a tracked argument, anything (usually None) for an untracked one. The
core keeps no provider state between calls.
"""
from __future__ import annotations
import numpy as np
from typing import Any, Callable, Optional, Sequence

Pullback = Callable[..., Sequence[Any]]


def default_preprocess(*args, **kwargs):
    """Preprocessing hook used when an operation declares none."""
    return ()


def per_argument(*rules: Optional[Callable], variadic: Optional[Callable] = None) -> Pullback:
    """
    Build a provider from one rule per fixed argument position.

    Each rule is called as ``rule(y, ybar, ctx, *args, **kwargs)`` and returns
    the cotangent for its own argument. Use None for positions that are never
    differentiable. For a variadic tail, ``variadic(i, y, ybar, ctx, *args,
    **kwargs)`` returns the cotangent of ``args[i]``.

    Rules run only for tracked arguments.

    Example
    -------
    mul_sensitivity = per_argument(
        lambda y, ybar, ctx, a, b: ybar * b,
        lambda y, ybar, ctx, a, b: ybar * a,
    )
    """
    n_fixed = len(rules)

    def provider(args, output, cotangent, context, tracked, kwargs):
        out = []
        for i, is_tracked in enumerate(tracked):
            if not is_tracked:
                out.append(None)
            elif i < n_fixed:
                out.append(rules[i](output, cotangent, context, *args, **kwargs))
            else:
                out.append(variadic(i, output, cotangent, context, *args, **kwargs))
        return tuple(out)

    provider.rules = rules
    provider.variadic = variadic
    return provider


def unbroadcast(target: Any, cotangent: Any):
    """
    Reduce `cotangent` to the shape of `target` by summing over the axes that
    NumPy broadcasting added or stretched in the forward pass.
    """
    shape = np.shape(target)
    cot = np.asarray(cotangent)
    if cot.shape == shape:
        return cotangent
    extra = cot.ndim - len(shape)
    if extra < 0:
        return np.broadcast_to(cot, shape).copy()
    if extra:
        cot = cot.sum(axis=tuple(range(extra)))
    stretched = tuple(i for i, n in enumerate(shape) if n == 1 and cot.shape[i] != 1)
    if stretched:
        cot = cot.sum(axis=stretched, keepdims=True)
    return cot[()] if shape == () else cot
