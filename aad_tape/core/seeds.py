# aad_tape/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (dy/dy = 1) at the scalar output and let gradients grow
# backwards through the tape. Every helper here builds its own fresh Tape.
#-----------------------------------------------------------------------------
from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Tuple, Union
import numpy as np

from .node import Node
from .tape import Tape
from .engine import reverse, zero_like


def value(x: Any) -> Any:
    """Return the numeric value of a Node; pass through plain numbers unchanged."""
    return x.value if isinstance(x, Node) else x


def _sweep(y: Any, xs: List[Node], *, scalar_only: bool, caller: str) -> List[Any]:
    if not isinstance(y, Node):
        # Output does not depend on any input.
        if scalar_only and np.shape(y) != ():
            raise ValueError(f"{caller} expects scalar output.")
        return [zero_like(x.value) for x in xs]
    if scalar_only and y.shape != ():
        raise ValueError(f"{caller} expects scalar output.")
    cot = reverse(y)
    return [cot[x] for x in xs]


# ----------------------------- single-input grad ----------------------------- #
def grad(f: Callable[[Node], Any],
         x0: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Gradient of a scalar-output function y=f(x) at x0 (single input).
    """
    x = Tape().leaf(x0, name="x")
    return _sweep(f(x), [x], scalar_only=True, caller="grad(f, x0)")[0]


# ----------------------------- multi-input grads ----------------------------- #
def grads(f: Callable[[Dict[str, Node]], Any],
          inputs: Dict[str, Union[float, np.ndarray]]) -> Dict[str, Union[float, np.ndarray]]:
    """
    Gradient of a scalar-output function y=f(vars) w.r.t. ALL inputs (dict form).
    Performs ONE reverse sweep to obtain all ∂y/∂var simultaneously.

    Parameters
    ----------
    f       : function taking a dict {name: Node} and returning a scalar Node
    inputs  : dict {name: numeric}

    Returns
    -------
    dict {name: numeric}  # gradients in the same key order as `inputs`
    """
    tape = Tape()
    vars_ad = {k: tape.leaf(v, name=k) for k, v in inputs.items()}
    out = _sweep(f(vars_ad), list(vars_ad.values()), scalar_only=True, caller="grads(f, inputs)")
    return dict(zip(inputs.keys(), out))


def grads_list(f: Callable[[List[Node]], Any],
               x0_list: Iterable[Union[float, np.ndarray]]) -> List[Union[float, np.ndarray]]:
    """
    Same as grads(), but the inputs are provided as a list and the result is a list
    of partials in the same order.

    Example
    -------
    f = lambda xs: xs[0]*xs[0] + 3*xs[1]
    grads_list(f, [2.0, 4.0]) -> [4.0, 3.0]
    """
    tape = Tape()
    xs = [tape.leaf(v, name=f"x{i}") for i, v in enumerate(x0_list)]
    return _sweep(f(xs), xs, scalar_only=True, caller="grads_list(f, x0_list)")


def value_and_grad(f: Callable[..., Any], seed: Any = None) -> Callable[..., Tuple[Any, Tuple[Any, ...]]]:
    """
    Wrap `f(*xs)` so that calling the result returns (f(*xs), gradients), the
    gradients being one per positional input. Non-scalar outputs are allowed
    when `seed` (same shape as the output) is given.
    """
    def wrapped(*x0s):
        tape = Tape()
        xs = [tape.leaf(v) for v in x0s]
        y = f(*xs)
        if not isinstance(y, Node):
            return y, tuple(zero_like(x.value) for x in xs)
        if seed is None and y.shape != ():
            raise ValueError("value_and_grad(f) expects scalar output unless a seed is given.")
        cot = reverse(y, seed)
        return y.value, tuple(cot[x] for x in xs)
    return wrapped
