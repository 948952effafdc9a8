# aad_tape/core/node.py
from __future__ import annotations
import numpy as np
from typing import Any, Optional


def as_numeric(val: Any):
    """
    Convert a user-supplied input to the numeric form stored on a leaf:
      - list/tuple/ndarray -> numpy float64 array
      - int/float/numpy scalar -> numpy float64 scalar
    """
    if isinstance(val, bool) or not isinstance(val, (int, float, np.number, list, tuple, np.ndarray)):
        raise TypeError(
            f"Node only accepts numeric types (int, float, list, tuple, ndarray), "
            f"but got {type(val)}"
        )
    if isinstance(val, (list, tuple, np.ndarray)):
        return np.asarray(val, dtype=np.float64)
    return np.float64(val)


class Node:
    """
    Tracked value for reverse-mode Automatic Differentiation (AD).

    Attributes
    ----------
    value : float | np.ndarray
        Forward (primal) value.
    tape : Tape
        The tape that owns this Node's producing Branch (or leaf slot).
    position : int
        Index on `tape`; the slot is None for leaves, a Branch otherwise.
    name : Optional[str]
        Optional debug/pretty-print name.
    """

    # NumPy binary operators and ufuncs defer to Node's reflected methods.
    __array_ufunc__ = None

    def __init__(self, value: Any, tape, position: int, *, name: Optional[str] = None):
        self.value = value
        self.tape = tape
        self.position = position
        self.name = name

    def __repr__(self):
        kind = "leaf" if self.is_leaf else self.tape.get(self.position).operation
        return f"Node({self.value!r}, {kind}@{self.position}, name={self.name!r})"

    @property
    def is_leaf(self) -> bool:
        return self.tape.is_leaf(self.position)

    @property
    def shape(self):
        return np.shape(self.value)

    @property
    def ndim(self) -> int:
        return np.ndim(self.value)

    # Operator overloading for arithmetic operations
    def __add__(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        from ..ops.arithmetic import sub
        return sub(self, other)

    def __rsub__(self, other):
        from ..ops.arithmetic import sub
        return sub(other, self)

    def __mul__(self, other):
        from ..ops.arithmetic import mul
        return mul(self, other)

    def __rmul__(self, other):
        from ..ops.arithmetic import mul
        return mul(other, self)

    def __truediv__(self, other):
        from ..ops.arithmetic import div
        return div(self, other)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import div
        return div(other, self)

    def __neg__(self):
        from ..ops.arithmetic import neg
        return neg(self)

    def __pow__(self, other):
        from ..ops.arithmetic import pow
        return pow(self, other)

    def __rpow__(self, other):
        from ..ops.arithmetic import pow
        return pow(other, self)

    def __matmul__(self, other):
        from ..ops.linalg import matmul
        return matmul(self, other)

    def __rmatmul__(self, other):
        from ..ops.linalg import matmul
        return matmul(other, self)

    def __getitem__(self, idx):
        from ..ops.array import getindex
        return getindex(self, idx)

    @property
    def T(self):
        from ..ops.array import transpose
        return transpose(self)


def unwrap(x: Any) -> Any:
    """Return the value of a Node; pass everything else through unchanged."""
    return x.value if isinstance(x, Node) else x
