# aad_tape/ops/__init__.py

# Importing the modules registers every operation with the global registry
from . import arithmetic
from . import transcendental
from . import special
from . import array
from . import linalg
from . import functional

# Convenience re-exports so users can do: from aad_tape.ops import mul, exp, ...
from .arithmetic import add, sub, mul, div, neg, pow, add_n
from .transcendental import exp, log, sqrt, sin, cos, tanh, erf
from .special import norm_cdf
from .array import getindex, sum_, reshape, transpose
from .linalg import matmul, dot, inv, det, trace
from .functional import map_, broadcast_, mapreduce_

__all__ = [
    "add", "sub", "mul", "div", "neg", "pow", "add_n",
    "exp", "log", "sqrt", "sin", "cos", "tanh", "erf",
    "norm_cdf",
    "getindex", "sum_", "reshape", "transpose",
    "matmul", "dot", "inv", "det", "trace",
    "map_", "broadcast_", "mapreduce_",
]
