# aad_tape/__init__.py
# Reverse-mode automatic differentiation on an append-only tape

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all

# Bundled operations (importing registers them)
from . import ops
from .ops import (
    add, sub, mul, div, neg, pow, add_n,
    exp, log, sqrt, sin, cos, tanh, erf,
    norm_cdf,
    getindex, sum_, reshape, transpose,
    matmul, dot, inv, det, trace,
    map_, broadcast_, mapreduce_,
)

# Graph inspection
from .core.graph_utils import (
    get_graph_stats,
    print_graph_summary,
    print_computation_graph,
    analyze_graph_complexity,
)

__all__ = list(_core_all) + ops.__all__ + [
    "ops",
    "get_graph_stats",
    "print_graph_summary",
    "print_computation_graph",
    "analyze_graph_complexity",
]
