# aad_tape/core/__init__.py

"""
Core public API for the AAD package.

Exports:
    Node               : tracked value recorded on a Tape.
    Tape, Branch       : the append-only ledger and its records.
    leaf, use_tape     : create input Nodes / choose the default tape for them.
    register_operation : make a function differentiable (also `@differentiable`).
    define_sensitivity : bind a sensitivity to a registered operation.
    reverse, gradient  : run the reverse sweep.
    grad, grads, ...   : functional helpers that build their own tape.
"""

from .errors import (
    AADError,
    ConfigurationError,
    GraphMismatchError,
    CotangentShapeError,
    MissingSensitivityError,
)
from .config import AADConfig, get_config, set_config, using_config
from .branch import Branch
from .node import Node
from .tape import Tape, leaf, use_tape
from .sensitivity import per_argument, unbroadcast, default_preprocess
from .intercept import (
    Operation,
    Registry,
    REGISTRY,
    Intercepted,
    register_operation,
    differentiable,
    define_sensitivity,
)
from .engine import reverse, gradient, Cotangents
from .seeds import value, grad, grads, grads_list, value_and_grad

__all__ = [
    "AADError", "ConfigurationError", "GraphMismatchError",
    "CotangentShapeError", "MissingSensitivityError",
    "AADConfig", "get_config", "set_config", "using_config",
    "Branch", "Node", "Tape", "leaf", "use_tape",
    "per_argument", "unbroadcast", "default_preprocess",
    "Operation", "Registry", "REGISTRY", "Intercepted",
    "register_operation", "differentiable", "define_sensitivity",
    "reverse", "gradient", "Cotangents",
    "value", "grad", "grads", "grads_list", "value_and_grad",
]
