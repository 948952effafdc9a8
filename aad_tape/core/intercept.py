# aad_tape/core/intercept.py
"""
Interception registry.

Registering an operation returns a callable that behaves exactly like the
plain function, except that when any of its arguments is a Node the call is
recorded as a Branch on that Node's tape and a new Node is returned.

Whether a call is recorded is decided at call time from the arguments
themselves: each fixed position is checked with `is_tracked`, the variadic
tail (if any) counts as tracked when any of its elements is. When nothing is
tracked the plain function is called unchanged and no tape is touched.
"""
from __future__ import annotations
import functools
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import ConfigurationError, GraphMismatchError, MissingSensitivityError
from .node import Node, unwrap
from .sensitivity import Pullback, default_preprocess


def is_tracked(x: Any) -> bool:
    return isinstance(x, Node)


@dataclass
class Operation:
    """
    A differentiable operation as seen by the core.

    Attributes
    ----------
    name        : str
        Operation id recorded on every Branch.
    forward     : Callable
        The plain (non-intercepted) implementation.
    arity       : int
        Number of fixed positional parameters.
    variadic    : bool
        Whether a variable number of positional arguments follows the fixed ones.
    mask        : Tuple[bool, ...]
        Differentiability per fixed position, plus one trailing entry for the
        variadic tail when `variadic` is True.
    sensitivity : Optional[Pullback]
        Provider used by the reverse sweep; may be bound after registration.
    preprocess  : Callable
        Hook run on unwrapped arguments at forward time; its result is stored
        as the Branch context.
    """
    name: str
    forward: Callable
    arity: int
    variadic: bool
    mask: Tuple[bool, ...]
    sensitivity: Optional[Pullback] = None
    preprocess: Callable = default_preprocess

    def is_differentiable(self, index: int) -> bool:
        """Can the positional argument at `index` ever be a Node."""
        if index < self.arity:
            return self.mask[index]
        return self.variadic and self.mask[-1]

    def declaration(self) -> Tuple[int, bool, Tuple[bool, ...]]:
        return self.arity, self.variadic, self.mask


def _signature_arity(forward: Callable) -> Optional[Tuple[int, bool]]:
    """
    (number of required positional parameters, has *args) from the signature,
    or None when the callable cannot be inspected (e.g. NumPy ufuncs).
    """
    try:
        sig = inspect.signature(forward)
    except (TypeError, ValueError):
        return None
    arity, variadic = 0, False
    for p in sig.parameters.values():
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty:
            arity += 1
        elif p.kind == p.VAR_POSITIONAL:
            variadic = True
    return arity, variadic


def _build_operation(name, forward, sensitivity, arity, variadic, mask, preprocess) -> Operation:
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"operation id must be a non-empty string, got {name!r}")
    if not callable(forward):
        raise ConfigurationError(f"{name}: forward implementation must be callable")
    if sensitivity is not None and not callable(sensitivity):
        raise ConfigurationError(f"{name}: sensitivity must be callable")
    if preprocess is None:
        preprocess = default_preprocess
    elif not callable(preprocess):
        raise ConfigurationError(f"{name}: preprocess hook must be callable")

    inferred = _signature_arity(forward)
    if arity is None:
        if inferred is None:
            raise ConfigurationError(f"{name}: cannot infer arity of {forward!r}; pass arity=")
        arity = inferred[0]
    if variadic is None:
        variadic = inferred[1] if inferred is not None else False
    if isinstance(arity, bool) or not isinstance(arity, int) or arity < 0:
        raise ConfigurationError(f"{name}: arity must be a non-negative int, got {arity!r}")
    if variadic and inferred is not None and not inferred[1]:
        raise ConfigurationError(f"{name}: declared variadic but {forward!r} takes no *args")

    expected = arity + (1 if variadic else 0)
    if mask is None:
        mask = (True,) * expected
    mask = tuple(mask)
    if len(mask) != expected:
        raise ConfigurationError(
            f"{name}: differentiability mask has {len(mask)} entries, expected {expected} "
            f"({arity} fixed{' + variadic tail' if variadic else ''})"
        )
    if not all(isinstance(m, (bool, np.bool_)) for m in mask):
        raise ConfigurationError(f"{name}: differentiability mask entries must be bool, got {mask!r}")
    mask = tuple(bool(m) for m in mask)
    if not any(mask):
        raise ConfigurationError(f"{name}: differentiability mask has no differentiable position")

    op = Operation(name, forward, arity, bool(variadic), mask, sensitivity, preprocess)
    _check_rules(op, sensitivity)
    return op


def _check_rules(op: Operation, sensitivity) -> None:
    """Providers built with `per_argument` must cover every differentiable position."""
    rules = getattr(sensitivity, "rules", None)
    if rules is None:
        return
    for i in range(op.arity):
        if op.mask[i] and (i >= len(rules) or rules[i] is None):
            raise ConfigurationError(f"{op.name}: no sensitivity rule for differentiable argument {i}")
    if op.variadic and op.mask[-1] and getattr(sensitivity, "variadic", None) is None:
        raise ConfigurationError(f"{op.name}: no sensitivity rule for the variadic tail")


class Registry:
    """Lookup table from operation id to `Operation`."""

    def __init__(self):
        self._ops: Dict[str, Operation] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._ops

    def __iter__(self) -> Iterator[str]:
        return iter(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def register(self, name: str, forward: Callable, sensitivity: Optional[Pullback] = None, *,
                 arity: Optional[int] = None, variadic: Optional[bool] = None,
                 mask: Optional[Sequence[bool]] = None,
                 preprocess: Optional[Callable] = None) -> "Intercepted":
        """
        Register `forward` under `name` and return its intercepting wrapper.

        Registering the same id again is allowed only with the same arity,
        variadic flag and mask; the new definition then replaces the old one
        (an already bound sensitivity is kept if none is given).
        """
        op = _build_operation(name, forward, sensitivity, arity, variadic, mask, preprocess)
        existing = self._ops.get(name)
        if existing is not None:
            if existing.declaration() != op.declaration():
                raise ConfigurationError(
                    f"{name}: conflicting registration; already declared as "
                    f"arity={existing.arity}, variadic={existing.variadic}, mask={existing.mask}, "
                    f"got arity={op.arity}, variadic={op.variadic}, mask={op.mask}"
                )
            if op.sensitivity is None:
                op.sensitivity = existing.sensitivity
        self._ops[name] = op
        return Intercepted(name, self)

    def lookup(self, name: str) -> Operation:
        try:
            return self._ops[name]
        except KeyError:
            raise KeyError(f"operation {name!r} is not registered") from None

    def bind_sensitivity(self, name: str, sensitivity: Pullback) -> Pullback:
        op = self.lookup(name)
        if not callable(sensitivity):
            raise ConfigurationError(f"{name}: sensitivity must be callable")
        _check_rules(op, sensitivity)
        op.sensitivity = sensitivity
        return sensitivity

    def sensitivity_for(self, name: str, position: Optional[int] = None) -> Pullback:
        op = self._ops.get(name)
        if op is None or op.sensitivity is None:
            raise MissingSensitivityError(name, position)
        return op.sensitivity


class Intercepted:
    """
    Call-compatible wrapper around a registered operation.

    Attributes
    ----------
    name     : str
    registry : Registry
    """

    def __init__(self, name: str, registry: Registry):
        self.name = name
        self.registry = registry
        functools.update_wrapper(self, registry.lookup(name).forward, updated=())

    def __repr__(self):
        return f"<intercepted {self.name}>"

    @property
    def operation(self) -> Operation:
        return self.registry.lookup(self.name)

    @property
    def forward(self) -> Callable:
        return self.operation.forward

    def __call__(self, *args, **kwargs):
        op = self.operation
        fixed, tail = args[:op.arity], args[op.arity:]
        fixed_tracked = [is_tracked(a) for a in fixed]
        tail_tracked = op.variadic and any(is_tracked(a) for a in tail)

        if not any(fixed_tracked) and not tail_tracked:
            if any(is_tracked(a) for a in tail):
                _reject_untrackable(op, args)
            return op.forward(*args, **kwargs)

        _reject_untrackable(op, args)
        tape = _shared_tape(op, fixed, fixed_tracked, tail if tail_tracked else ())

        raw = tuple(unwrap(a) for a in args)
        context = op.preprocess(*raw, **kwargs)
        output = op.forward(*raw, **kwargs)
        position = tape.append(op.name, args, context, output=output, kwargs=kwargs, op=op)
        return Node(output, tape, position)


def _reject_untrackable(op: Operation, args: Tuple[Any, ...]) -> None:
    for i, a in enumerate(args):
        if is_tracked(a) and not op.is_differentiable(i):
            raise TypeError(f"{op.name}: argument {i} is not differentiable but received a Node")


def _shared_tape(op: Operation, fixed, fixed_tracked, tail):
    """
    Tape of the first tracked argument (fixed positions left to right, then
    the tail). All other tracked arguments must live on the same tape.
    """
    nodes = [a for a, t in zip(fixed, fixed_tracked) if t]
    nodes.extend(a for a in tail if is_tracked(a))
    tape = nodes[0].tape
    for n in nodes[1:]:
        if n.tape is not tape:
            raise GraphMismatchError(
                f"{op.name}: mismatched computation graph; arguments come from different tapes "
                f"({tape!r} and {n.tape!r})"
            )
    return tape


# Process-wide registry used by the bundled operations.
REGISTRY = Registry()


def register_operation(name: str, forward: Callable, sensitivity: Optional[Pullback] = None, *,
                       arity: Optional[int] = None, variadic: Optional[bool] = None,
                       mask: Optional[Sequence[bool]] = None,
                       preprocess: Optional[Callable] = None,
                       registry: Optional[Registry] = None) -> Intercepted:
    """Register a differentiable operation; see `Registry.register`."""
    if registry is None:
        registry = REGISTRY
    return registry.register(
        name, forward, sensitivity, arity=arity, variadic=variadic, mask=mask, preprocess=preprocess,
    )


def differentiable(name: Optional[str] = None, sensitivity: Optional[Pullback] = None, *,
                   arity: Optional[int] = None, variadic: Optional[bool] = None,
                   mask: Optional[Sequence[bool]] = None,
                   preprocess: Optional[Callable] = None,
                   registry: Optional[Registry] = None):
    """
    Decorator form of `register_operation`:

        @differentiable(sensitivity=per_argument(lambda y, ybar, ctx, x: ybar * y))
        def exp(x):
            return np.exp(x)
    """
    def decorate(fn):
        return register_operation(
            name or fn.__name__, fn, sensitivity, arity=arity, variadic=variadic,
            mask=mask, preprocess=preprocess, registry=registry,
        )
    return decorate


def define_sensitivity(op: Union[str, Intercepted], registry: Optional[Registry] = None):
    """
    Decorator binding a provider to an already registered operation:

        @define_sensitivity(my_op)
        def _(args, output, cotangent, context, tracked, kwargs): ...
    """
    if isinstance(op, Intercepted):
        registry, name = op.registry if registry is None else registry, op.name
    else:
        registry, name = REGISTRY if registry is None else registry, op

    def decorate(provider):
        return registry.bind_sensitivity(name, provider)
    return decorate
