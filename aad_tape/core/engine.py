# aad_tape/core/engine.py
from __future__ import annotations
import numpy as np
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional, Sequence, Union

from .config import AADConfig, get_config
from .errors import CotangentShapeError, GraphMismatchError, MissingSensitivityError
from .intercept import REGISTRY, Registry
from .node import Node, unwrap


def one_like(value: Any):
    """Multiplicative identity with the shape of `value` (d value / d value)."""
    if np.ndim(value) == 0:
        return np.float64(1.0)
    return np.ones_like(value, dtype=float)


def zero_like(value: Any):
    if np.ndim(value) == 0:
        return np.float64(0.0)
    return np.zeros_like(value, dtype=float)


def _is_zero(x) -> bool:
    return not np.any(x)


def _sensitivity_for(branch, registry: Optional[Registry]):
    """
    Provider of the operation that recorded `branch`. An explicit `registry`
    overrides it; Branches appended without an operation fall back to the
    global registry.
    """
    if registry is not None:
        return registry.sensitivity_for(branch.operation, branch.position)
    if branch.op is None:
        return REGISTRY.sensitivity_for(branch.operation, branch.position)
    if branch.op.sensitivity is None:
        raise MissingSensitivityError(branch.operation, branch.position)
    return branch.op.sensitivity


class Cotangents(Mapping):
    """
    Result of a reverse sweep: accumulated cotangent per tape position.

    Indexing with an int returns the stored cotangent (KeyError if the sweep
    never reached that position). Indexing with a Node of the same tape
    returns its cotangent, or zeros of its shape if it received none.
    """

    def __init__(self, tape, accumulated: Dict[int, Any]):
        self.tape = tape
        self._acc = accumulated

    def __getitem__(self, key: Union[int, Node]):
        if isinstance(key, Node):
            if key.tape is not self.tape:
                raise GraphMismatchError("node belongs to a different tape than the swept output")
            return self._acc.get(key.position, zero_like(key.value))
        return self._acc[key]

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._acc))

    def __len__(self) -> int:
        return len(self._acc)

    def __repr__(self):
        return f"Cotangents({dict(sorted(self._acc.items()))!r})"


def reverse(output: Node, seed: Any = None, *, registry: Optional[Registry] = None,
            config: Optional[AADConfig] = None) -> Cotangents:
    """
    Run a single reverse sweep from `output`.

    Args:
        output: the Node to differentiate.
        seed: cotangent of `output`; defaults to ones of the output's shape.
        registry: look sensitivities up here by operation id instead of using
                  the operation each Branch was recorded with.
        config: overrides the active `AADConfig`.

    Notes:
        - Positions are visited strictly from output.position down to 0. A
          Branch only refers to earlier positions, so every consumer of a
          Node has contributed before the Node itself is processed.
        - Contributions are summed (fan-in), never overwritten.
    """
    if not isinstance(output, Node):
        raise TypeError(f"reverse() expects a Node, got {type(output)}")
    if config is None:
        config = get_config()
    tape = output.tape

    if seed is None:
        seed = one_like(output.value)
    elif config.check_shapes and np.shape(seed) != output.shape:
        raise CotangentShapeError(
            f"seed shape {np.shape(seed)} does not match output shape {output.shape}",
            position=output.position,
        )

    acc: Dict[int, Any] = {output.position: seed}
    n_processed = 0

    # Backward sweep
    for i in range(output.position, -1, -1):
        ybar = acc.get(i)
        if ybar is None:
            continue
        branch = tape.get(i)
        if branch is None:
            continue  # leaf: its cotangent is final
        if config.skip_zero_cotangents and _is_zero(ybar):
            continue

        provider = _sensitivity_for(branch, registry)
        tracked = branch.tracked()
        raw = tuple(unwrap(a) for a in branch.args)
        contribs = provider(raw, branch.output, ybar, branch.context, tracked, branch.kwargs)
        if contribs is None or len(contribs) != len(branch.args):
            raise CotangentShapeError(
                f"{branch.operation}@{i}: sensitivity returned "
                f"{'None' if contribs is None else len(contribs)} contributions "
                f"for {len(branch.args)} arguments",
                operation=branch.operation, position=i,
            )
        n_processed += 1
        if config.verbose:
            parents = ", ".join(f"{a.position}" for _, a in branch.parents())
            print(f"[reverse] {i:5d}: {branch.operation:12s} -> [{parents}]")

        for j, (arg, xbar) in enumerate(zip(branch.args, contribs)):
            if not tracked[j] or xbar is None:
                continue
            if config.check_shapes and np.shape(xbar) != arg.shape:
                raise CotangentShapeError(
                    f"{branch.operation}@{i}: cotangent for argument {j} has shape "
                    f"{np.shape(xbar)}, expected {arg.shape}",
                    operation=branch.operation, position=i,
                )
            # Accumulate: x̄ += contribution (never in place: contributions may alias ȳ)
            p = arg.position
            acc[p] = xbar if p not in acc else acc[p] + xbar

    if config.verbose:
        print(f"[reverse] done: {n_processed} branches, {len(acc)} cotangents")
    return Cotangents(tape, acc)


def gradient(output: Node, wrt: Union[Node, Sequence[Node]], seed: Any = None, *,
             registry: Optional[Registry] = None,
             config: Optional[AADConfig] = None) -> Dict[Node, Any]:
    """
    Gradient of `output` with respect to each Node in `wrt`.

    Returns a dict {node: cotangent}. Nodes the output does not depend on get
    zeros of their own shape.

    Example
    -------
    tape = Tape()
    x, y = tape.leaf(2.0), tape.leaf(3.0)
    gradient(x * y, [x, y])  -> {x: 3.0, y: 2.0}
    """
    if not isinstance(output, Node):
        raise TypeError(f"gradient() expects a Node output, got {type(output)}")
    nodes = [wrt] if isinstance(wrt, Node) else list(wrt)
    for n in nodes:
        if not isinstance(n, Node):
            raise TypeError(f"gradient() can only be taken with respect to Nodes, got {type(n)}")
        if n.tape is not output.tape:
            raise GraphMismatchError("mismatched computation graph: wrt node is not on the output's tape")
    cot = reverse(output, seed, registry=registry, config=config)
    return {n: cot[n] for n in nodes}
