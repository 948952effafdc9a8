# aad_tape/core/branch.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True, eq=False)
class Branch:
    """
    One record on the tape produced by an intercepted operation.

    Attributes
    ----------
    operation : str
        Id of the intercepted operation (e.g., "add", "mul").
    args      : Tuple[Any, ...]
        The positional arguments exactly as passed at the call site: a mix of
        Nodes and plain values, variadic tail included.
    context   : Any
        Payload returned by the operation's preprocessing hook at forward time;
        handed back to the sensitivity during the reverse sweep.
    position  : int
        Index of this record on its tape.
    output    : Any
        Forward value computed for this call (unwrapped).
    kwargs    : Dict[str, Any]
        Keyword arguments, forwarded unchanged to forward/preprocess/sensitivity.
    op        : Optional[Operation]
        The registered operation that intercepted the call. The reverse sweep
        takes the sensitivity from here, so a Branch keeps the definition it
        was recorded with, even if the id is re-registered later.
    """
    operation: str
    args: Tuple[Any, ...]
    context: Any
    position: int
    output: Any = None
    kwargs: Dict[str, Any] = field(default_factory=dict)
    op: Optional[Any] = None

    def tracked(self) -> Tuple[bool, ...]:
        """Per-argument flag: is the argument a Node."""
        from .node import Node
        return tuple(isinstance(a, Node) for a in self.args)

    def parents(self) -> List[Tuple[int, Any]]:
        """List of (argument index, Node) pairs for the tracked arguments."""
        from .node import Node
        return [(i, a) for i, a in enumerate(self.args) if isinstance(a, Node)]
