# aad_tape/core/tape.py
from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional, Tuple
from contextlib import contextmanager
from .branch import Branch


class Tape:
    """
    An append-only ledger: records Branches in forward order.

    Every slot is either a Branch or None; None marks a leaf (an input Node
    with no producing operation). Slots are never removed or reordered, so a
    Branch at position i can only refer to Nodes at positions < i.
    """
    def __init__(self):
        self._slots: List[Optional[Branch]] = []

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Optional[Branch]]:
        return iter(self._slots)

    def __getitem__(self, position: int) -> Optional[Branch]:
        return self.get(position)

    def __repr__(self):
        return f"Tape(len={len(self)}, branches={len(self.branches)})"

    @property
    def branches(self) -> List[Branch]:
        return [b for b in self._slots if b is not None]

    def get(self, position: int) -> Optional[Branch]:
        """Return the Branch at `position`, or None for a leaf slot."""
        if not 0 <= position < len(self._slots):
            raise IndexError(f"tape position {position} out of range [0, {len(self._slots)})")
        return self._slots[position]

    def is_leaf(self, position: int) -> bool:
        return self.get(position) is None

    def push_leaf(self) -> int:
        """Reserve a slot for a leaf Node; returns its position."""
        self._slots.append(None)
        return len(self._slots) - 1

    def append(self, operation: str, args: Tuple[Any, ...], context: Any = (), *,
               output: Any = None, kwargs: Optional[Dict[str, Any]] = None,
               op: Any = None) -> int:
        """
        Append a Branch(operation, args, context) to the tape.
        Returns the position the Branch was stored at.
        """
        position = len(self._slots)
        self._slots.append(Branch(
            operation=operation, args=tuple(args), context=context,
            position=position, output=output, kwargs=dict(kwargs or {}), op=op,
        ))
        return position

    def leaf(self, value: Any, *, name: Optional[str] = None):
        """Create an input Node on this tape."""
        from .node import Node, as_numeric
        return Node(as_numeric(value), self, self.push_leaf(), name=name)


# Tape used by `leaf()` when no tape is given; None means "start a new one".
active_tape: Optional[Tape] = None


@contextmanager
def use_tape(tape: Optional[Tape] = None):
    """
    Context manager to make one tape the default for `leaf()`:
        with use_tape() as tape:
            x = leaf(2.0); y = leaf(3.0)
            z = x * y
    """
    from . import tape as _tape_mod  # local import to avoid cycles
    prev = _tape_mod.active_tape
    try:
        _tape_mod.active_tape = tape if tape is not None else Tape()
        yield _tape_mod.active_tape
    finally:
        _tape_mod.active_tape = prev


def leaf(value: Any, tape: Optional[Tape] = None, *, name: Optional[str] = None):
    """
    Create an input Node. Uses `tape` if given, else the tape made active by
    `use_tape()`, else a brand-new Tape.
    """
    if tape is None:
        tape = active_tape if active_tape is not None else Tape()
    return tape.leaf(value, name=name)
