# aad_tape/core/config.py
"""
Runtime configuration for the reverse sweep.

A single active `AADConfig` is kept at module level, in the same spirit as the
active tape: it can be replaced for the duration of a block with
`using_config(...)`.
"""
from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class AADConfig:
    """
    Attributes
    ----------
    check_shapes : bool
        Reject cotangents whose shape differs from the forward value's shape.
    skip_zero_cotangents : bool
        Do not call the sensitivity of a Branch whose accumulated cotangent is
        identically zero.
    verbose : bool
        Print one line per processed Branch during the reverse sweep.
    """
    check_shapes: bool = True
    skip_zero_cotangents: bool = True
    verbose: bool = False


_active = AADConfig()


def get_config() -> AADConfig:
    return _active


def set_config(**overrides) -> AADConfig:
    """Replace fields of the active config; returns the previous config."""
    global _active
    prev = _active
    _active = replace(_active, **overrides)
    return prev


@contextmanager
def using_config(**overrides):
    """
    Temporarily override fields of the active config:
        with using_config(verbose=True):
            gradient(y, [x])
    """
    global _active
    prev = _active
    try:
        _active = replace(prev, **overrides)
        yield _active
    finally:
        _active = prev
