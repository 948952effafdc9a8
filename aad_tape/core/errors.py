# aad_tape/core/errors.py
"""
Exceptions raised by the AAD core.

Every condition below aborts the current evaluation; nothing is recovered
internally. Each class also derives from the builtin it most resembles so
callers can keep catching `ValueError` / `LookupError`.
"""


class AADError(Exception):
    """Base class for all errors raised by aad_tape."""


class ConfigurationError(AADError, ValueError):
    """Malformed or conflicting operation registration."""


class GraphMismatchError(AADError, ValueError):
    """Tracked values from different tapes were mixed in one call."""


class CotangentShapeError(AADError, ValueError):
    """
    A cotangent does not match the shape of the value it belongs to.

    Attributes
    ----------
    operation : str | None
        Operation id of the offending Branch (None for the seed).
    position : int | None
        Tape position of the offending Branch.
    """

    def __init__(self, message, *, operation=None, position=None):
        super().__init__(message)
        self.operation = operation
        self.position = position


class MissingSensitivityError(AADError, LookupError):
    """A recorded Branch names an operation with no sensitivity bound."""

    def __init__(self, operation, position=None):
        where = "" if position is None else f" (tape position {position})"
        super().__init__(f"no sensitivity registered for operation {operation!r}{where}")
        self.operation = operation
        self.position = position
