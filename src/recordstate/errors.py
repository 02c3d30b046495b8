"""
Exception types raised by recordstate.

Validation failures are not exceptions: they are lists of messages stored on
each record's ``validation_error``. The types below cover the cases where the
structure itself is wrong.
"""

from typing import Optional

__all__ = [
    "RecordStateError",
    "NestedSchemaError",
    "PathResolutionError",
    "TransportError",
]


class RecordStateError(Exception):
    """Base class for recordstate failures."""


class NestedSchemaError(RecordStateError, TypeError):
    """A nested schema entry names something that is neither a record nor a collection type."""


class PathResolutionError(RecordStateError, LookupError):
    """An error path could not be resolved against the nested structure.

    Attributes:
        path: The error path being resolved (string form), if known
        step: The segment at which resolution failed, if known
    """

    def __init__(self, message: str, path: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.step = step

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is None:
            return message
        if self.step is None:
            return f"{message} (path={self.path!r})"
        return f"{message} (path={self.path!r}, step={self.step!r})"


class TransportError(RecordStateError):
    """The remote store rejected or failed a request."""
