"""Error taxonomy for tree serialization, parsing, planning, and execution.

Parse and plan errors propagate to the caller. Execution errors are captured
into an ``AppliedSummary`` by the executor instead of being raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .reconcile.operations import Operation


class TidyUpError(Exception):
    """Base class for every error raised by tidyup."""


class SerializeError(TidyUpError):
    """The directory to serialize cannot be walked."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class RootNotFoundError(SerializeError):
    """The root path does not exist."""


class RootNotADirectoryError(SerializeError):
    """The root path exists but is not a directory."""


class TreeParseError(TidyUpError):
    """Tree text could not be parsed; carries the offending line."""

    def __init__(self, message: str, line_number: int | None = None, line: str | None = None) -> None:
        self.reason = message
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}"
            if line is not None:
                message = f"{message}: {line.rstrip()!r}"
        super().__init__(message)


class MalformedLineError(TreeParseError):
    """A line does not follow the ``<indent>- <content>`` grammar."""


class DuplicateEntryError(MalformedLineError):
    """Two siblings share a name and cannot be merged."""


class InvalidIndentationError(TreeParseError):
    """A line skips a depth level, has odd indentation, or nests under a file."""


class InvalidTimestampError(TreeParseError):
    """A file annotation holds an unparseable timestamp (recovered locally)."""


class MissingTreeSectionError(TreeParseError):
    """Recommendation text has no ``Revised Directory Tree:`` section."""


class PlanError(TidyUpError):
    """The planner refuses to reconcile the given trees."""


class StructuralMismatchError(PlanError):
    """Old and new trees cannot be paired without guessing."""


class ExecutionError(TidyUpError):
    """A planned filesystem operation failed."""

    def __init__(self, message: str, operation: Operation | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class FilesystemError(ExecutionError):
    """A directory could not be created or removed (permissions, disk full, ...)."""


class FolderCreationError(FilesystemError):
    """Creating a directory failed for a reason other than it existing."""


class SourceMissingError(ExecutionError):
    """The source of a move disappeared between planning and execution."""


class DestinationExistsError(ExecutionError):
    """The destination of a move is already occupied by a different entry."""


class MoveFailedError(ExecutionError):
    """The rename (or copy fallback) itself failed."""


__all__ = [
    "TidyUpError",
    "SerializeError",
    "RootNotFoundError",
    "RootNotADirectoryError",
    "TreeParseError",
    "MalformedLineError",
    "DuplicateEntryError",
    "InvalidIndentationError",
    "InvalidTimestampError",
    "MissingTreeSectionError",
    "PlanError",
    "StructuralMismatchError",
    "ExecutionError",
    "FilesystemError",
    "FolderCreationError",
    "SourceMissingError",
    "DestinationExistsError",
    "MoveFailedError",
]
