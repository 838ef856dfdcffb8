"""Filesystem operation records and the ordered plan that holds them."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path


def _display(path: Path, base: Path | None) -> str:
    if base is not None:
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            pass
    return str(path)


@dataclass(frozen=True)
class CreateFolder:
    """Create ``path`` and any missing ancestors."""

    path: Path

    def describe(self, base: Path | None = None) -> str:
        return f"create folder {_display(self.path, base)}"


@dataclass(frozen=True)
class MoveFile:
    """Rename ``from_path`` to ``to_path``; also used for unexpanded folders."""

    from_path: Path
    to_path: Path

    def describe(self, base: Path | None = None) -> str:
        return f"move {_display(self.from_path, base)} -> {_display(self.to_path, base)}"


@dataclass(frozen=True)
class RemoveEmptyFolder:
    """Remove ``path`` if it is empty when reached."""

    path: Path

    def describe(self, base: Path | None = None) -> str:
        return f"remove empty folder {_display(self.path, base)}"


Operation = CreateFolder | MoveFile | RemoveEmptyFolder


@dataclass(frozen=True)
class MovePlan:
    """Ordered operations produced by one planning call."""

    operations: tuple[Operation, ...] = ()
    base_path: Path | None = None

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def __bool__(self) -> bool:
        return bool(self.operations)

    def describe(self) -> list[str]:
        """Return one readable line per operation, paths relative to ``base_path``."""
        return [operation.describe(self.base_path) for operation in self.operations]


__all__ = [
    "CreateFolder",
    "MoveFile",
    "RemoveEmptyFolder",
    "Operation",
    "MovePlan",
]
