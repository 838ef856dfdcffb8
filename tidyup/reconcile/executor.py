"""Apply a ``MovePlan`` to the filesystem in order, stopping at the first failure.

Execution is not transactional. Completed operations are never rolled back;
the returned summary says exactly which operations ran, which were no-ops,
which failed, and which were never attempted.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..errors import (
    DestinationExistsError,
    ExecutionError,
    FilesystemError,
    FolderCreationError,
    MoveFailedError,
    SourceMissingError,
)
from .operations import CreateFolder, MoveFile, MovePlan, Operation, RemoveEmptyFolder

logger = logging.getLogger(__name__)

APPLIED = "applied"
NOOP = "noop"
FAILED = "failed"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one attempted operation."""

    operation: Operation
    status: str
    detail: str = ""


@dataclass(frozen=True)
class AppliedSummary:
    """Per-operation outcomes of one ``apply_plan`` call."""

    results: tuple[OperationResult, ...] = ()
    pending: tuple[Operation, ...] = ()
    error: ExecutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.pending

    @property
    def applied(self) -> tuple[Operation, ...]:
        return tuple(result.operation for result in self.results if result.status == APPLIED)

    @property
    def skipped(self) -> tuple[Operation, ...]:
        return tuple(result.operation for result in self.results if result.status == NOOP)

    @property
    def failed(self) -> Operation | None:
        for result in self.results:
            if result.status == FAILED:
                return result.operation
        return None

    def raise_for_error(self) -> None:
        """Re-raise the execution error, if any."""
        if self.error is not None:
            raise self.error


def _same_file(first: Path, second: Path) -> bool:
    try:
        return os.path.samefile(first, second)
    except OSError:
        return False


def _create_folder(operation: CreateFolder) -> OperationResult:
    path = operation.path
    try:
        if path.is_dir():
            return OperationResult(operation, NOOP, "already exists")
        if path.exists():
            raise FolderCreationError(f"{path} exists and is not a directory", operation)
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FolderCreationError(f"cannot create {path}: {exc}", operation) from exc
    return OperationResult(operation, APPLIED)


def _rename(source: Path, target: Path) -> str:
    """Rename within a volume, falling back to copy-then-delete across volumes."""
    try:
        os.rename(source, target)
        return ""
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
    logger.warning("Cross-device move of %s, copying then deleting", source)
    shutil.move(str(source), str(target))
    return "copied across devices"


def _move_file(operation: MoveFile) -> OperationResult:
    source = operation.from_path
    target = operation.to_path

    if not os.path.lexists(source):
        raise SourceMissingError(f"source {source} no longer exists", operation)
    if os.path.lexists(target) and not _same_file(source, target):
        raise DestinationExistsError(f"destination {target} already exists", operation)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        detail = _rename(source, target)
    except OSError as exc:
        raise MoveFailedError(f"cannot move {source} to {target}: {exc}", operation) from exc
    return OperationResult(operation, APPLIED, detail)


def _remove_empty_folder(operation: RemoveEmptyFolder) -> OperationResult:
    path = operation.path
    try:
        if not path.is_dir():
            return OperationResult(operation, NOOP, "already removed")
        if any(path.iterdir()):
            return OperationResult(operation, NOOP, "not empty")
        path.rmdir()
    except OSError as exc:
        raise FilesystemError(f"cannot remove {path}: {exc}", operation) from exc
    return OperationResult(operation, APPLIED)


def apply_operation(operation: Operation) -> OperationResult:
    """Apply one operation; raises an ``ExecutionError`` subclass on failure."""
    if isinstance(operation, CreateFolder):
        return _create_folder(operation)
    if isinstance(operation, MoveFile):
        return _move_file(operation)
    if isinstance(operation, RemoveEmptyFolder):
        return _remove_empty_folder(operation)
    raise TypeError(f"unsupported operation {operation!r}")


def apply_plan(
    plan: MovePlan,
    *,
    dry_run: bool = False,
    should_continue: Callable[[Operation], bool] | None = None,
) -> AppliedSummary:
    """Apply ``plan`` strictly in order and summarize every outcome.

    The first failure stops execution; the failing operation is reported as
    ``failed`` and everything after it as ``pending``. ``should_continue`` is
    consulted before each operation and can stop execution between steps.
    """
    operations = tuple(plan)
    results: list[OperationResult] = []
    for index, operation in enumerate(operations):
        if should_continue is not None and not should_continue(operation):
            logger.info("Stopped before %s", operation.describe(plan.base_path))
            return AppliedSummary(results=tuple(results), pending=operations[index:])
        if dry_run:
            results.append(OperationResult(operation, NOOP, "dry run"))
            continue
        try:
            result = apply_operation(operation)
        except ExecutionError as exc:
            logger.error("Failed to %s: %s", operation.describe(plan.base_path), exc)
            results.append(OperationResult(operation, FAILED, str(exc)))
            return AppliedSummary(results=tuple(results), pending=operations[index + 1 :], error=exc)
        logger.debug("%s: %s", result.status, operation.describe(plan.base_path))
        results.append(result)
    return AppliedSummary(results=tuple(results))


apply = apply_plan


__all__ = [
    "APPLIED",
    "NOOP",
    "FAILED",
    "OperationResult",
    "AppliedSummary",
    "apply_operation",
    "apply_plan",
    "apply",
]
