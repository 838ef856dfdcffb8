"""Tests for ordered, fail-fast plan execution."""

from __future__ import annotations

import errno
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from tidyup.errors import (
    DestinationExistsError,
    FilesystemError,
    FolderCreationError,
    SourceMissingError,
)
from tidyup.reconcile import (
    APPLIED,
    FAILED,
    NOOP,
    CreateFolder,
    MoveFile,
    MovePlan,
    RemoveEmptyFolder,
    apply_plan,
)


def _write(path: Path, text: str = "data\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class ApplyPlanTests(unittest.TestCase):
    def test_applies_operations_in_order(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt", "alpha\n")
            move_plan = MovePlan(
                (
                    CreateFolder(root / "docs"),
                    MoveFile(root / "a.txt", root / "docs" / "a.txt"),
                ),
                base_path=root,
            )

            summary = apply_plan(move_plan)

            self.assertTrue(summary.ok)
            self.assertEqual([result.status for result in summary.results], [APPLIED, APPLIED])
            self.assertEqual((root / "docs" / "a.txt").read_text(encoding="utf-8"), "alpha\n")
            self.assertFalse((root / "a.txt").exists())

    def test_source_deleted_after_planning_stops_execution(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt")
            _write(root / "b.txt")
            _write(root / "c.txt")
            first = MoveFile(root / "a.txt", root / "a-moved.txt")
            second = MoveFile(root / "b.txt", root / "b-moved.txt")
            third = MoveFile(root / "c.txt", root / "c-moved.txt")
            move_plan = MovePlan((first, second, third), base_path=root)

            (root / "b.txt").unlink()
            summary = apply_plan(move_plan)

            self.assertFalse(summary.ok)
            self.assertEqual(summary.applied, (first,))
            self.assertEqual(summary.failed, second)
            self.assertIsInstance(summary.error, SourceMissingError)
            self.assertEqual(summary.error.operation, second)
            self.assertEqual(summary.pending, (third,))
            self.assertTrue((root / "c.txt").exists())
            self.assertFalse((root / "c-moved.txt").exists())
            with self.assertRaises(SourceMissingError):
                summary.raise_for_error()

    def test_existing_destination_is_never_overwritten(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt", "source\n")
            _write(root / "docs" / "a.txt", "keep me\n")

            summary = apply_plan(MovePlan((MoveFile(root / "a.txt", root / "docs" / "a.txt"),)))

            self.assertIsInstance(summary.error, DestinationExistsError)
            self.assertEqual(summary.results[0].status, FAILED)
            self.assertEqual((root / "docs" / "a.txt").read_text(encoding="utf-8"), "keep me\n")
            self.assertEqual((root / "a.txt").read_text(encoding="utf-8"), "source\n")

    def test_reapplying_a_completed_plan_stops_at_missing_source(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt")
            move = MoveFile(root / "a.txt", root / "docs" / "a.txt")
            move_plan = MovePlan((CreateFolder(root / "docs"), move))

            first = apply_plan(move_plan)
            second = apply_plan(move_plan)

            self.assertTrue(first.ok)
            self.assertEqual(second.results[0].status, NOOP)
            self.assertEqual(second.results[0].detail, "already exists")
            self.assertEqual(second.failed, move)
            self.assertIsInstance(second.error, SourceMissingError)

    def test_missing_source_fails_even_when_target_is_occupied(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt")
            _write(root / "c.txt")
            _write(root / "docs" / "a.txt", "unrelated\n")
            first = MoveFile(root / "c.txt", root / "c2.txt")
            second = MoveFile(root / "a.txt", root / "docs" / "a.txt")

            (root / "a.txt").unlink()
            summary = apply_plan(MovePlan((first, second)))

            self.assertEqual([result.status for result in summary.results], [APPLIED, FAILED])
            self.assertIsInstance(summary.error, SourceMissingError)
            self.assertEqual(summary.error.operation, second)
            self.assertEqual((root / "docs" / "a.txt").read_text(encoding="utf-8"), "unrelated\n")

    def test_folder_creation_failure_aborts_remaining_steps(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "docs")
            _write(root / "a.txt")
            move = MoveFile(root / "a.txt", root / "docs" / "a.txt")

            summary = apply_plan(MovePlan((CreateFolder(root / "docs"), move)))

            self.assertIsInstance(summary.error, FolderCreationError)
            self.assertEqual(summary.pending, (move,))
            self.assertTrue((root / "a.txt").exists())

    def test_moves_unexpanded_folder_as_a_unit(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "photos" / "cat.jpg")

            summary = apply_plan(
                MovePlan(
                    (
                        CreateFolder(root / "Media"),
                        MoveFile(root / "photos", root / "Media" / "photos"),
                    )
                )
            )

            self.assertTrue(summary.ok)
            self.assertTrue((root / "Media" / "photos" / "cat.jpg").is_file())

    def test_cross_device_rename_falls_back_to_copy(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt", "alpha\n")
            cross_device = OSError(errno.EXDEV, "Invalid cross-device link")

            with mock.patch("tidyup.reconcile.executor.os.rename", side_effect=cross_device), self.assertLogs(
                "tidyup.reconcile.executor", level="WARNING"
            ):
                summary = apply_plan(MovePlan((MoveFile(root / "a.txt", root / "b.txt"),)))

            self.assertTrue(summary.ok)
            self.assertEqual(summary.results[0].detail, "copied across devices")
            self.assertEqual((root / "b.txt").read_text(encoding="utf-8"), "alpha\n")
            self.assertFalse((root / "a.txt").exists())

    def test_dry_run_touches_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "a.txt")

            summary = apply_plan(
                MovePlan((CreateFolder(root / "docs"), MoveFile(root / "a.txt", root / "docs" / "a.txt"))),
                dry_run=True,
            )

            self.assertTrue(summary.ok)
            self.assertEqual({result.detail for result in summary.results}, {"dry run"})
            self.assertFalse((root / "docs").exists())
            self.assertTrue((root / "a.txt").exists())

    def test_should_continue_can_stop_between_operations(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            create = CreateFolder(root / "one")
            later = CreateFolder(root / "two")

            summary = apply_plan(MovePlan((create, later)), should_continue=lambda op: op != later)

            self.assertFalse(summary.ok)
            self.assertIsNone(summary.error)
            self.assertEqual(summary.applied, (create,))
            self.assertEqual(summary.pending, (later,))
            self.assertFalse((root / "two").exists())

    def test_remove_empty_folder_skips_non_empty_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "empty").mkdir()
            _write(root / "full" / "keep.txt")

            summary = apply_plan(
                MovePlan(
                    (
                        RemoveEmptyFolder(root / "empty"),
                        RemoveEmptyFolder(root / "full"),
                        RemoveEmptyFolder(root / "gone"),
                    )
                )
            )

            self.assertTrue(summary.ok)
            self.assertEqual(
                [(result.status, result.detail) for result in summary.results],
                [(APPLIED, ""), (NOOP, "not empty"), (NOOP, "already removed")],
            )
            self.assertFalse((root / "empty").exists())
            self.assertTrue((root / "full" / "keep.txt").exists())

    def test_unreadable_folder_is_reported_in_summary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "locked").mkdir()
            denied = PermissionError(errno.EACCES, "Permission denied")

            with mock.patch.object(Path, "iterdir", side_effect=denied):
                summary = apply_plan(MovePlan((RemoveEmptyFolder(root / "locked"),)))

            self.assertFalse(summary.ok)
            self.assertIsInstance(summary.error, FilesystemError)
            self.assertEqual(summary.results[0].status, FAILED)
            self.assertTrue((root / "locked").is_dir())

    def test_unreadable_parent_fails_folder_creation(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            denied = PermissionError(errno.EACCES, "Permission denied")

            with mock.patch.object(Path, "is_dir", side_effect=denied):
                summary = apply_plan(MovePlan((CreateFolder(root / "docs"),)))

            self.assertIsInstance(summary.error, FolderCreationError)
            self.assertEqual(summary.results[0].status, FAILED)


if __name__ == "__main__":
    unittest.main()
