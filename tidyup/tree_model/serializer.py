"""Filesystem walking and canonical indented-text rendering of directory trees.

``serialize`` reads a directory once and returns both the text sent to the
recommender and the structured tree later used for planning.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ..errors import RootNotADirectoryError, RootNotFoundError, SerializeError
from .types import DirectoryTree, TreeNode, file_node, folder_node

logger = logging.getLogger(__name__)

INDENT_UNIT = "  "
MODIFIED_PREFIX = "(Modified: "


def format_timestamp(value: datetime) -> str:
    """Format ``value`` as UTC ISO-8601 with millisecond precision and ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def mtime_from_ns(mtime_ns: int) -> datetime:
    """Convert ``st_mtime_ns`` to an aware UTC datetime truncated to milliseconds."""
    seconds, remainder_ns = divmod(int(mtime_ns), 1_000_000_000)
    millis = remainder_ns // 1_000_000
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000)


def format_node_line(node: TreeNode, depth: int) -> str:
    """Render one tree line for ``node`` at ``depth``."""
    indent = INDENT_UNIT * depth
    if node.is_file:
        stamp = format_timestamp(node.modified_at) if node.modified_at is not None else ""
        return f"{indent}- {node.name} {MODIFIED_PREFIX}{stamp})"
    if node.is_unexpanded:
        return f"{indent}- {node.name}/"
    return f"{indent}- {node.name}"


def iter_tree_lines(root: TreeNode) -> Iterator[str]:
    """Yield tree lines in pre-order using an explicit ``(node, depth)`` stack."""
    stack: list[tuple[TreeNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield format_node_line(node, depth)
        for child in reversed(node.children):
            stack.append((child, depth + 1))


def format_tree(tree: DirectoryTree | TreeNode) -> str:
    """Render a tree in the canonical line grammar, newline terminated."""
    root = tree.root if isinstance(tree, DirectoryTree) else tree
    return "".join(line + "\n" for line in iter_tree_lines(root))


@dataclass
class _DirectoryFrame:
    """Directory being listed, with children collected so far."""

    path: Path
    name: str
    entries: Iterator[os.DirEntry]
    children: list[TreeNode] = field(default_factory=list)


def _list_entries(directory: Path, include_hidden: bool) -> list[os.DirEntry]:
    with os.scandir(directory) as entries:
        return [entry for entry in entries if include_hidden or not entry.name.startswith(".")]


def _file_node_for(entry: os.DirEntry) -> TreeNode | None:
    """Return a file node for regular files (following symlinks), else ``None``."""
    try:
        if not entry.is_file():
            return None
        stat = entry.stat()
    except OSError:
        return None
    return file_node(entry.name, mtime_from_ns(stat.st_mtime_ns))


def build_directory_tree(
    root_path: Path,
    recurse_into_subfolders: bool,
    *,
    include_hidden: bool = True,
) -> DirectoryTree:
    """Walk ``root_path`` and build an immutable tree snapshot.

    Subdirectories are expanded only when ``recurse_into_subfolders`` is set.
    Symlinked directories and directories that cannot be listed become
    unexpanded folders. Entries that are neither files nor directories are
    skipped.
    """
    root_path = Path(root_path)
    if not root_path.exists():
        raise RootNotFoundError(f"The folder path {str(root_path)!r} does not exist.", root_path)
    if not root_path.is_dir():
        raise RootNotADirectoryError(f"The path {str(root_path)!r} is not a directory.", root_path)
    root_path = root_path.resolve()

    try:
        root_entries = _list_entries(root_path, include_hidden)
    except OSError as exc:
        raise SerializeError(f"Cannot list {str(root_path)!r}: {exc}", root_path) from exc

    root_name = root_path.name or str(root_path)
    stack = [_DirectoryFrame(path=root_path, name=root_name, entries=iter(root_entries))]
    root_node: TreeNode | None = None

    while stack:
        frame = stack[-1]
        entry = next(frame.entries, None)
        if entry is None:
            stack.pop()
            node = folder_node(frame.name, tuple(frame.children))
            if stack:
                stack[-1].children.append(node)
            else:
                root_node = node
            continue

        try:
            is_real_dir = entry.is_dir(follow_symlinks=False)
            is_linked_dir = not is_real_dir and entry.is_symlink() and entry.is_dir()
        except OSError:
            is_real_dir = is_linked_dir = False

        if is_real_dir and recurse_into_subfolders:
            child_path = Path(entry.path)
            try:
                child_entries = _list_entries(child_path, include_hidden)
            except OSError as exc:
                logger.warning("Cannot list %s, keeping it unexpanded: %s", child_path, exc)
                frame.children.append(folder_node(entry.name, expanded=False))
                continue
            stack.append(_DirectoryFrame(path=child_path, name=entry.name, entries=iter(child_entries)))
            continue

        if is_real_dir or is_linked_dir:
            frame.children.append(folder_node(entry.name, expanded=False))
            continue

        node = _file_node_for(entry)
        if node is None:
            logger.debug("Skipping non-regular entry %s", entry.path)
            continue
        frame.children.append(node)

    assert root_node is not None
    logger.debug("Serialized %s (recurse=%s)", root_path, recurse_into_subfolders)
    return DirectoryTree(root=root_node, base_path=root_path)


def serialize(
    root_path: Path | str,
    recurse_into_subfolders: bool,
    *,
    include_hidden: bool = True,
) -> tuple[str, DirectoryTree]:
    """Return ``(text, tree)`` for ``root_path`` from a single directory walk."""
    tree = build_directory_tree(Path(root_path), recurse_into_subfolders, include_hidden=include_hidden)
    return format_tree(tree), tree


__all__ = [
    "INDENT_UNIT",
    "MODIFIED_PREFIX",
    "format_timestamp",
    "mtime_from_ns",
    "format_node_line",
    "iter_tree_lines",
    "format_tree",
    "build_directory_tree",
    "serialize",
]
