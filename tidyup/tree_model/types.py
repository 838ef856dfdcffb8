"""Immutable datatypes for serialized and parsed directory trees."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

FILE = "file"
FOLDER = "folder"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

RelativeParts = tuple[str, ...]


@dataclass(frozen=True)
class TreeNode:
    """One file or folder entry with nested children for folders.

    ``expanded`` is ``False`` only for folders whose contents were not listed;
    such folders are treated as opaque units during reconciliation.
    """

    name: str
    kind: str = FOLDER
    modified_at: datetime | None = None
    children: tuple["TreeNode", ...] = ()
    expanded: bool = True

    @property
    def is_file(self) -> bool:
        return self.kind == FILE

    @property
    def is_folder(self) -> bool:
        return self.kind == FOLDER

    @property
    def is_unexpanded(self) -> bool:
        """Return whether this is a folder listed without its contents."""
        return self.kind == FOLDER and not self.expanded

    @property
    def is_leaf(self) -> bool:
        """Return whether reconciliation moves this node as a single unit."""
        return self.is_file or self.is_unexpanded


def file_node(name: str, modified_at: datetime | None = None) -> TreeNode:
    """Build a file node, defaulting the timestamp to ``EPOCH``."""
    return TreeNode(name=name, kind=FILE, modified_at=modified_at or EPOCH)


def folder_node(name: str, children: tuple[TreeNode, ...] = (), expanded: bool = True) -> TreeNode:
    """Build a folder node."""
    return TreeNode(name=name, kind=FOLDER, children=tuple(children), expanded=expanded)


@dataclass(frozen=True)
class DirectoryTree:
    """Root node plus the absolute base path it was read from.

    ``base_path`` is ``None`` for trees parsed from text; those are bound to a
    directory when a plan is built.
    """

    root: TreeNode
    base_path: Path | None = None

    def walk(self) -> Iterator[tuple[RelativeParts, TreeNode]]:
        """Yield ``(relative_parts, node)`` in pre-order, root first.

        Uses an explicit stack so deep trees never hit the recursion limit.
        """
        stack: list[tuple[RelativeParts, TreeNode]] = [((), self.root)]
        while stack:
            parts, node = stack.pop()
            yield parts, node
            for child in reversed(node.children):
                stack.append((parts + (child.name,), child))

    def leaves(self) -> list[tuple[RelativeParts, TreeNode]]:
        """Return movable entries (files and unexpanded folders) in traversal order."""
        return [(parts, node) for parts, node in self.walk() if parts and node.is_leaf]

    def folder_paths(self) -> set[RelativeParts]:
        """Return relative paths of every folder below the root."""
        return {parts for parts, node in self.walk() if parts and node.is_folder}

    def with_nodes(self, replacements: dict[RelativeParts, TreeNode]) -> DirectoryTree:
        """Return a copy with the nodes at ``replacements`` keys swapped in."""
        ancestors = {parts[:depth] for parts in replacements for depth in range(len(parts))}
        built: dict[RelativeParts, TreeNode] = {}
        stack: list[tuple[RelativeParts, TreeNode, bool]] = [((), self.root, False)]
        while stack:
            parts, node, visited = stack.pop()
            if parts in replacements:
                built[parts] = replacements[parts]
            elif parts not in ancestors:
                built[parts] = node
            elif not visited:
                stack.append((parts, node, True))
                for child in node.children:
                    stack.append((parts + (child.name,), child, False))
            else:
                children = tuple(built[parts + (child.name,)] for child in node.children)
                built[parts] = replace(node, children=children)
        return DirectoryTree(root=built[()], base_path=self.base_path)


__all__ = [
    "FILE",
    "FOLDER",
    "EPOCH",
    "RelativeParts",
    "TreeNode",
    "DirectoryTree",
    "file_node",
    "folder_node",
]
