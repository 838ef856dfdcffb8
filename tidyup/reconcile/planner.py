"""Pair old and new tree entries and derive an ordered ``MovePlan``.

Movable entries are files plus unexpanded folders, which move as opaque
units. Pairing either follows entry names (default) or traversal position.
The planner never guesses: any unpaired entry is a structural mismatch.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from ..errors import StructuralMismatchError
from ..tree_model.types import DirectoryTree, RelativeParts, TreeNode
from .operations import CreateFolder, MoveFile, MovePlan, Operation, RemoveEmptyFolder

logger = logging.getLogger(__name__)

NAME_STRATEGY = "name"
POSITION_STRATEGY = "position"
MATCH_STRATEGIES = (NAME_STRATEGY, POSITION_STRATEGY)

TEMP_NAME_SUFFIX = ".tidyup-"

Leaf = tuple[RelativeParts, TreeNode]
Pair = tuple[RelativeParts, RelativeParts]


def _label(parts: RelativeParts) -> str:
    return "/".join(parts) or "."


def _movable_units(old_tree: DirectoryTree, new_tree: DirectoryTree) -> tuple[list[Leaf], list[Leaf], list[RelativeParts]]:
    """Return ``(old_units, new_units, new_empty_folders)``.

    Old unexpanded folders whose path is still a folder in the new tree stay
    pinned in place. New childless unexpanded folders without an old
    counterpart of the same name are new empty folders, not units.
    """
    new_folders = new_tree.folder_paths()
    old_leaves = old_tree.leaves()
    pinned = {parts for parts, node in old_leaves if node.is_unexpanded and parts in new_folders}

    old_units = [(parts, node) for parts, node in old_leaves if parts not in pinned]
    available_folders = Counter(node.name for _parts, node in old_units if node.is_unexpanded)

    new_units: list[Leaf] = []
    new_empty_folders: list[RelativeParts] = []
    for parts, node in new_tree.leaves():
        if parts in pinned:
            continue
        if node.is_unexpanded:
            if available_folders[node.name] <= 0:
                new_empty_folders.append(parts)
                continue
            available_folders[node.name] -= 1
        new_units.append((parts, node))
    return old_units, new_units, new_empty_folders


def _pair_by_position(old_units: list[Leaf], new_units: list[Leaf]) -> list[Pair]:
    pairs: list[Pair] = []
    for (old_parts, old_node), (new_parts, new_node) in zip(old_units, new_units):
        if old_node.kind != new_node.kind:
            raise StructuralMismatchError(
                f"entry {_label(old_parts)!r} is a {old_node.kind} but position-paired "
                f"entry {_label(new_parts)!r} is a {new_node.kind}"
            )
        pairs.append((old_parts, new_parts))
    return pairs


def _pair_by_name(old_units: list[Leaf], new_units: list[Leaf]) -> list[Pair]:
    remaining: dict[tuple[str, str], list[RelativeParts]] = {}
    for parts, node in old_units:
        remaining.setdefault((node.kind, node.name), []).append(parts)

    paired: list[Pair | None] = [None] * len(new_units)
    for index, (parts, node) in enumerate(new_units):
        candidates = remaining.get((node.kind, node.name))
        if candidates and parts in candidates:
            candidates.remove(parts)
            paired[index] = (parts, parts)

    for index, (parts, node) in enumerate(new_units):
        if paired[index] is not None:
            continue
        candidates = remaining.get((node.kind, node.name))
        if not candidates:
            raise StructuralMismatchError(
                f"revised tree lists {node.kind} {_label(parts)!r} that is not in the current tree"
            )
        paired[index] = (candidates.pop(0), parts)

    return [pair for pair in paired if pair is not None]


def pair_entries(old_tree: DirectoryTree, new_tree: DirectoryTree, strategy: str = NAME_STRATEGY) -> tuple[list[Pair], list[RelativeParts]]:
    """Pair movable entries of both trees.

    Returns ``(pairs, new_empty_folders)`` where each pair is
    ``(old_relative_parts, new_relative_parts)``.
    """
    if strategy not in MATCH_STRATEGIES:
        raise ValueError(f"unknown match strategy {strategy!r}; expected one of {MATCH_STRATEGIES}")

    old_units, new_units, new_empty_folders = _movable_units(old_tree, new_tree)
    if len(old_units) != len(new_units):
        raise StructuralMismatchError(
            f"current tree has {len(old_units)} entries to place but revised tree has {len(new_units)}"
        )

    if strategy == POSITION_STRATEGY:
        pairs = _pair_by_position(old_units, new_units)
    else:
        pairs = _pair_by_name(old_units, new_units)
    return pairs, new_empty_folders


def _temporary_parts(parts: RelativeParts, taken: set[RelativeParts]) -> RelativeParts:
    counter = 1
    while True:
        candidate = parts[:-1] + (f".{parts[-1]}{TEMP_NAME_SUFFIX}{counter}",)
        if candidate not in taken:
            taken.add(candidate)
            return candidate
        counter += 1


def order_moves(moves: list[Pair], taken: set[RelativeParts]) -> list[Pair]:
    """Order moves so no move targets a path still held by a pending source.

    Cycles are broken by parking one source under a temporary sibling name.
    ``taken`` holds every path already in use and is extended with temporary
    names.
    """
    pending = dict(moves)
    ordered: list[Pair] = []
    while pending:
        progressed = False
        for source, target in list(pending.items()):
            if target in pending:
                continue
            ordered.append((source, target))
            del pending[source]
            progressed = True
        if progressed:
            continue
        source, target = next(iter(pending.items()))
        parked = _temporary_parts(source, taken)
        logger.debug("Breaking move cycle by parking %s at %s", _label(source), _label(parked))
        ordered.append((source, parked))
        del pending[source]
        pending[parked] = target
    return ordered


def _depth_order(parts: RelativeParts) -> tuple[int, RelativeParts]:
    return len(parts), parts


def plan(
    base_path: Path | str,
    old_tree: DirectoryTree,
    new_tree: DirectoryTree,
    *,
    strategy: str = NAME_STRATEGY,
    remove_empty_folders: bool = False,
) -> MovePlan:
    """Compute operations that reshape ``old_tree`` into ``new_tree`` under ``base_path``.

    The new tree's root name is ignored; its children map onto ``base_path``.
    Replanning an already-applied result yields an empty plan.
    """
    base = Path(base_path)
    if old_tree.base_path is not None and old_tree.base_path != base:
        logger.debug("Planning against %s for a tree read from %s", base, old_tree.base_path)

    pairs, new_empty_folders = pair_entries(old_tree, new_tree, strategy)
    moves = [(old, new) for old, new in pairs if old != new]

    old_folders = old_tree.folder_paths()
    new_folders = new_tree.folder_paths()
    old_nodes = dict(old_tree.walk())
    unit_folder_targets = {
        new for old, new in pairs if old_nodes[old].is_unexpanded
    }

    sources = {old for old, _new in moves}
    for _old, new in moves:
        if new in sources or new not in old_folders:
            continue
        if new not in new_folders or new in unit_folder_targets:
            raise StructuralMismatchError(f"move target {_label(new)!r} is an existing folder")

    to_create = sorted((new_folders - unit_folder_targets) - old_folders, key=_depth_order)
    for parts in to_create:
        existing = old_nodes.get(parts)
        if existing is not None and existing.is_file:
            raise StructuralMismatchError(f"folder {_label(parts)!r} would replace an existing file")
    if new_empty_folders:
        logger.debug("Revised tree adds empty folders: %s", ", ".join(_label(p) for p in new_empty_folders))

    taken = set(old_nodes) | {parts for parts, _node in new_tree.walk()}
    operations: list[Operation] = [CreateFolder(base.joinpath(*parts)) for parts in to_create]
    for source, target in order_moves(moves, taken):
        operations.append(MoveFile(base.joinpath(*source), base.joinpath(*target)))

    if remove_empty_folders:
        emptied = [
            parts
            for parts in old_folders - new_folders
            if not old_nodes[parts].is_unexpanded
        ]
        for parts in sorted(emptied, key=_depth_order, reverse=True):
            operations.append(RemoveEmptyFolder(base.joinpath(*parts)))

    logger.debug("Planned %d operations for %s", len(operations), base)
    return MovePlan(operations=tuple(operations), base_path=base)


__all__ = [
    "NAME_STRATEGY",
    "POSITION_STRATEGY",
    "MATCH_STRATEGIES",
    "pair_entries",
    "order_moves",
    "plan",
]
