"""Compose serializer, parser, planner, and executor into one organize run.

The recommendation round trip happens between ``snapshot`` and
``reconcile``; callers fetch the recommender text however they like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidTimestampError, MissingTreeSectionError, SerializeError
from .reconcile.executor import AppliedSummary, apply_plan
from .reconcile.operations import MovePlan
from .reconcile.planner import NAME_STRATEGY, plan
from .tree_model.parser import parse_with_warnings
from .tree_model.recommendation import Recommendation, split_recommendation
from .tree_model.serializer import build_directory_tree, serialize
from .tree_model.types import DirectoryTree, RelativeParts, TreeNode, folder_node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Serialized text and structured tree from one directory walk."""

    text: str
    tree: DirectoryTree


@dataclass(frozen=True)
class Reconciliation:
    """Everything derived from one recommender response."""

    recommendation: Recommendation
    new_tree: DirectoryTree
    plan: MovePlan
    warnings: tuple[InvalidTimestampError, ...] = ()


def snapshot(root_path: Path | str, recurse: bool, *, include_hidden: bool = True) -> Snapshot:
    """Serialize ``root_path`` for the recommender."""
    text, tree = serialize(root_path, recurse, include_hidden=include_hidden)
    return Snapshot(text=text, tree=tree)


def read_recommendation(text: str) -> Recommendation:
    """Split recommender output, accepting a bare tree without section markers."""
    try:
        return split_recommendation(text)
    except MissingTreeSectionError:
        first = next((line for line in text.splitlines() if line.strip()), "")
        if not first.lstrip().startswith("- "):
            raise
    logger.debug("No section markers found; treating the whole text as a tree")
    return Recommendation(explanation="", tree_text=text.strip("\n"), notes="")


def _unexpanded_with_listed_children(
    old_tree: DirectoryTree,
    new_nodes: dict[RelativeParts, TreeNode],
) -> list[RelativeParts]:
    folders: list[RelativeParts] = []
    for parts, node in old_tree.walk():
        if not parts or not node.is_unexpanded:
            continue
        listed = new_nodes.get(parts)
        if listed is not None and listed.is_folder and listed.children:
            folders.append(parts)
    return folders


def reveal_listed_entries(
    old_tree: DirectoryTree,
    new_tree: DirectoryTree,
    base_path: Path | str,
    *,
    include_hidden: bool = True,
) -> DirectoryTree:
    """Expand unexpanded folders of ``old_tree`` that ``new_tree`` lists contents for.

    Only entries found on disk at the same path and of the same kind as in
    ``new_tree`` are revealed, so they pair with themselves. Other contents
    stay unlisted and in place. Revealed subfolders are expanded the same way
    until nothing more is listed.
    """
    base = Path(base_path)
    new_nodes = dict(new_tree.walk())
    attempted: set[RelativeParts] = set()
    while True:
        folders = [parts for parts in _unexpanded_with_listed_children(old_tree, new_nodes) if parts not in attempted]
        if not folders:
            return old_tree
        replacements: dict[RelativeParts, TreeNode] = {}
        for parts in folders:
            attempted.add(parts)
            try:
                listing = build_directory_tree(base.joinpath(*parts), False, include_hidden=include_hidden)
            except SerializeError as exc:
                logger.warning("Cannot list %s, keeping it unexpanded: %s", exc.path, exc)
                continue
            order = {(child.name, child.kind): index for index, child in enumerate(new_nodes[parts].children)}
            revealed = sorted(
                (child for child in listing.root.children if (child.name, child.kind) in order),
                key=lambda child: order[(child.name, child.kind)],
            )
            logger.debug("Revealed %d listed entries under %s", len(revealed), "/".join(parts))
            replacements[parts] = folder_node(parts[-1], tuple(revealed))
        if replacements:
            old_tree = old_tree.with_nodes(replacements)


def reconcile(
    current: Snapshot | DirectoryTree,
    recommendation_text: str,
    *,
    base_path: Path | str | None = None,
    strategy: str = NAME_STRATEGY,
    remove_empty_folders: bool = False,
    include_hidden: bool = True,
) -> Reconciliation:
    """Parse recommender output and plan the moves against ``current``.

    Unexpanded folders whose contents the revised tree lists are listed once
    more, so entries already in place are recognized as unchanged.
    """
    old_tree = current.tree if isinstance(current, Snapshot) else current
    base = Path(base_path) if base_path is not None else old_tree.base_path
    if base is None:
        raise ValueError("base_path is required for trees without a bound directory")

    recommendation = read_recommendation(recommendation_text)
    parsed = parse_with_warnings(recommendation.tree_text)
    old_tree = reveal_listed_entries(old_tree, parsed.tree, base, include_hidden=include_hidden)
    move_plan = plan(
        base,
        old_tree,
        parsed.tree,
        strategy=strategy,
        remove_empty_folders=remove_empty_folders,
    )
    return Reconciliation(
        recommendation=recommendation,
        new_tree=parsed.tree,
        plan=move_plan,
        warnings=parsed.warnings,
    )


def execute(reconciliation: Reconciliation, *, dry_run: bool = False) -> AppliedSummary:
    """Apply the plan of ``reconciliation``."""
    return apply_plan(reconciliation.plan, dry_run=dry_run)


__all__ = [
    "Snapshot",
    "Reconciliation",
    "snapshot",
    "read_recommendation",
    "reveal_listed_entries",
    "reconcile",
    "execute",
]
