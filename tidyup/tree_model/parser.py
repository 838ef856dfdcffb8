"""Single-pass parser for indented tree text from untrusted sources.

Grammar per line::

    <indent>- <name>                              folder (unmarked)
    <indent>- <name>/                             folder (explicit marker)
    <indent>- <name> (Modified: <timestamp>)      file

``<indent>`` is two spaces per depth level. Unmarked folder lines are
accepted because recommender output does not reliably keep the markers.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..errors import (
    DuplicateEntryError,
    InvalidIndentationError,
    InvalidTimestampError,
    MalformedLineError,
)
from .types import EPOCH, FILE, FOLDER, DirectoryTree, TreeNode, file_node, folder_node

logger = logging.getLogger(__name__)

_FILE_CONTENT_RE = re.compile(r"^(?P<name>.*?)\s*\(Modified:\s*(?P<stamp>[^()]*?)\s*\)$")
_RESERVED_NAMES = {".", ".."}


@dataclass(frozen=True)
class ParsedLine:
    """Classified tree line."""

    line_number: int
    depth: int
    kind: str
    name: str
    modified_at: datetime | None = None
    marked_unexpanded: bool = False
    timestamp_error: InvalidTimestampError | None = None


@dataclass(frozen=True)
class ParseResult:
    """Parsed tree plus locally recovered timestamp errors."""

    tree: DirectoryTree
    warnings: tuple[InvalidTimestampError, ...] = ()


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC3339/ISO-8601 timestamp into an aware UTC datetime.

    Raises ``ValueError`` for anything ``datetime.fromisoformat`` rejects.
    Naive values are taken as UTC.
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_name(name: str, line_number: int, line: str) -> str:
    if not name:
        raise MalformedLineError("entry name is empty", line_number, line)
    if "/" in name or "\\" in name or name in _RESERVED_NAMES:
        raise MalformedLineError(f"invalid entry name {name!r}", line_number, line)
    return name


def classify_line(line: str, line_number: int) -> ParsedLine | None:
    """Classify one raw line; return ``None`` for blank lines."""
    raw = line.rstrip("\r\n")
    if not raw.strip():
        return None

    stripped = raw.lstrip(" \t")
    leading = raw[: len(raw) - len(stripped)].expandtabs(2)
    if len(leading) % 2:
        raise InvalidIndentationError(
            f"indentation of {len(leading)} spaces is not a multiple of 2", line_number, raw
        )
    depth = len(leading) // 2

    if not stripped.startswith("- "):
        raise MalformedLineError("expected '- <name>'", line_number, raw)
    content = stripped[2:].strip()
    if not content:
        raise MalformedLineError("entry name is empty", line_number, raw)

    if content.endswith("/"):
        name = _validate_name(content.rstrip("/").strip(), line_number, raw)
        return ParsedLine(line_number, depth, FOLDER, name, marked_unexpanded=True)

    match = _FILE_CONTENT_RE.match(content)
    if match is not None:
        name = _validate_name(match.group("name").strip(), line_number, raw)
        stamp = match.group("stamp")
        try:
            modified_at = parse_timestamp(stamp)
        except ValueError:
            error = InvalidTimestampError(f"invalid timestamp {stamp!r}", line_number, raw)
            return ParsedLine(line_number, depth, FILE, name, modified_at=EPOCH, timestamp_error=error)
        return ParsedLine(line_number, depth, FILE, name, modified_at=modified_at)

    name = _validate_name(content, line_number, raw)
    return ParsedLine(line_number, depth, FOLDER, name)


@dataclass
class _FolderBuilder:
    """Mutable folder under construction; frozen once parsing finishes."""

    name: str
    depth: int
    marked_unexpanded: bool = False
    children: dict[str, "_FolderBuilder | TreeNode"] = field(default_factory=dict)

    def freeze(self, children: tuple[TreeNode, ...]) -> TreeNode:
        expanded = not (self.marked_unexpanded and not children)
        return folder_node(self.name, children, expanded=expanded)


def _freeze(root: _FolderBuilder) -> TreeNode:
    """Convert builders to immutable nodes with an explicit post-order stack."""
    frozen: dict[int, TreeNode] = {}
    stack: list[tuple[_FolderBuilder, bool]] = [(root, False)]
    while stack:
        builder, children_done = stack.pop()
        if children_done:
            children = tuple(
                frozen.pop(id(child)) if isinstance(child, _FolderBuilder) else child
                for child in builder.children.values()
            )
            frozen[id(builder)] = builder.freeze(children)
            continue
        stack.append((builder, True))
        for child in builder.children.values():
            if isinstance(child, _FolderBuilder):
                stack.append((child, False))
    return frozen[id(root)]


def parse_lines(lines: Iterable[str]) -> ParseResult:
    """Parse tree lines in one pass, consuming each line exactly once."""
    stack: list[_FolderBuilder] = []
    root: _FolderBuilder | None = None
    warnings: list[InvalidTimestampError] = []
    previous: ParsedLine | None = None

    for line_number, line in enumerate(lines, start=1):
        parsed = classify_line(line, line_number)
        if parsed is None:
            continue
        raw = line.rstrip("\r\n")

        if root is None:
            if parsed.depth != 0:
                raise InvalidIndentationError("first entry must not be indented", line_number, raw)
            if parsed.kind != FOLDER:
                raise MalformedLineError("tree root must be a folder", line_number, raw)
            root = _FolderBuilder(parsed.name, 0, parsed.marked_unexpanded)
            stack.append(root)
            previous = parsed
            continue

        if parsed.depth == 0:
            raise InvalidIndentationError("tree has more than one root entry", line_number, raw)

        while stack and stack[-1].depth >= parsed.depth:
            stack.pop()
        parent = stack[-1]
        if parsed.depth > parent.depth + 1:
            if previous is not None and previous.kind == FILE and parsed.depth == previous.depth + 1:
                raise InvalidIndentationError(
                    f"entry nested under file {previous.name!r}", line_number, raw
                )
            raise InvalidIndentationError(
                f"depth {parsed.depth} skips a level below depth {parent.depth}", line_number, raw
            )

        existing = parent.children.get(parsed.name)
        if parsed.kind == FOLDER:
            if isinstance(existing, _FolderBuilder):
                logger.debug("Merging repeated folder %r at line %d", parsed.name, line_number)
                existing.marked_unexpanded = existing.marked_unexpanded and parsed.marked_unexpanded
                stack.append(existing)
            elif existing is not None:
                raise DuplicateEntryError(f"duplicate entry {parsed.name!r}", line_number, raw)
            else:
                builder = _FolderBuilder(parsed.name, parsed.depth, parsed.marked_unexpanded)
                parent.children[parsed.name] = builder
                stack.append(builder)
        else:
            if existing is not None:
                raise DuplicateEntryError(f"duplicate entry {parsed.name!r}", line_number, raw)
            if parsed.timestamp_error is not None:
                warnings.append(parsed.timestamp_error)
            parent.children[parsed.name] = file_node(parsed.name, parsed.modified_at)
        previous = parsed

    if root is None:
        raise MalformedLineError("empty tree")

    for warning in warnings:
        logger.warning("Recovered from %s; using epoch timestamp", warning)
    return ParseResult(tree=DirectoryTree(root=_freeze(root)), warnings=tuple(warnings))


def parse_with_warnings(text: str) -> ParseResult:
    """Parse ``text`` and return the tree plus recovered timestamp errors."""
    return parse_lines(text.splitlines())


def parse(text: str) -> DirectoryTree:
    """Parse tree text into a ``DirectoryTree`` (no base path bound)."""
    return parse_with_warnings(text).tree


__all__ = [
    "ParsedLine",
    "ParseResult",
    "parse_timestamp",
    "classify_line",
    "parse_lines",
    "parse_with_warnings",
    "parse",
]
