"""Split recommender output into explanation, revised tree, and notes."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass

from ..errors import MissingTreeSectionError

EXPLANATION_MARKER = "Explanation of Recommendations:"
TREE_MARKER = "Revised Directory Tree:"
NOTES_MARKER = "Additional Notes:"


@dataclass(frozen=True)
class Recommendation:
    """Sections of one recommender response."""

    explanation: str
    tree_text: str
    notes: str


def _strip_code_fences(text: str) -> str:
    """Drop markdown fence lines that often wrap the tree block."""
    kept = [line for line in text.splitlines() if not line.strip().startswith("```")]
    return "\n".join(kept)


def _trim_blank_lines(text: str) -> str:
    """Strip surrounding blank lines and indentation shared by every line."""
    lines = text.splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return textwrap.dedent("\n".join(line.rstrip() for line in lines))


def split_recommendation(text: str) -> Recommendation:
    """Split ``text`` on the tree/notes markers.

    Raises ``MissingTreeSectionError`` when the tree marker is absent. A
    missing notes marker means the tree runs to the end of the text.
    """
    head, sep, rest = text.partition(TREE_MARKER)
    if not sep:
        raise MissingTreeSectionError(f"recommendation text has no {TREE_MARKER!r} section")
    tree_part, _notes_sep, notes = rest.partition(NOTES_MARKER)
    explanation = head.replace(EXPLANATION_MARKER, "", 1)
    return Recommendation(
        explanation=explanation.strip(),
        tree_text=_trim_blank_lines(_strip_code_fences(tree_part)),
        notes=notes.strip(),
    )


def extract_tree_text(text: str) -> str:
    """Return only the revised tree section of ``text``."""
    return split_recommendation(text).tree_text


__all__ = [
    "EXPLANATION_MARKER",
    "TREE_MARKER",
    "NOTES_MARKER",
    "Recommendation",
    "split_recommendation",
    "extract_tree_text",
]
