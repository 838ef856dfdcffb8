"""Directory-tree model: immutable tree types, serializer, and parser.

This package contains the text side of an organize run:
- file/folder node datatypes with nested children
- filesystem walking and canonical indented-text rendering
- single-pass parsing of recommender tree text
- extraction of the revised tree section from recommender output
"""

from __future__ import annotations

from .types import EPOCH, FILE, FOLDER, DirectoryTree, TreeNode, file_node, folder_node
from .serializer import build_directory_tree, format_timestamp, format_tree, serialize
from .parser import ParseResult, parse, parse_lines, parse_timestamp, parse_with_warnings
from .recommendation import Recommendation, extract_tree_text, split_recommendation

__all__ = [
    "EPOCH",
    "FILE",
    "FOLDER",
    "DirectoryTree",
    "TreeNode",
    "file_node",
    "folder_node",
    "build_directory_tree",
    "format_timestamp",
    "format_tree",
    "serialize",
    "ParseResult",
    "parse",
    "parse_lines",
    "parse_timestamp",
    "parse_with_warnings",
    "Recommendation",
    "extract_tree_text",
    "split_recommendation",
]
