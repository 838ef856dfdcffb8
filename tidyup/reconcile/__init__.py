"""Reconciliation: plan filesystem operations between two trees and apply them."""

from __future__ import annotations

from .operations import CreateFolder, MoveFile, MovePlan, Operation, RemoveEmptyFolder
from .planner import MATCH_STRATEGIES, NAME_STRATEGY, POSITION_STRATEGY, order_moves, pair_entries, plan
from .executor import (
    APPLIED,
    FAILED,
    NOOP,
    AppliedSummary,
    OperationResult,
    apply,
    apply_operation,
    apply_plan,
)

__all__ = [
    "CreateFolder",
    "MoveFile",
    "MovePlan",
    "Operation",
    "RemoveEmptyFolder",
    "MATCH_STRATEGIES",
    "NAME_STRATEGY",
    "POSITION_STRATEGY",
    "order_moves",
    "pair_entries",
    "plan",
    "APPLIED",
    "FAILED",
    "NOOP",
    "AppliedSummary",
    "OperationResult",
    "apply",
    "apply_operation",
    "apply_plan",
]
