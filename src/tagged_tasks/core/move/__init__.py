"""Move engine: request parsing, validation and execution."""

from tagged_tasks.core.move.executor import apply_move, simulate_move
from tagged_tasks.core.move.plan import (
    EdgeChange,
    MovedTask,
    MoveEntry,
    MoveKind,
    MoveOptions,
    MovePlan,
    MoveRequest,
    MoveSummary,
)
from tagged_tasks.core.move.validator import find_cross_tag_conflicts, validate_move

__all__ = [
    "EdgeChange",
    "MoveEntry",
    "MoveKind",
    "MoveOptions",
    "MovePlan",
    "MoveRequest",
    "MoveSummary",
    "MovedTask",
    "apply_move",
    "find_cross_tag_conflicts",
    "simulate_move",
    "validate_move",
]
