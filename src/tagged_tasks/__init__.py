"""tagged-tasks: a tagged task store with a dependency-aware move engine."""

from tagged_tasks.core.move import MoveOptions, MoveRequest
from tagged_tasks.core.service import MoveResult, TaskStore

__all__ = [
    "MoveOptions",
    "MoveRequest",
    "MoveResult",
    "TaskStore",
]
