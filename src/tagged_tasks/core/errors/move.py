"""Move validation error classes.

All of these are raised by the move validator before any mutation happens,
so the document on disk is never left partially updated.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from tagged_tasks.core.errors.store import TaskStoreError
from tagged_tasks.core.models.refs import TaskRef, ref_sort_key


@dataclass(frozen=True)
class DependencyConflict:
    """A dependency edge a cross-tag move would split across partitions."""

    task: TaskRef
    dependency: TaskRef
    dependency_tag: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": str(self.task),
            "dependency_id": str(self.dependency),
            "dependency_tag": self.dependency_tag,
            "message": f"Task {self.task} depends on {self.dependency} (in {self.dependency_tag})",
        }

    def sort_key(self) -> tuple:
        return (ref_sort_key(self.task), ref_sort_key(self.dependency), self.dependency_tag)


class MoveError(TaskStoreError):
    """Base class for rejected move requests."""


class InvalidMoveRequestError(MoveError):
    """Raised when a move request is malformed (bad IDs, mismatched counts)."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.reason = reason
        super().__init__(reason, details)


class TagNotFoundError(MoveError):
    """Raised when a source or destination tag does not exist."""

    def __init__(self, tag: str, available: Sequence[str] = (), role: str = "source") -> None:
        self.tag = tag
        self.role = role
        self.available_tags = sorted(available)
        super().__init__(
            f'{role.capitalize()} tag "{tag}" not found',
            {"tag": tag, "role": role, "available_tags": self.available_tags},
        )


class TaskNotFoundError(MoveError):
    """Raised when a task or subtask ID does not exist in the partition."""

    def __init__(self, task_id: TaskRef, tag: str, what: str = "Task") -> None:
        self.task_id = task_id
        self.tag = tag
        super().__init__(
            f'{what} {task_id} not found in tag "{tag}"',
            {"task_id": str(task_id), "tag": tag},
        )


class IdConflictError(MoveError):
    """Raised when the requested destination ID is already taken."""

    def __init__(self, source_id: TaskRef, destination_id: TaskRef, tag: str) -> None:
        self.source_id = source_id
        self.destination_id = destination_id
        self.tag = tag
        super().__init__(
            f'Cannot move {source_id} to {destination_id}: ID {destination_id} '
            f'already exists in tag "{tag}"',
            {
                "source_id": str(source_id),
                "destination_id": str(destination_id),
                "tag": tag,
            },
        )


class DependencyConflictError(MoveError):
    """Raised when a cross-tag move would orphan dependency edges.

    Attributes:
        conflicts: Every conflicting (task, dependency) pair, sorted.
    """

    def __init__(
        self,
        conflicts: Sequence[DependencyConflict],
        source_tag: str,
        destination_tag: str,
    ) -> None:
        self.conflicts: List[DependencyConflict] = sorted(
            set(conflicts), key=DependencyConflict.sort_key
        )
        self.source_tag = source_tag
        self.destination_tag = destination_tag
        pairs = ", ".join(f"{c.task}->{c.dependency}" for c in self.conflicts)
        super().__init__(
            f'Cannot move tasks from "{source_tag}" to "{destination_tag}": '
            f"{len(self.conflicts)} cross-tag dependency conflicts ({pairs}). "
            "Use with_dependencies to move them together or "
            "ignore_dependencies to drop the edges.",
            {
                "source_tag": source_tag,
                "destination_tag": destination_tag,
                "conflicts": [c.to_dict() for c in self.conflicts],
            },
        )

    @property
    def conflicting_ids(self) -> List[str]:
        """Distinct dependency IDs that block the move."""
        seen: List[str] = []
        for conflict in self.conflicts:
            key = str(conflict.dependency)
            if key not in seen:
                seen.append(key)
        return seen


class InvalidSubtaskMoveError(MoveError):
    """Raised for subtask moves that are not supported.

    Subtasks cannot cross tags directly, and a task that still owns subtasks
    cannot be demoted to a subtask.
    """

    def __init__(self, task_id: TaskRef, reason: str) -> None:
        self.task_id = task_id
        self.reason = reason
        super().__init__(reason, {"task_id": str(task_id), "reason": reason})


class ShadowedDependencyError(MoveError):
    """Raised when a move leaves a subtask edge the file format cannot express.

    A bare integer on a subtask names a sibling subtask before a top-level
    task, so a subtask cannot depend on task N while its parent also holds a
    subtask N.
    """

    def __init__(self, owner: TaskRef, target: TaskRef, sibling: TaskRef) -> None:
        self.owner = owner
        self.target = target
        self.sibling = sibling
        super().__init__(
            f"Cannot keep dependency {owner} -> task {target}: "
            f"sibling subtask {sibling} would take its place",
            {"owner_id": str(owner), "target_id": str(target), "sibling_id": str(sibling)},
        )
