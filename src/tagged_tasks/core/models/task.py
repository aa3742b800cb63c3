"""Task and subtask models for tagged task documents."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tagged_tasks.core.models.refs import is_decimal

# A dependency as written in the document: ``3`` or ``"3.1"``.
DependencyValue = Union[int, str]


class TaskStatus(str, Enum):
    """Lifecycle status shared by tasks and subtasks."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    REVIEW = "review"
    DEFERRED = "deferred"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def normalize_dependency(value: Any) -> DependencyValue:
    """
    Normalize a single dependency entry.

    Integers and numeric strings become ``int``; ``"parent.sub"`` strings are
    kept as written (whitespace stripped).

    Raises:
        ValueError: If the entry is neither form
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid dependency {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise ValueError(f"Invalid dependency {value!r}: IDs start at 1")
        return value
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if is_decimal(text) and int(text) > 0:
            return int(text)
        parts = text.split(".")
        if len(parts) == 2 and all(is_decimal(p) and int(p) > 0 for p in parts):
            return f"{int(parts[0])}.{int(parts[1])}"
    raise ValueError(f"Invalid dependency {value!r}")


def _normalize_dependency_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [normalize_dependency(v) for v in value]
    return value


class Subtask(BaseModel):
    """A unit of work nested under a task; ``id`` is unique among its siblings only."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int = Field(..., gt=0)
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    dependencies: List[DependencyValue] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        # Older files store the qualified form ("3.2"); only the local part is kept.
        if isinstance(value, str) and "." in value:
            return value.strip().split(".")[-1]
        return value

    @field_validator("dependencies", mode="before")
    @classmethod
    def _normalize_dependencies(cls, value: Any) -> Any:
        return _normalize_dependency_list(value)


class Task(BaseModel):
    """A top-level task; ``id`` is unique within its tag partition only."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int = Field(..., gt=0)
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    dependencies: List[DependencyValue] = Field(default_factory=list)
    subtasks: List[Subtask] = Field(default_factory=list)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _normalize_dependencies(cls, value: Any) -> Any:
        return _normalize_dependency_list(value)

    @field_validator("subtasks", mode="before")
    @classmethod
    def _default_subtasks(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_subtask(self, subtask_id: int) -> Optional[Subtask]:
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    def subtask_ids(self) -> List[int]:
        return [s.id for s in self.subtasks]
