"""Task identifier types.

Identifiers arrive as ``1``, ``"1"`` or ``"1.2"`` from callers and from the
persisted document. They are parsed once into a ``TaskRef`` and handled as
typed values from then on:

- ``TaskId(7)``         -> top-level task 7
- ``SubtaskId(7, 2)``   -> subtask 2 of task 7 (written ``"7.2"``)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union


# ASCII digits only; str.isdigit() also accepts superscripts and other scripts.
_DECIMAL = re.compile(r"[0-9]+")


class InvalidTaskIdError(ValueError):
    """Raised when a value cannot be parsed as a task or subtask ID."""

    def __init__(self, value: Any, reason: str = "") -> None:
        self.value = value
        self.reason = reason
        message = f"Invalid task ID {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


@dataclass(frozen=True, order=True)
class TaskId:
    """Reference to a top-level task within one partition."""

    id: int

    @property
    def task_id(self) -> int:
        """ID of the top-level task that owns this reference."""
        return self.id

    @property
    def is_subtask(self) -> bool:
        return False

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, order=True)
class SubtaskId:
    """Reference to a subtask, always addressed through its parent."""

    parent: int
    sub: int

    @property
    def task_id(self) -> int:
        return self.parent

    @property
    def is_subtask(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.parent}.{self.sub}"


TaskRef = Union[TaskId, SubtaskId]


def ref_sort_key(ref: TaskRef) -> tuple:
    """Sort key placing a task before its subtasks: 1, 1.1, 1.2, 2, ..."""
    if isinstance(ref, SubtaskId):
        return (ref.parent, ref.sub)
    return (ref.id, 0)


def is_decimal(text: str) -> bool:
    return _DECIMAL.fullmatch(text) is not None


def _parse_positive(value: str, original: Any) -> int:
    text = value.strip()
    if not is_decimal(text):
        raise InvalidTaskIdError(original, "expected a positive integer")
    number = int(text)
    if number <= 0:
        raise InvalidTaskIdError(original, "IDs start at 1")
    return number


def parse_task_ref(value: Any) -> TaskRef:
    """
    Parse a caller-supplied identifier into a ``TaskRef``.

    Args:
        value: ``int``, numeric string, ``"parent.sub"`` string, or an
            existing ``TaskRef`` (returned unchanged)

    Returns:
        ``TaskId`` or ``SubtaskId``

    Raises:
        InvalidTaskIdError: If the value is not a well-formed identifier
    """
    if isinstance(value, (TaskId, SubtaskId)):
        return value
    if isinstance(value, bool):
        raise InvalidTaskIdError(value, "booleans are not IDs")
    if isinstance(value, int):
        if value <= 0:
            raise InvalidTaskIdError(value, "IDs start at 1")
        return TaskId(value)
    if not isinstance(value, str):
        raise InvalidTaskIdError(value, f"unsupported type {type(value).__name__}")

    parts = value.strip().split(".")
    if len(parts) == 1:
        return TaskId(_parse_positive(parts[0], value))
    if len(parts) == 2:
        return SubtaskId(_parse_positive(parts[0], value), _parse_positive(parts[1], value))
    raise InvalidTaskIdError(value, "at most one '.' separator is allowed")


def parse_task_refs(values: Any) -> list[TaskRef]:
    """Parse a list of identifiers or a comma-separated string (``"1,2.1"``)."""
    if isinstance(values, str):
        values = [part for part in values.split(",") if part.strip()]
    elif isinstance(values, (int, TaskId, SubtaskId)):
        values = [values]
    return [parse_task_ref(v) for v in values]
