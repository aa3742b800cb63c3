"""Document, task and identifier models."""

from tagged_tasks.core.models.document import (
    DEFAULT_TAG,
    TagMetadata,
    TagPartition,
    TaskDocument,
    utc_timestamp,
)
from tagged_tasks.core.models.refs import (
    InvalidTaskIdError,
    SubtaskId,
    TaskId,
    TaskRef,
    parse_task_ref,
    parse_task_refs,
    ref_sort_key,
)
from tagged_tasks.core.models.task import (
    DependencyValue,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    normalize_dependency,
)

__all__ = [
    "DEFAULT_TAG",
    "DependencyValue",
    "InvalidTaskIdError",
    "Subtask",
    "SubtaskId",
    "TagMetadata",
    "TagPartition",
    "Task",
    "TaskDocument",
    "TaskId",
    "TaskPriority",
    "TaskRef",
    "TaskStatus",
    "normalize_dependency",
    "parse_task_ref",
    "parse_task_refs",
    "ref_sort_key",
    "utc_timestamp",
]
