"""In-memory representation of the tagged task document.

The persisted file maps tag names to partitions::

    {
      "master":  {"tasks": [...], "metadata": {...}},
      "feature": {"tasks": [...]},
      "currentTag": "master"
    }

``TaskDocument`` is always the canonical multi-tag shape; legacy layouts are
converted by the codec before a ``TaskDocument`` is constructed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tagged_tasks.core.models.task import Task

DEFAULT_TAG = "master"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TagMetadata(BaseModel):
    """Optional bookkeeping stored alongside a partition's tasks."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    created: Optional[str] = None
    updated: Optional[str] = None
    description: Optional[str] = None


class TagPartition(BaseModel):
    """An isolated, ordered collection of tasks."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    tasks: List[Task] = Field(default_factory=list)
    metadata: Optional[TagMetadata] = None

    def get_task(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def index_of(self, task_id: int) -> Optional[int]:
        for index, task in enumerate(self.tasks):
            if task.id == task_id:
                return index
        return None

    def task_ids(self) -> List[int]:
        return [t.id for t in self.tasks]

    def max_task_id(self) -> int:
        return max((t.id for t in self.tasks), default=0)

    def touch(self, timestamp: Optional[str] = None) -> None:
        """Record a modification time in the partition metadata."""
        stamp = timestamp or utc_timestamp()
        if self.metadata is None:
            self.metadata = TagMetadata(created=stamp, updated=stamp)
        else:
            self.metadata.updated = stamp


class TaskDocument(BaseModel):
    """All partitions of one tasks file plus the active-tag marker."""

    tags: Dict[str, TagPartition] = Field(default_factory=dict)
    current_tag: Optional[str] = None

    def get_partition(self, tag: str) -> Optional[TagPartition]:
        return self.tags.get(tag)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def tag_names(self) -> List[str]:
        return list(self.tags.keys())

    def create_partition(self, tag: str, description: Optional[str] = None) -> TagPartition:
        """Create an empty partition (no-op if it already exists)."""
        partition = self.tags.get(tag)
        if partition is None:
            stamp = utc_timestamp()
            metadata = TagMetadata(created=stamp, updated=stamp)
            if description:
                metadata.description = description
            partition = TagPartition(tasks=[], metadata=metadata)
            self.tags[tag] = partition
        return partition

    @property
    def active_tag(self) -> str:
        """Tag used by callers that do not name one."""
        if self.current_tag and self.current_tag in self.tags:
            return self.current_tag
        if DEFAULT_TAG in self.tags or not self.tags:
            return DEFAULT_TAG
        return next(iter(self.tags))
