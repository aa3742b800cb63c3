"""Generation of per-task text files from a tag partition.

Each task in a partition is rendered to ``task_NNN.txt`` (``task_NNN_<tag>.txt``
for tags other than ``master``). Files for tasks that no longer exist in the
partition are removed. The generator is called by the store writer after a
commit; its failures are logged there and never undo the commit.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tagged_tasks.core.models import DEFAULT_TAG, Subtask, TagPartition, Task
from tagged_tasks.core.store.files import atomic_write_bytes

logger = logging.getLogger(__name__)

_UNSAFE_TAG_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class TaskFileResult:
    """Files touched by one generation run."""

    tag: str
    added: List[Path] = field(default_factory=list)
    updated: List[Path] = field(default_factory=list)
    deleted: List[Path] = field(default_factory=list)


def _tag_suffix(tag: str) -> str:
    if tag == DEFAULT_TAG:
        return ""
    return "_" + _UNSAFE_TAG_CHARS.sub("-", tag)


def task_file_name(task_id: int, tag: str) -> str:
    return f"task_{task_id:03d}{_tag_suffix(tag)}.txt"


def _format_dependencies(values: List) -> str:
    if not values:
        return "None"
    return ", ".join(str(v) for v in values)


def _format_subtask(parent: Task, subtask: Subtask) -> List[str]:
    lines = [
        f"## {subtask.id}. {subtask.title} [{subtask.status.value}]",
        f"### Dependencies: {_format_dependencies(subtask.dependencies)}",
        f"### Description: {subtask.description}",
    ]
    details = getattr(subtask, "details", None)
    if details:
        lines.append("### Details:")
        lines.append(str(details))
    return lines


def render_task(task: Task) -> str:
    """Render one task (and its subtasks) as plain text."""
    lines = [
        f"# Task ID: {task.id}",
        f"# Title: {task.title}",
        f"# Status: {task.status.value}",
        f"# Dependencies: {_format_dependencies(task.dependencies)}",
        f"# Priority: {task.priority.value}",
        f"# Description: {task.description}",
    ]
    details = getattr(task, "details", None)
    lines.append("# Details:")
    lines.append(str(details) if details else "")
    test_strategy = getattr(task, "testStrategy", None)
    lines.append("")
    lines.append("# Test Strategy:")
    lines.append(str(test_strategy) if test_strategy else "")

    if task.subtasks:
        lines.append("")
        lines.append("# Subtasks:")
        for subtask in task.subtasks:
            lines.extend(_format_subtask(task, subtask))
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


class TaskFileGenerator:
    """Writes and prunes task files for a partition in ``output_dir``."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def _existing_files(self, tag: str) -> List[Path]:
        if not self.output_dir.is_dir():
            return []
        suffix = _tag_suffix(tag)
        pattern = re.compile(rf"^task_(\d+){re.escape(suffix)}\.txt$")
        return [p for p in self.output_dir.iterdir() if p.is_file() and pattern.match(p.name)]

    def generate(self, tag: str, partition: Optional[TagPartition]) -> TaskFileResult:
        """
        Regenerate all task files for ``tag``.

        Args:
            tag: Tag name (selects the file-name suffix)
            partition: The partition's current state; None removes every file

        Returns:
            TaskFileResult listing added, updated and deleted files
        """
        result = TaskFileResult(tag=tag)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        wanted = {}
        for task in partition.tasks if partition else []:
            wanted[self.output_dir / task_file_name(task.id, tag)] = render_task(task)

        for path, content in wanted.items():
            data = content.encode("utf-8")
            if path.exists():
                if path.read_bytes() == data:
                    continue
                atomic_write_bytes(path, data)
                result.updated.append(path)
            else:
                atomic_write_bytes(path, data)
                result.added.append(path)

        for path in self._existing_files(tag):
            if path not in wanted:
                path.unlink()
                result.deleted.append(path)

        logger.debug(
            "Task files for tag '%s': %d added, %d updated, %d deleted",
            tag,
            len(result.added),
            len(result.updated),
            len(result.deleted),
        )
        return result
