"""
Locked, version-checked commits of a tasks document.

Provides:
- File locking with timeout (``<path>.lock``)
- Optimistic concurrency: the on-disk fingerprint must match the version
  the caller loaded
- Optional timestamped backup before overwrite
- Atomic write (temp file + fsync + rename)
- Post-commit hooks (task file generation, change notifications) whose
  failures are logged but never undo the commit
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from filelock import FileLock, Timeout

from tagged_tasks.core.errors.store import (
    ConcurrentModificationError,
    LockAcquisitionError,
    StoreWriteError,
)
from tagged_tasks.core.models import TaskDocument, utc_timestamp
from tagged_tasks.core.notifications import ChangeEvent, ChangeKind, ChangeNotifier
from tagged_tasks.core.store.backups import DEFAULT_MAX_BACKUPS, backup_document
from tagged_tasks.core.store.codec import encode_document
from tagged_tasks.core.store.files import atomic_write_bytes
from tagged_tasks.core.store.versioning import DocumentVersion, fingerprint_bytes, read_version
from tagged_tasks.core.task_files import TaskFileGenerator

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10.0


@dataclass
class CommitResult:
    """Outcome of a successful commit."""

    path: Path
    version: DocumentVersion
    backup_path: Optional[Path] = None
    events: List[ChangeEvent] = field(default_factory=list)
    hook_errors: List[str] = field(default_factory=list)


def lock_path_for(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


class StoreWriter:
    """Writes tasks documents with locking and optimistic concurrency.

    Args:
        lock_timeout: Seconds to wait for the file lock
        backup: Take a timestamped backup before overwriting
        max_backups: Backups retained per file (0 for unlimited)
        notifier: Receives change events after each commit
        file_generator: Regenerates task files for touched tags after each commit
    """

    def __init__(
        self,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        backup: bool = False,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        notifier: Optional[ChangeNotifier] = None,
        file_generator: Optional[TaskFileGenerator] = None,
    ) -> None:
        self.lock_timeout = lock_timeout
        self.backup = backup
        self.max_backups = max_backups
        self.notifier = notifier
        self.file_generator = file_generator

    def commit(
        self,
        path: Union[str, Path],
        document: TaskDocument,
        expected_version: Optional[DocumentVersion],
        *,
        touched_tags: Sequence[str] = (),
        operation: str = "update",
        affected_ids: Iterable[str] = (),
    ) -> CommitResult:
        """
        Persist ``document`` if the file still matches ``expected_version``.

        ``metadata.updated`` is stamped on every touched partition before the
        document is encoded.

        Args:
            path: Tasks file path
            document: Document to write (canonical shape)
            expected_version: Version the caller loaded; None means the file
                must not exist yet
            touched_tags: Partitions modified by the operation
            operation: Operation name reported in change events
            affected_ids: Task identifiers reported in change events

        Returns:
            CommitResult with the new version

        Raises:
            LockAcquisitionError: If the lock is not acquired within the timeout
            ConcurrentModificationError: If the file changed since it was loaded
            StoreWriteError: If the write itself fails
        """
        path = Path(path)
        lock_path = lock_path_for(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        backup_path = None
        try:
            with FileLock(str(lock_path), timeout=self.lock_timeout):
                current = read_version(path)
                self._check_version(path, expected_version, current)

                stamp = utc_timestamp()
                for tag in touched_tags:
                    partition = document.get_partition(tag)
                    if partition is not None:
                        partition.touch(stamp)

                data = encode_document(document)

                if self.backup and current is not None:
                    backup_path = backup_document(path, self.max_backups)

                try:
                    atomic_write_bytes(path, data)
                    mtime_ns = path.stat().st_mtime_ns
                except OSError as exc:
                    raise StoreWriteError(path, str(exc)) from exc
        except Timeout as exc:
            raise LockAcquisitionError(lock_path, self.lock_timeout) from exc

        version = fingerprint_bytes(data, mtime_ns)
        logger.info(
            "Committed %s (%s) to %s, version %s",
            operation,
            ", ".join(touched_tags) or "no tags",
            path,
            version.sha256[:12],
        )

        result = CommitResult(path=path, version=version, backup_path=backup_path)
        self._run_post_commit(result, document, touched_tags, operation, list(affected_ids))
        return result

    @staticmethod
    def _check_version(
        path: Path,
        expected: Optional[DocumentVersion],
        current: Optional[DocumentVersion],
    ) -> None:
        if expected is None:
            if current is not None:
                raise ConcurrentModificationError(path, None, current.sha256)
            return
        if not expected.matches(current):
            raise ConcurrentModificationError(
                path,
                expected.sha256,
                current.sha256 if current is not None else None,
            )

    def _run_post_commit(
        self,
        result: CommitResult,
        document: TaskDocument,
        touched_tags: Sequence[str],
        operation: str,
        affected_ids: List[str],
    ) -> None:
        events: List[ChangeEvent] = [
            ChangeEvent(
                ChangeKind.TASKS_UPDATED,
                str(result.path),
                tag=tag,
                operation=operation,
                affected_ids=tuple(affected_ids),
            )
            for tag in (list(touched_tags) or [None])
        ]

        if self.file_generator is not None:
            for tag in touched_tags:
                try:
                    generated = self.file_generator.generate(tag, document.get_partition(tag))
                except Exception as exc:
                    logger.warning("Task file generation failed for tag '%s': %s", tag, exc, exc_info=True)
                    result.hook_errors.append(f"task files ({tag}): {exc}")
                    continue
                events.extend(
                    ChangeEvent(ChangeKind.TASK_FILE_ADDED, str(p), tag=tag) for p in generated.added
                )
                events.extend(
                    ChangeEvent(ChangeKind.TASK_FILE_DELETED, str(p), tag=tag) for p in generated.deleted
                )

        result.events = events
        if self.notifier is not None:
            self.notifier.emit_all(events)
