"""Storage and concurrency error classes.

Raised by the document codec and the store writer. Every error carries the
structured details a caller needs to render it without re-reading the
document.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union


class TaskStoreError(Exception):
    """Base class for all tagged task store errors.

    Attributes:
        details: Machine-readable context (tag names, IDs, paths).
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for responses and logs."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": dict(self.details),
        }


class NotFoundError(TaskStoreError):
    """Raised when the document path does not exist."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        super().__init__(f"Tasks file not found: {self.path}", {"path": str(self.path)})


class ParseError(TaskStoreError):
    """Raised when a tasks file exists but is not a well-formed document."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(
            f"Tasks file {self.path} is malformed: {reason}",
            {"path": str(self.path), "reason": reason},
        )


class ConcurrentModificationError(TaskStoreError):
    """Raised when the file changed on disk between load and commit.

    The caller should reload, re-validate and retry the operation.
    """

    def __init__(
        self,
        path: Union[str, Path],
        expected: Optional[str],
        actual: Optional[str],
    ) -> None:
        self.path = Path(path)
        self.expected_hash = expected
        self.actual_hash = actual
        super().__init__(
            f"Tasks file {self.path} was modified by another writer "
            f"(expected {_short(expected)}, on-disk {_short(actual)})",
            {"path": str(self.path), "expected_hash": expected, "actual_hash": actual},
        )


class LockAcquisitionError(TaskStoreError):
    """Raised when the file lock cannot be acquired within the timeout."""

    def __init__(self, lock_path: Union[str, Path], timeout: float) -> None:
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        super().__init__(
            f"Could not acquire lock {self.lock_path} within {timeout}s",
            {"lock_path": str(self.lock_path), "timeout": timeout},
        )


class StoreWriteError(TaskStoreError):
    """Raised when the document could not be written (I/O failure)."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(
            f"Failed to write tasks file {self.path}: {reason}",
            {"path": str(self.path), "reason": reason},
        )


def _short(digest: Optional[str]) -> str:
    if not digest:
        return "<absent>"
    return digest[:12]
