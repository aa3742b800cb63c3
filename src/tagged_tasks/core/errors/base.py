"""Error-to-ErrorCode mapping registry.

Provides a centralized mapping from exception types to (ErrorCode, ErrorType) tuples,
enabling consistent error response generation across the codebase.

Usage:
    from tagged_tasks.core.errors.base import error_to_response

    try:
        store.move(request)
    except Exception as e:
        result = error_to_response(e)
        if result is not None:
            return result
        raise  # Unknown error, re-raise
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple, Type

from tagged_tasks.core.errors.move import (
    DependencyConflictError,
    IdConflictError,
    InvalidMoveRequestError,
    InvalidSubtaskMoveError,
    ShadowedDependencyError,
    TagNotFoundError,
    TaskNotFoundError,
)
from tagged_tasks.core.errors.store import (
    ConcurrentModificationError,
    LockAcquisitionError,
    NotFoundError,
    ParseError,
    StoreWriteError,
    TaskStoreError,
)
from tagged_tasks.core.models.refs import InvalidTaskIdError
from tagged_tasks.core.responses import ErrorCode, ErrorType, error_response

ERROR_MAPPINGS: Dict[Type[Exception], Tuple[ErrorCode, ErrorType]] = {
    # --- Store errors ---
    NotFoundError: (ErrorCode.NOT_FOUND, ErrorType.NOT_FOUND),
    ParseError: (ErrorCode.INVALID_FORMAT, ErrorType.VALIDATION),
    ConcurrentModificationError: (ErrorCode.VERSION_CONFLICT, ErrorType.CONFLICT),
    LockAcquisitionError: (ErrorCode.LOCK_TIMEOUT, ErrorType.UNAVAILABLE),
    StoreWriteError: (ErrorCode.OPERATION_FAILED, ErrorType.INTERNAL),
    # --- Move errors ---
    TagNotFoundError: (ErrorCode.TAG_NOT_FOUND, ErrorType.NOT_FOUND),
    TaskNotFoundError: (ErrorCode.TASK_NOT_FOUND, ErrorType.NOT_FOUND),
    IdConflictError: (ErrorCode.ID_CONFLICT, ErrorType.CONFLICT),
    DependencyConflictError: (ErrorCode.CROSS_TAG_DEPENDENCY_CONFLICT, ErrorType.CONFLICT),
    InvalidSubtaskMoveError: (ErrorCode.INVALID_SUBTASK_MOVE, ErrorType.VALIDATION),
    ShadowedDependencyError: (ErrorCode.SHADOWED_DEPENDENCY, ErrorType.CONFLICT),
    InvalidMoveRequestError: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    # --- Input parsing ---
    InvalidTaskIdError: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
}

_REMEDIATIONS: Dict[Type[Exception], str] = {
    ConcurrentModificationError: "Reload the tasks file and retry the operation",
    DependencyConflictError: (
        "Pass with_dependencies to move the dependencies along, "
        "or ignore_dependencies to drop the conflicting edges"
    ),
    IdConflictError: "Choose a free destination ID or allow overwrite explicitly",
    TagNotFoundError: "Check the tag name or create the tag first",
    InvalidSubtaskMoveError: "Promote the subtask to a task within its tag before moving it",
    ShadowedDependencyError: "Choose a destination ID that no sibling subtask of the dependent already uses",
}


def lookup_error(exc: Exception) -> Optional[Tuple[ErrorCode, ErrorType]]:
    """Find the mapping for ``exc``, walking its MRO for subclasses."""
    for cls in type(exc).__mro__:
        mapping = ERROR_MAPPINGS.get(cls)
        if mapping is not None:
            return mapping
    return None


def error_to_response(exc: Exception) -> Optional[dict]:
    """Convert a known exception into an error response dict.

    Args:
        exc: The exception to convert.

    Returns:
        A serialized error response, or None if the exception type is unmapped.
    """
    mapping = lookup_error(exc)
    if mapping is None:
        return None

    error_code, error_type = mapping
    details = exc.details if isinstance(exc, TaskStoreError) else {"value": repr(getattr(exc, "value", None))}
    remediation = None
    for cls in type(exc).__mro__:
        if cls in _REMEDIATIONS:
            remediation = _REMEDIATIONS[cls]
            break

    return error_response(
        str(exc),
        error_code=error_code,
        error_type=error_type,
        remediation=remediation,
        details=details,
    ).to_dict()
