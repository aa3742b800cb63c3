"""
Core types for task store response contracts.

Defines the fundamental building blocks: error codes, error types,
the standard ToolResponse dataclass, and the internal _build_meta() helper.
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

RESPONSE_VERSION = "response-v2"


class ErrorCode(str, Enum):
    """Machine-readable error codes for task store responses.

    Codes follow SCREAMING_SNAKE_CASE convention.

    Categories:
        - Validation (input errors)
        - Resource (not found, conflict)
        - System (internal, unavailable)
    """

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_SUBTASK_MOVE = "INVALID_SUBTASK_MOVE"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    TAG_NOT_FOUND = "TAG_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    ID_CONFLICT = "ID_CONFLICT"
    CROSS_TAG_DEPENDENCY_CONFLICT = "CROSS_TAG_DEPENDENCY_CONFLICT"
    SHADOWED_DEPENDENCY = "SHADOWED_DEPENDENCY"
    VERSION_CONFLICT = "VERSION_CONFLICT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    OPERATION_FAILED = "OPERATION_FAILED"


class ErrorType(str, Enum):
    """Error categories for routing and client-side handling.

    Each type corresponds to an HTTP status code analog and indicates
    whether the operation should be retried.
    """

    VALIDATION = "validation"  # 400 - No retry, fix input
    NOT_FOUND = "not_found"  # 404 - No retry
    CONFLICT = "conflict"  # 409 - Maybe retry, check state
    INTERNAL = "internal"  # 500 - Yes, with backoff
    UNAVAILABLE = "unavailable"  # 503 - Yes, with backoff


@dataclass
class ToolResponse:
    """
    Standard response structure for task store operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload (operation-specific structured data)
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": RESPONSE_VERSION})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_meta(*, warnings: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version.

    Args:
        warnings: Non-fatal issues to surface (string array)
    """
    meta: Dict[str, Any] = {"version": RESPONSE_VERSION}
    if warnings:
        meta["warnings"] = list(warnings)
    return meta
