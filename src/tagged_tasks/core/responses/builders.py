"""
Response builder functions for task store operations.

Provides success_response() and error_response(), the two primary constructors
for creating standardized ToolResponse objects.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from tagged_tasks.core.responses.types import (
    ErrorCode,
    ErrorType,
    ToolResponse,
    _build_meta,
)


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
    **fields: Any,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Optional mapping used as the base payload.
        warnings: Non-fatal issues to surface in ``meta.warnings``.
        **fields: Additional payload fields (shorthand for ``data.update``).
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))
    if fields:
        payload.update(fields)

    meta_payload = _build_meta(warnings=warnings)
    return ToolResponse(success=True, data=payload, error=None, meta=meta_payload)


def error_response(
    message: str,
    *,
    error_code: Optional[Union[ErrorCode, str]] = None,
    error_type: Optional[Union[ErrorType, str]] = None,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        error_code: Canonical error code (``ErrorCode`` enum or string).
        error_type: Error category for routing (``ErrorType`` enum or string).
        remediation: User-facing guidance on how to fix the issue.
        details: Nested structure describing the failure (IDs, tags, pairs).
    """
    payload: Dict[str, Any] = {}
    if error_code is not None:
        payload["error_code"] = _enum_value(error_code)
    if error_type is not None:
        payload["error_type"] = _enum_value(error_type)
    if remediation:
        payload["remediation"] = remediation
    if details:
        payload["details"] = dict(details)

    meta_payload = _build_meta()
    return ToolResponse(success=False, data=payload, error=message, meta=meta_payload)


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)
