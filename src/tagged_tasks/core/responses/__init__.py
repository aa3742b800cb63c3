"""Standard response envelope for task store operations."""

from tagged_tasks.core.responses.builders import error_response, success_response
from tagged_tasks.core.responses.types import ErrorCode, ErrorType, ToolResponse

__all__ = [
    "ErrorCode",
    "ErrorType",
    "ToolResponse",
    "error_response",
    "success_response",
]
