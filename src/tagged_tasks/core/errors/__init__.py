"""Unified error hierarchy for tagged-tasks.

All custom exception classes are defined in domain-specific modules within
this package. This __init__.py re-exports everything for convenient access.

Usage:
    # Import from domain modules for specificity
    from tagged_tasks.core.errors.move import DependencyConflictError

    # Or import from the package
    from tagged_tasks.core.errors import TagNotFoundError, error_to_response
"""

# --- Base / Registry ---
from tagged_tasks.core.errors.base import ERROR_MAPPINGS, error_to_response, lookup_error

# --- Move errors ---
from tagged_tasks.core.errors.move import (
    DependencyConflict,
    DependencyConflictError,
    IdConflictError,
    InvalidMoveRequestError,
    InvalidSubtaskMoveError,
    ShadowedDependencyError,
    MoveError,
    TagNotFoundError,
    TaskNotFoundError,
)

# --- Store errors ---
from tagged_tasks.core.errors.store import (
    ConcurrentModificationError,
    LockAcquisitionError,
    NotFoundError,
    ParseError,
    StoreWriteError,
    TaskStoreError,
)

__all__ = [
    # Base / Registry
    "ERROR_MAPPINGS",
    "error_to_response",
    "lookup_error",
    # Store errors
    "TaskStoreError",
    "NotFoundError",
    "ParseError",
    "ConcurrentModificationError",
    "LockAcquisitionError",
    "StoreWriteError",
    # Move errors
    "MoveError",
    "DependencyConflict",
    "DependencyConflictError",
    "IdConflictError",
    "InvalidMoveRequestError",
    "InvalidSubtaskMoveError",
    "ShadowedDependencyError",
    "TagNotFoundError",
    "TaskNotFoundError",
]
