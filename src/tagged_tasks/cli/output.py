"""JSON output helpers for CLI commands.

Every command prints exactly one response envelope to stdout::

    {"success": true, "data": {...}, "error": null, "meta": {"version": "response-v2"}}

Errors use the same envelope and exit with status 1.
"""

import json
import sys
from typing import Any, Mapping, NoReturn, Optional, Sequence

import click

from tagged_tasks.core.errors import error_to_response
from tagged_tasks.core.responses import error_response, success_response


def _emit(payload: Mapping[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def emit_success(data: Mapping[str, Any], warnings: Optional[Sequence[str]] = None) -> None:
    """Print a success envelope."""
    _emit(success_response(data, warnings=warnings).to_dict())


def emit_error(
    message: str,
    *,
    code: str,
    error_type: str,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> NoReturn:
    """Print an error envelope and exit with status 1."""
    _emit(
        error_response(
            message,
            error_code=code,
            error_type=error_type,
            remediation=remediation,
            details=details,
        ).to_dict()
    )
    sys.exit(1)


def emit_exception(exc: Exception) -> NoReturn:
    """Print the envelope for a known store error and exit with status 1.

    Unknown exceptions are re-raised.
    """
    response = error_to_response(exc)
    if response is None:
        raise exc
    _emit(response)
    sys.exit(1)
