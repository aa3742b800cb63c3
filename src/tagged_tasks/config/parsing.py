"""Parsing helpers for configuration values coming from TOML or the environment."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_float(value: Any, name: str, minimum: float = 0.0) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value %r (expected a number)", name, value)
        return None
    if parsed < minimum:
        logger.warning("Ignoring %s value %r below minimum %s", name, value, minimum)
        return None
    return parsed


def _parse_int(value: Any, name: str, minimum: int = 0) -> Optional[int]:
    if isinstance(value, bool):
        logger.warning("Ignoring invalid %s value %r (expected an integer)", name, value)
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value %r (expected an integer)", name, value)
        return None
    if parsed < minimum:
        logger.warning("Ignoring %s value %r below minimum %s", name, value, minimum)
        return None
    return parsed


def _normalize_log_level(value: str) -> str:
    normalized = str(value).strip().upper()
    if normalized not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Falling back to 'INFO'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return "INFO"
    return normalized
