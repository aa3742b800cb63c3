"""Document version fingerprints for optimistic concurrency.

A ``DocumentVersion`` is captured from the exact bytes the codec parsed. The
writer re-reads the file under lock before committing and refuses to
overwrite when the fingerprint no longer matches.

Key functions:
- fingerprint_bytes(): SHA-256 + size of raw document bytes
- read_version(): current on-disk version, or None if the file is absent
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentVersion:
    """Fingerprint of a tasks file at a point in time.

    ``sha256`` is authoritative; ``mtime_ns`` and ``size`` are kept for
    diagnostics and for a cheap pre-check.
    """

    sha256: str
    size: int
    mtime_ns: int = 0

    def matches(self, other: Optional["DocumentVersion"]) -> bool:
        return other is not None and other.sha256 == self.sha256

    def to_dict(self) -> Dict[str, Any]:
        return {"sha256": self.sha256, "size": self.size, "mtime_ns": self.mtime_ns}


def fingerprint_bytes(data: bytes, mtime_ns: int = 0) -> DocumentVersion:
    """Compute the version of raw document bytes."""
    return DocumentVersion(
        sha256=hashlib.sha256(data).hexdigest(),
        size=len(data),
        mtime_ns=mtime_ns,
    )


def read_version(path: Path) -> Optional[DocumentVersion]:
    """Fingerprint the file currently at ``path``.

    Args:
        path: Tasks file path

    Returns:
        DocumentVersion, or None if the file does not exist
    """
    try:
        data = path.read_bytes()
        mtime_ns = path.stat().st_mtime_ns
    except FileNotFoundError:
        logger.debug("Tasks file not found while fingerprinting: %s", path)
        return None
    return fingerprint_bytes(data, mtime_ns)
