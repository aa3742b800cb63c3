"""Low-level file helpers shared by the codec and the writer."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def encode_json(data: Any) -> bytes:
    """Serialize ``data`` the way tasks files are written (2-space indent, UTF-8)."""
    return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` atomically.

    The bytes go to a temp file in the same directory, are fsynced, then
    renamed over the target, so readers see either the old or the new file.

    Raises:
        OSError: If the write or rename fails (the temp file is removed)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)
        logger.debug("Wrote %d bytes to %s", len(data), path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
