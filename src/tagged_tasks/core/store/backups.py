"""Timestamped backups of the tasks file taken before each commit."""

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_BACKUPS = 10


def backups_dir_for(path: Path) -> Path:
    """Backup directory for a tasks file: ``<dir>/.backups/<stem>/``."""
    return path.parent / ".backups" / path.stem


def backup_document(path: Path, max_backups: int = DEFAULT_MAX_BACKUPS) -> Optional[Path]:
    """
    Create a versioned backup of the tasks file.

    Directory structure:
        .backups/
          └── {stem}/
              ├── 2025-12-26T18-20-13.456789.json   # Timestamped backups (μs precision)
              ├── 2025-12-26T18-30-45.123456.json
              └── latest.json                       # Copy of most recent

    Args:
        path: Tasks file to back up
        max_backups: Maximum number of versioned backups to retain.
                     Set to 0 for unlimited backups.

    Returns:
        Path to backup file if created, None otherwise
    """
    if not path.exists():
        return None

    backups_dir = backups_dir_for(path)
    backups_dir.mkdir(parents=True, exist_ok=True)

    # Full microseconds to handle rapid successive saves
    now = datetime.now(timezone.utc)
    backup_file = backups_dir / f"{now.strftime('%Y-%m-%dT%H-%M-%S')}.{now.strftime('%f')}.json"

    try:
        shutil.copy2(path, backup_file)
        shutil.copy2(backup_file, backups_dir / "latest.json")

        if max_backups > 0:
            apply_backup_retention(backups_dir, max_backups)

        return backup_file
    except OSError as exc:
        logger.warning("Failed to back up %s: %s", path, exc)
        return None


def list_backups(path: Path) -> List[Path]:
    """Timestamped backups for ``path``, oldest first."""
    backups_dir = backups_dir_for(path)
    if not backups_dir.is_dir():
        return []
    return sorted(
        (f for f in backups_dir.glob("*.json") if f.name != "latest.json" and f.is_file()),
        key=lambda p: p.name,
    )


def apply_backup_retention(backups_dir: Path, max_backups: int) -> int:
    """
    Remove the oldest backups exceeding the limit.

    Returns:
        Number of backups deleted
    """
    backup_files = sorted(
        (f for f in backups_dir.glob("*.json") if f.name != "latest.json" and f.is_file()),
        key=lambda p: p.name,
    )

    deleted_count = 0
    while len(backup_files) > max_backups:
        oldest = backup_files.pop(0)
        try:
            oldest.unlink()
            deleted_count += 1
        except OSError:
            logger.debug("Could not delete old backup %s", oldest)

    return deleted_count
