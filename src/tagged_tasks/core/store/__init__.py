"""Persistence: codec and versioning.

The locked writer lives in ``tagged_tasks.core.store.writer``.
"""

from tagged_tasks.core.store.codec import (
    LoadedDocument,
    load,
    load_document,
    parse_document,
    save,
    serialize_document,
)
from tagged_tasks.core.store.versioning import DocumentVersion, fingerprint_bytes, read_version

__all__ = [
    "DocumentVersion",
    "LoadedDocument",
    "fingerprint_bytes",
    "load",
    "load_document",
    "parse_document",
    "read_version",
    "save",
    "serialize_document",
]
