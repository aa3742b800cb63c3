"""
Tasks file codec: loading, legacy normalization, and serialization.

The on-disk document comes in three shapes, resolved once here:

- tagged:       ``{"<tag>": {"tasks": [...], "metadata": {...}}, "currentTag": "<tag>"}``
- legacy:       ``{"tasks": [...], "metadata": {...}}``
- legacy list:  ``[...]``

Both legacy shapes become a single ``master`` partition. Everything past this
module only ever sees a ``TaskDocument``.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from pydantic import ValidationError

from tagged_tasks.core.errors.store import NotFoundError, ParseError
from tagged_tasks.core.models import DEFAULT_TAG, TagPartition, TaskDocument
from tagged_tasks.core.store.files import atomic_write_bytes, encode_json
from tagged_tasks.core.store.versioning import DocumentVersion, fingerprint_bytes

logger = logging.getLogger(__name__)

CURRENT_TAG_KEY = "currentTag"


@dataclass
class LoadedDocument:
    """A parsed document plus the version of the bytes it came from."""

    path: Path
    document: TaskDocument
    version: DocumentVersion
    was_legacy: bool = False


def _validate_partition(tag: str, value: Any, path: Path) -> TagPartition:
    if not isinstance(value, dict):
        raise ParseError(path, f'tag "{tag}" must be an object, got {type(value).__name__}')
    if not isinstance(value.get("tasks"), list):
        raise ParseError(path, f'tag "{tag}" has no "tasks" list')
    try:
        return TagPartition.model_validate(value)
    except ValidationError as exc:
        raise ParseError(path, f'tag "{tag}": {_summarize(exc)}') from exc


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}"


def _check_unique_ids(document: TaskDocument, path: Path) -> None:
    for tag, partition in document.tags.items():
        seen = set()
        for task in partition.tasks:
            if task.id in seen:
                raise ParseError(path, f'duplicate task ID {task.id} in tag "{tag}"')
            seen.add(task.id)


def parse_document(raw: Any, path: Union[str, Path] = "<memory>") -> Tuple[TaskDocument, bool]:
    """
    Build a canonical ``TaskDocument`` from decoded JSON.

    Args:
        raw: Decoded JSON value
        path: Source path, used in error messages only

    Returns:
        Tuple of (document, was_legacy)

    Raises:
        ParseError: If the value matches none of the accepted shapes
    """
    path = Path(path)

    if isinstance(raw, list):
        partition = _validate_partition(DEFAULT_TAG, {"tasks": raw}, path)
        document = TaskDocument(tags={DEFAULT_TAG: partition})
        _check_unique_ids(document, path)
        logger.debug("Normalized legacy task list in %s to tag '%s'", path, DEFAULT_TAG)
        return document, True

    if not isinstance(raw, dict):
        raise ParseError(path, f"top level must be an object, got {type(raw).__name__}")

    if isinstance(raw.get("tasks"), list):
        partition = _validate_partition(DEFAULT_TAG, raw, path)
        document = TaskDocument(tags={DEFAULT_TAG: partition})
        _check_unique_ids(document, path)
        logger.debug("Normalized legacy document %s to tag '%s'", path, DEFAULT_TAG)
        return document, True

    tags: Dict[str, TagPartition] = {}
    current_tag = None
    for key, value in raw.items():
        if key == CURRENT_TAG_KEY and isinstance(value, str):
            current_tag = value
            continue
        tags[key] = _validate_partition(key, value, path)

    document = TaskDocument(tags=tags, current_tag=current_tag)
    _check_unique_ids(document, path)
    return document, False


def serialize_document(document: TaskDocument) -> Dict[str, Any]:
    """Render a document in the canonical multi-tag shape."""
    data: Dict[str, Any] = {}
    for tag, partition in document.tags.items():
        data[tag] = partition.model_dump(mode="json", by_alias=True, exclude_unset=True)
        # An empty partition still needs its tasks list on disk.
        data[tag].setdefault("tasks", [])
    if document.current_tag:
        data[CURRENT_TAG_KEY] = document.current_tag
    return data


def load(path: Union[str, Path]) -> LoadedDocument:
    """
    Load and normalize a tasks file.

    The file itself is never modified, even when a legacy shape is normalized.

    Args:
        path: Path to the tasks JSON file

    Returns:
        LoadedDocument with the parsed document and its version

    Raises:
        NotFoundError: If the file does not exist
        ParseError: If the content is not a well-formed document
    """
    path = Path(path)
    try:
        data = path.read_bytes()
        mtime_ns = path.stat().st_mtime_ns
    except FileNotFoundError as exc:
        raise NotFoundError(path) from exc
    except IsADirectoryError as exc:
        raise NotFoundError(path) from exc

    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(path, f"invalid JSON ({exc})") from exc

    document, was_legacy = parse_document(raw, path)
    version = fingerprint_bytes(data, mtime_ns)
    logger.debug(
        "Loaded %s: %d tag(s), version %s",
        path,
        len(document.tags),
        version.sha256[:12],
    )
    return LoadedDocument(path=path, document=document, version=version, was_legacy=was_legacy)


def load_document(path: Union[str, Path]) -> TaskDocument:
    """Convenience wrapper returning only the document."""
    return load(path).document


def encode_document(document: TaskDocument) -> bytes:
    return encode_json(serialize_document(document))


def save(path: Union[str, Path], document: TaskDocument) -> DocumentVersion:
    """
    Write ``document`` in canonical shape without a concurrency check.

    Use ``StoreWriter.commit`` for read-modify-write operations; this is for
    creating files and for tooling that owns the file exclusively.

    Returns:
        Version of the written bytes
    """
    path = Path(path)
    data = encode_document(document)
    atomic_write_bytes(path, data)
    return fingerprint_bytes(data, path.stat().st_mtime_ns)
