"""Shared fixtures for core unit tests."""

import json

import pytest

from tagged_tasks.core.store.codec import parse_document


@pytest.fixture
def build_document():
    """Build a TaskDocument from ``{tag: [task dicts]}``."""

    def _build(tags, current_tag=None):
        raw = {tag: {"tasks": tasks} for tag, tasks in tags.items()}
        if current_tag:
            raw["currentTag"] = current_tag
        document, _ = parse_document(raw)
        return document

    return _build


@pytest.fixture
def two_tag_document(build_document):
    """backlog holds tasks 1 and 2, in-progress holds task 3."""
    return build_document(
        {
            "backlog": [
                {"id": 1, "title": "Write parser", "dependencies": []},
                {"id": 2, "title": "Write lexer", "dependencies": []},
            ],
            "in-progress": [{"id": 3, "title": "Design grammar", "dependencies": []}],
        }
    )


@pytest.fixture
def write_tasks_file(tmp_path):
    """Write raw JSON to ``tmp_path/tasks.json`` and return the path."""

    def _write(data, name="tasks.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2))
        return path

    return _write
