"""Shared fixtures for integration tests."""

import json

import pytest

from tagged_tasks.config import StoreConfig
from tagged_tasks.core.service import TaskStore


@pytest.fixture
def test_config(tmp_path):
    """Store configuration rooted in tmp_path with backups off."""
    return StoreConfig(project_dir=tmp_path, backups_enabled=False, log_level="WARNING")


@pytest.fixture
def tasks_file(tmp_path):
    """Tasks file with a backlog (1, 2) and an in-progress tag (3)."""
    path = tmp_path / ".taskmaster" / "tasks" / "tasks.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "backlog": {
                    "tasks": [
                        {"id": 1, "title": "Write parser", "dependencies": []},
                        {"id": 2, "title": "Write lexer", "dependencies": []},
                    ]
                },
                "in-progress": {"tasks": [{"id": 3, "title": "Design grammar", "dependencies": []}]},
                "currentTag": "backlog",
            },
            indent=2,
        )
    )
    return path


@pytest.fixture
def store(tasks_file, test_config):
    return TaskStore(tasks_file, config=test_config)
