"""Shared fixtures for CLI command tests."""

import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tagged_tasks.config import set_config


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_cli(tmp_path):
    """Keep user config files, env vars and CLI log handlers out of each test."""
    logger = logging.getLogger("tagged_tasks")
    handlers = list(logger.handlers)
    with patch.object(Path, "home", return_value=tmp_path):
        with patch.dict(os.environ, {"TAGGED_TASKS_BACKUPS": "false"}, clear=True):
            yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    set_config(None)


@pytest.fixture
def tasks_file(tmp_path):
    """Tasks file with a backlog (1 -> 2) and an in-progress tag (3)."""
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            {
                "backlog": {
                    "tasks": [
                        {"id": 1, "title": "Write parser", "dependencies": [2]},
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
def invoke(cli_runner, tasks_file):
    """Run the CLI against ``tasks_file`` and decode the JSON envelope."""
    from tagged_tasks.cli.main import cli

    def _invoke(*args):
        result = cli_runner.invoke(cli, ["--file", str(tasks_file), "--log-level", "ERROR", *args], obj={})
        return result, json.loads(result.output)

    return _invoke
