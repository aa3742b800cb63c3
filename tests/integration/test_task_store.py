"""End-to-end tests for TaskStore against files on disk."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from tagged_tasks.core import service
from tagged_tasks.core.errors import (
    ConcurrentModificationError,
    DependencyConflictError,
    NotFoundError,
    ShadowedDependencyError,
    TagNotFoundError,
)
from tagged_tasks.core.move import MoveRequest
from tagged_tasks.core.notifications import ChangeKind, ChangeNotifier
from tagged_tasks.core.service import TaskStore
from tagged_tasks.core.store.backups import list_backups


def _read(path):
    return json.loads(path.read_text())


def _write(path, data):
    path.write_text(json.dumps(data, indent=2))


class TestMoveWithinTag:
    def test_renumber_is_persisted(self, store, tasks_file):
        result = store.move_tasks("1", "backlog", new_ids="5")

        tasks = _read(tasks_file)["backlog"]["tasks"]
        assert sorted(t["id"] for t in tasks) == [2, 5]
        assert next(t for t in tasks if t["id"] == 5)["title"] == "Write parser"
        assert result.summary.message == "Moved task 1 to new ID 5"
        assert result.attempts == 1

    def test_source_tag_defaults_to_active_tag(self, store, tasks_file):
        store.move_tasks("2", new_ids="9")

        assert [t["id"] for t in _read(tasks_file)["backlog"]["tasks"]] == [1, 9]

    def test_only_touched_tag_is_stamped(self, store, tasks_file):
        store.move_tasks("1", "backlog", new_ids="5")

        data = _read(tasks_file)
        assert "updated" in data["backlog"]["metadata"]
        assert "metadata" not in data["in-progress"]

    def test_result_to_dict(self, store, tasks_file):
        data = store.move_tasks("1", "backlog", new_ids="5").to_dict()

        assert data["moved_tasks"][0]["id"] == "5"
        assert data["path"] == str(tasks_file)
        assert len(data["version"]) == 64


class TestMoveAcrossTags:
    def test_fresh_id_in_destination(self, store, tasks_file):
        result = store.move_tasks("1", "backlog", "in-progress")

        data = _read(tasks_file)
        assert [t["id"] for t in data["backlog"]["tasks"]] == [2]
        assert [t["id"] for t in data["in-progress"]["tasks"]] == [3, 4]
        assert result.summary.moved[0].id == "4"

    def test_conflict_leaves_file_untouched(self, store, tasks_file):
        data = _read(tasks_file)
        data["backlog"]["tasks"][0]["dependencies"] = [2]
        _write(tasks_file, data)
        before = tasks_file.read_bytes()

        with pytest.raises(DependencyConflictError) as exc_info:
            store.move_tasks("1", "backlog", "in-progress")

        assert exc_info.value.conflicting_ids == ["2"]
        assert tasks_file.read_bytes() == before

    def test_ignore_dependencies(self, store, tasks_file):
        data = _read(tasks_file)
        data["backlog"]["tasks"][0]["dependencies"] = [2]
        _write(tasks_file, data)

        store.move_tasks("1", "backlog", "in-progress", ignore_dependencies=True)

        moved = _read(tasks_file)["in-progress"]["tasks"][-1]
        assert moved["title"] == "Write parser"
        assert moved["dependencies"] == []

    def test_with_dependencies(self, store, tasks_file):
        data = _read(tasks_file)
        data["backlog"]["tasks"][0]["dependencies"] = [2]
        _write(tasks_file, data)

        result = store.move(MoveRequest.create("1", "backlog", "in-progress", with_dependencies=True))

        data = _read(tasks_file)
        assert data["backlog"]["tasks"] == []
        assert [t["title"] for t in data["in-progress"]["tasks"]] == [
            "Design grammar",
            "Write parser",
            "Write lexer",
        ]
        assert result.summary.pulled_in == [2]

    def test_both_tags_are_stamped(self, store, tasks_file):
        store.move_tasks("1", "backlog", "in-progress")

        data = _read(tasks_file)
        assert "updated" in data["backlog"]["metadata"]
        assert "updated" in data["in-progress"]["metadata"]

    def test_plan_move_does_not_write(self, store, tasks_file):
        before = tasks_file.read_bytes()

        plan = store.plan_move(MoveRequest.create("1", "backlog", "in-progress"))

        assert [str(e.destination) for e in plan.entries] == ["4"]
        assert tasks_file.read_bytes() == before


def test_shadowed_dependency_leaves_file_untouched(tasks_file, test_config):
    _write(
        tasks_file,
        {
            "master": {
                "tasks": [
                    {"id": 1, "subtasks": [{"id": 1, "dependencies": [3]}, {"id": 5}]},
                    {"id": 3, "title": "Target"},
                ]
            }
        },
    )
    before = tasks_file.read_bytes()
    store = TaskStore(tasks_file, config=test_config)

    with pytest.raises(ShadowedDependencyError):
        store.move_tasks("3", new_ids="5")

    assert tasks_file.read_bytes() == before


def test_promote_subtask(tasks_file, test_config):
    _write(
        tasks_file,
        {
            "master": {
                "tasks": [
                    {"id": 1, "title": "Parent", "subtasks": [{"id": 1, "title": "Child"}, {"id": 2, "title": "Other"}]}
                ]
            }
        },
    )
    store = TaskStore(tasks_file, config=test_config)

    store.move_tasks("1.1", new_ids="5")

    tasks = _read(tasks_file)["master"]["tasks"]
    assert [t["id"] for t in tasks] == [1, 5]
    assert [s["id"] for s in tasks[0]["subtasks"]] == [2]
    assert tasks[1]["title"] == "Child"


def test_legacy_file_is_rewritten_in_tagged_shape(tasks_file, test_config):
    _write(tasks_file, {"tasks": [{"id": 1, "title": "Old"}, {"id": 2}]})
    store = TaskStore(tasks_file, config=test_config)

    store.move_tasks("1", new_ids="3")

    data = _read(tasks_file)
    assert "tasks" not in data
    assert [t["id"] for t in data["master"]["tasks"]] == [3, 2]


def test_missing_file(tmp_path, test_config):
    store = TaskStore(tmp_path / "absent.json", config=test_config)

    with pytest.raises(NotFoundError):
        store.move_tasks("1", "master", new_ids="2")


class TestConcurrency:
    @staticmethod
    def _racing_apply(tasks_file, races=1):
        real_apply = service.apply_move
        calls = {"count": 0}

        def _apply(document, plan):
            calls["count"] += 1
            if calls["count"] <= races:
                data = _read(tasks_file)
                data["backlog"]["tasks"][1]["title"] = f"Edited elsewhere {calls['count']}"
                _write(tasks_file, data)
            return real_apply(document, plan)

        return _apply

    def test_external_write_is_detected(self, store, tasks_file):
        with patch.object(service, "apply_move", side_effect=self._racing_apply(tasks_file)):
            with pytest.raises(ConcurrentModificationError):
                store.move_tasks("1", "backlog", new_ids="5")

        data = _read(tasks_file)
        assert data["backlog"]["tasks"][1]["title"] == "Edited elsewhere 1"
        assert [t["id"] for t in data["backlog"]["tasks"]] == [1, 2]

    def test_retry_reloads_and_succeeds(self, tasks_file, test_config):
        test_config.max_retries = 1
        store = TaskStore(tasks_file, config=test_config)

        with patch.object(service, "apply_move", side_effect=self._racing_apply(tasks_file)):
            result = store.move_tasks("1", "backlog", new_ids="5")

        data = _read(tasks_file)
        assert result.attempts == 2
        assert [t["id"] for t in data["backlog"]["tasks"]] == [5, 2]
        # The concurrent edit survives because the move was re-applied to it.
        assert data["backlog"]["tasks"][1]["title"] == "Edited elsewhere 1"

    def test_retries_are_bounded(self, tasks_file, test_config):
        test_config.max_retries = 2
        store = TaskStore(tasks_file, config=test_config)

        with patch.object(service, "apply_move", side_effect=self._racing_apply(tasks_file, races=5)):
            with pytest.raises(ConcurrentModificationError):
                store.move_tasks("1", "backlog", new_ids="5")


class TestHooks:
    def test_listener_receives_events_per_tag(self, tasks_file, test_config):
        received = []
        store = TaskStore(tasks_file, config=test_config, notifier=ChangeNotifier([received.append]))

        result = store.move_tasks("1", "backlog", "in-progress")

        assert [e.tag for e in received] == ["backlog", "in-progress"]
        assert all(e.kind == ChangeKind.TASKS_UPDATED and e.operation == "move" for e in received)
        assert received[0].affected_ids == ("1", "4")
        assert result.events == received

    def test_task_files_follow_the_move(self, tasks_file, test_config):
        test_config.generate_task_files = True
        store = TaskStore(tasks_file, config=test_config)

        store.move_tasks("1", "backlog", "in-progress")

        names = sorted(p.name for p in tasks_file.parent.glob("task_*.txt"))
        assert names == ["task_002_backlog.txt", "task_003_in-progress.txt", "task_004_in-progress.txt"]

    def test_task_files_dir_expands_home(self, tasks_file, test_config, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        test_config.generate_task_files = True
        test_config.task_files_dir = Path("~/generated")
        store = TaskStore(tasks_file, config=test_config)

        store.move_tasks("1", "backlog", new_ids="5")

        names = sorted(p.name for p in (tmp_path / "generated").glob("task_*.txt"))
        assert names == ["task_002_backlog.txt", "task_005_backlog.txt"]

    def test_backup_before_commit(self, tasks_file, test_config):
        test_config.backups_enabled = True
        before = tasks_file.read_text()
        store = TaskStore(tasks_file, config=test_config)

        store.move_tasks("1", "backlog", new_ids="5")

        backups = list_backups(tasks_file)
        assert len(backups) == 1
        assert backups[0].read_text() == before


class TestTags:
    def test_use_tag(self, store, tasks_file):
        assert store.use_tag("in-progress") == "in-progress"

        assert _read(tasks_file)["currentTag"] == "in-progress"

    def test_use_missing_tag(self, store):
        with pytest.raises(TagNotFoundError, match='Target tag "nope" not found'):
            store.use_tag("nope")

    def test_create_tag_and_list(self, store):
        store.create_tag("review", description="Awaiting review")

        tags = {t["name"]: t for t in store.tags()}
        assert tags["review"] == {"name": "review", "task_count": 0, "active": False}
        assert tags["backlog"]["active"] is True

    def test_initialize(self, tmp_path, test_config):
        path = tmp_path / "fresh" / "tasks.json"
        store = TaskStore(path, config=test_config)

        store.initialize()

        assert _read(path)["master"]["tasks"] == []
        with pytest.raises(ConcurrentModificationError):
            store.initialize()


class TestDependencyMaintenance:
    @pytest.fixture
    def broken_file(self, tasks_file):
        data = _read(tasks_file)
        data["backlog"]["tasks"][0]["dependencies"] = [1, 2, 2, 42]
        _write(tasks_file, data)
        return tasks_file

    def test_validate_reports(self, store, broken_file):
        report = store.validate_dependencies("backlog")

        assert [i.kind for i in report.issues] == ["self", "duplicate", "missing"]

    def test_validate_unknown_tag(self, store):
        with pytest.raises(TagNotFoundError):
            store.validate_dependencies("nope")

    def test_fix_commits_once(self, store, broken_file):
        report = store.fix_dependencies()

        assert len(report.issues) == 3
        assert _read(broken_file)["backlog"]["tasks"][0]["dependencies"] == [2]

        after_fix = broken_file.read_bytes()
        assert store.fix_dependencies().issues == []
        assert broken_file.read_bytes() == after_fix
