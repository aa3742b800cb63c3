"""Tests for moves between tags and their dependency handling."""

from unittest.mock import patch

import pytest

from tagged_tasks.core.errors import (
    DependencyConflict,
    DependencyConflictError,
    InvalidMoveRequestError,
    InvalidSubtaskMoveError,
    ShadowedDependencyError,
    TagNotFoundError,
    TaskNotFoundError,
)
from tagged_tasks.core.graph import DependencyGraph
from tagged_tasks.core.models import SubtaskId, TaskId
from tagged_tasks.core.move import MoveRequest, apply_move, find_cross_tag_conflicts, validate_move


@pytest.fixture
def run_move():
    """Validate and apply a cross-tag move; returns (document, summary)."""

    def _run(document, task_ids, source_tag="backlog", destination_tag="in-progress", **flags):
        request = MoveRequest.create(task_ids, source_tag, destination_tag, **flags)
        return apply_move(document, validate_move(document, request))

    return _run


@pytest.fixture
def dependent_document(build_document):
    """backlog: 1 -> 2; in-progress: 3."""
    return build_document(
        {
            "backlog": [
                {"id": 1, "title": "Write parser", "dependencies": [2]},
                {"id": 2, "title": "Write lexer", "dependencies": []},
            ],
            "in-progress": [{"id": 3, "title": "Design grammar", "dependencies": []}],
        }
    )


def _all_ids_unique(document):
    return all(len(p.task_ids()) == len(set(p.task_ids())) for p in document.tags.values())


def _all_edges_resolve(document):
    for tag, partition in document.tags.items():
        if any(not edge.exists for edge in DependencyGraph.build(partition, tag).edges()):
            return False
    return True


class TestBasicMove:
    def test_moved_task_gets_fresh_id(self, two_tag_document, run_move):
        updated, summary = run_move(two_tag_document, "1")

        assert updated.tags["backlog"].task_ids() == [2]
        assert updated.tags["in-progress"].task_ids() == [3, 4]
        assert updated.tags["in-progress"].get_task(4).title == "Write parser"
        assert summary.moved[0].old_id == "1"
        assert summary.moved[0].id == "4"
        assert summary.message == 'Moved task 1 from "backlog" to "in-progress" as task 4'

    def test_ids_stay_unique(self, two_tag_document, run_move):
        updated, _ = run_move(two_tag_document, "1,2")

        assert updated.tags["in-progress"].task_ids() == [3, 4, 5]
        assert _all_ids_unique(updated)

    def test_moved_tasks_keep_source_order(self, build_document, run_move):
        document = build_document({"backlog": [{"id": 9, "title": "first"}, {"id": 2, "title": "second"}], "done": []})

        updated, _ = run_move(document, "2,9", destination_tag="done")

        done = updated.tags["done"]
        assert done.task_ids() == [1, 2]
        assert [t.title for t in done.tasks] == ["first", "second"]

    def test_subtasks_travel_with_their_task(self, build_document, run_move):
        document = build_document(
            {
                "backlog": [{"id": 1, "dependencies": ["1.1"], "subtasks": [{"id": 1}, {"id": 2, "dependencies": [1]}]}],
                "in-progress": [{"id": 3}],
            }
        )

        updated, _ = run_move(document, "1")

        moved = updated.tags["in-progress"].get_task(4)
        assert moved.subtask_ids() == [1, 2]
        assert moved.dependencies == ["4.1"]
        assert moved.get_subtask(2).dependencies == [1]


class TestConflicts:
    def test_conflict_is_rejected(self, dependent_document):
        request = MoveRequest.create("1", "backlog", "in-progress")

        with pytest.raises(DependencyConflictError) as exc_info:
            validate_move(dependent_document, request)

        error = exc_info.value
        assert error.conflicts == [DependencyConflict(TaskId(1), TaskId(2), "backlog")]
        assert error.conflicting_ids == ["2"]
        assert "1->2" in str(error)
        assert error.details["conflicts"][0]["dependency_id"] == "2"

    def test_chain_scan_only_runs_for_leaving_edges(self, dependent_document):
        request = MoveRequest.create("2", "backlog", "in-progress")

        with patch.object(
            DependencyGraph, "has_cross_partition_dangling_edge", autospec=True, return_value=False
        ) as leaving, patch("tagged_tasks.core.move.validator.find_cross_tag_conflicts") as scan:
            validate_move(dependent_document, request)

        assert [call.args[1:] for call in leaving.call_args_list] == [(2, {2})]
        scan.assert_not_called()

    def test_conflict_report_is_stable(self, dependent_document):
        request = MoveRequest.create("1", "backlog", "in-progress")

        with pytest.raises(DependencyConflictError) as first:
            validate_move(dependent_document, request)
        with pytest.raises(DependencyConflictError) as second:
            validate_move(dependent_document, request)

        assert first.value.conflicts == second.value.conflicts
        assert str(first.value) == str(second.value)

    def test_transitive_chain_is_reported(self, build_document):
        document = build_document(
            {
                "backlog": [
                    {"id": 1, "dependencies": [2]},
                    {"id": 2, "dependencies": [3]},
                    {"id": 3, "dependencies": [1]},
                ],
                "in-progress": [],
            }
        )
        graph = DependencyGraph.build(document.tags["backlog"], "backlog")

        conflicts = find_cross_tag_conflicts(graph, {1}, "backlog")

        assert [(str(c.task), str(c.dependency)) for c in conflicts] == [("1", "2"), ("2", "3"), ("3", "1")]

    def test_moving_the_whole_chain_has_no_conflicts(self, build_document):
        document = build_document({"backlog": [{"id": 1, "dependencies": [2]}, {"id": 2}]})
        graph = DependencyGraph.build(document.tags["backlog"], "backlog")

        assert find_cross_tag_conflicts(graph, {1, 2}, "backlog") == []

    def test_subtask_edge_is_a_conflict(self, build_document):
        document = build_document(
            {"backlog": [{"id": 1, "subtasks": [{"id": 1, "dependencies": [2]}]}, {"id": 2}], "in-progress": []}
        )
        request = MoveRequest.create("1", "backlog", "in-progress")

        with pytest.raises(DependencyConflictError) as exc_info:
            validate_move(document, request)

        assert exc_info.value.conflicts == [DependencyConflict(SubtaskId(1, 1), TaskId(2), "backlog")]

    def test_ignore_dependencies_drops_edges(self, dependent_document, run_move):
        updated, summary = run_move(dependent_document, "1", ignore_dependencies=True)

        assert updated.tags["in-progress"].get_task(4).dependencies == []
        assert updated.tags["backlog"].task_ids() == [2]
        assert [(e.owner, e.dependency, e.reason) for e in summary.dropped_edges] == [
            ("1", "2", "cross-tag conflict ignored")
        ]

    def test_with_dependencies_moves_the_closure(self, dependent_document, run_move):
        updated, summary = run_move(dependent_document, "1", with_dependencies=True)

        assert updated.tags["backlog"].tasks == []
        destination = updated.tags["in-progress"]
        assert destination.task_ids() == [3, 4, 5]
        assert destination.get_task(4).title == "Write parser"
        assert destination.get_task(4).dependencies == [5]
        assert summary.pulled_in == [2]

    def test_with_dependencies_rewrites_subtask_edges(self, build_document, run_move):
        document = build_document(
            {"backlog": [{"id": 1, "subtasks": [{"id": 1, "dependencies": [2]}]}, {"id": 2}], "in-progress": [{"id": 3}]}
        )

        updated, _ = run_move(document, "1", with_dependencies=True)

        assert updated.tags["in-progress"].get_task(4).get_subtask(1).dependencies == [5]

    def test_ignore_wins_over_with(self, dependent_document, run_move):
        updated, summary = run_move(dependent_document, "1", with_dependencies=True, ignore_dependencies=True)

        assert updated.tags["backlog"].task_ids() == [2]
        assert updated.tags["in-progress"].get_task(4).dependencies == []
        assert any("ignoring dependencies" in w for w in summary.warnings)


class TestEdgeCleanup:
    def test_dangling_dependency_is_dropped(self, build_document, run_move):
        document = build_document({"backlog": [{"id": 1, "dependencies": [9]}], "in-progress": []})

        updated, summary = run_move(document, "1")

        assert updated.tags["in-progress"].get_task(1).dependencies == []
        assert summary.dropped_edges[0].reason == "dangling"
        assert any("Dropping dangling dependency 1 -> 9" in w for w in summary.warnings)

    def test_dependents_left_behind_are_severed(self, build_document, run_move):
        document = build_document(
            {"backlog": [{"id": 1}, {"id": 2, "dependencies": [1]}], "in-progress": []}
        )

        updated, summary = run_move(document, "1")

        assert updated.tags["backlog"].get_task(2).dependencies == []
        assert [(e.owner, e.dependency) for e in summary.severed_edges] == [("2", "1")]
        assert any("Removed dependency 2 -> 1" in w for w in summary.warnings)

    def test_no_dangling_edges_after_ignore(self, dependent_document, run_move):
        updated, _ = run_move(dependent_document, "1", ignore_dependencies=True)

        assert _all_edges_resolve(updated)

    def test_closure_lands_in_destination(self, build_document, run_move):
        document = build_document(
            {
                "backlog": [
                    {"id": 1, "dependencies": [2]},
                    {"id": 2, "dependencies": [3]},
                    {"id": 3},
                    {"id": 4},
                ],
                "in-progress": [{"id": 1}],
            }
        )

        updated, summary = run_move(document, "1", with_dependencies=True)

        assert updated.tags["backlog"].task_ids() == [4]
        assert updated.tags["in-progress"].task_ids() == [1, 2, 3, 4]
        assert summary.pulled_in == [2, 3]
        assert _all_edges_resolve(updated)
        assert _all_ids_unique(updated)


class TestRejections:
    def test_subtask_cannot_cross_tags(self, two_tag_document):
        request = MoveRequest.create("1.1", "backlog", "in-progress")

        with pytest.raises(InvalidSubtaskMoveError, match="promote it to a task first"):
            validate_move(two_tag_document, request)

    def test_missing_destination(self, two_tag_document):
        request = MoveRequest.create("1", "backlog", "nope")

        with pytest.raises(TagNotFoundError, match='Destination tag "nope" not found'):
            validate_move(two_tag_document, request)

    def test_missing_task(self, two_tag_document):
        request = MoveRequest.create("7", "backlog", "in-progress")

        with pytest.raises(TaskNotFoundError):
            validate_move(two_tag_document, request)

    def test_same_tag(self, two_tag_document):
        request = MoveRequest.create("1", "backlog", "backlog")

        with pytest.raises(InvalidMoveRequestError, match="both"):
            validate_move(two_tag_document, request)

    def test_explicit_ids_not_allowed(self, two_tag_document):
        request = MoveRequest.create("1", "backlog", "in-progress", new_ids="8")

        with pytest.raises(InvalidMoveRequestError, match="assigned automatically"):
            validate_move(two_tag_document, request)


def test_create_destination(two_tag_document, run_move):
    updated, summary = run_move(two_tag_document, "1", destination_tag="review", create_destination=True)

    assert updated.tags["review"].task_ids() == [1]
    assert updated.tags["review"].metadata.created is not None
    assert summary.created_destination is True
    assert "review" not in two_tag_document.tags


def test_fresh_id_shadowed_by_a_sibling_is_rejected(build_document, run_move):
    document = build_document(
        {
            "backlog": [
                {"id": 1, "subtasks": [{"id": 1, "dependencies": [2]}, {"id": 5}]},
                {"id": 2},
            ],
            "in-progress": [{"id": 3}],
        }
    )

    # Tasks 1 and 2 become 4 and 5; subtask 4.1 could not name task 5.
    with pytest.raises(ShadowedDependencyError) as exc_info:
        run_move(document, "1", with_dependencies=True)

    assert exc_info.value.details == {"owner_id": "4.1", "target_id": "5", "sibling_id": "4.5"}
    assert document.tags["in-progress"].task_ids() == [3]
