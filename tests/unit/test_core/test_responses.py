"""Tests for the response envelope and error mapping."""

from tagged_tasks.core.errors import (
    ConcurrentModificationError,
    DependencyConflict,
    DependencyConflictError,
    ShadowedDependencyError,
    TagNotFoundError,
    error_to_response,
    lookup_error,
)
from tagged_tasks.core.models import InvalidTaskIdError, SubtaskId, TaskId
from tagged_tasks.core.responses import ErrorCode, ErrorType, error_response, success_response
from tagged_tasks.core.responses.types import RESPONSE_VERSION


class TestBuilders:
    def test_success_response(self):
        response = success_response({"moved": 1}, warnings=["careful"], extra_field=True)

        assert response.to_dict() == {
            "success": True,
            "data": {"moved": 1, "extra_field": True},
            "error": None,
            "meta": {"version": RESPONSE_VERSION, "warnings": ["careful"]},
        }

    def test_error_response(self):
        response = error_response(
            "Nope",
            error_code=ErrorCode.ID_CONFLICT,
            error_type=ErrorType.CONFLICT,
            remediation="Pick another ID",
            details={"tag": "master"},
        )

        data = response.to_dict()
        assert data["success"] is False
        assert data["error"] == "Nope"
        assert data["data"] == {
            "error_code": "ID_CONFLICT",
            "error_type": "conflict",
            "remediation": "Pick another ID",
            "details": {"tag": "master"},
        }


class TestErrorMapping:
    def test_store_error(self):
        error = ConcurrentModificationError("tasks.json", "a" * 64, "b" * 64)

        response = error_to_response(error)

        assert response["data"]["error_code"] == "VERSION_CONFLICT"
        assert response["data"]["error_type"] == "conflict"
        assert response["data"]["details"]["expected_hash"] == "a" * 64
        assert "Reload" in response["data"]["remediation"]

    def test_move_error_details(self):
        error = DependencyConflictError(
            [DependencyConflict(TaskId(1), TaskId(2), "backlog")], "backlog", "in-progress"
        )

        response = error_to_response(error)

        assert response["data"]["error_code"] == "CROSS_TAG_DEPENDENCY_CONFLICT"
        assert response["data"]["details"]["conflicts"] == [
            {
                "task_id": "1",
                "dependency_id": "2",
                "dependency_tag": "backlog",
                "message": "Task 1 depends on 2 (in backlog)",
            }
        ]

    def test_shadowed_dependency(self):
        error = ShadowedDependencyError(SubtaskId(1, 1), TaskId(5), SubtaskId(1, 5))

        response = error_to_response(error)

        assert response["data"]["error_code"] == "SHADOWED_DEPENDENCY"
        assert response["data"]["error_type"] == "conflict"
        assert response["error"] == "Cannot keep dependency 1.1 -> task 5: sibling subtask 1.5 would take its place"

    def test_invalid_id_maps_to_validation(self):
        assert lookup_error(InvalidTaskIdError("x")) == (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION)

    def test_unknown_exception(self):
        assert error_to_response(RuntimeError("boom")) is None

    def test_to_dict(self):
        error = TagNotFoundError("nope", ["b", "a"], role="destination")

        assert error.to_dict() == {
            "error": "TagNotFoundError",
            "message": 'Destination tag "nope" not found',
            "details": {"tag": "nope", "role": "destination", "available_tags": ["a", "b"]},
        }
