"""Move request, plan and summary types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from tagged_tasks.core.errors.move import InvalidMoveRequestError
from tagged_tasks.core.models import (
    InvalidTaskIdError,
    TaskId,
    TaskRef,
    parse_task_ref,
    parse_task_refs,
)


class MoveKind(str, Enum):
    RENUMBER = "renumber"
    PROMOTE = "promote"
    REPARENT = "reparent"
    DEMOTE = "demote"
    CROSS_TAG = "cross_tag"

    @classmethod
    def for_pair(cls, source: TaskRef, destination: TaskRef) -> "MoveKind":
        if isinstance(source, TaskId):
            return cls.RENUMBER if isinstance(destination, TaskId) else cls.DEMOTE
        return cls.PROMOTE if isinstance(destination, TaskId) else cls.REPARENT


@dataclass(frozen=True)
class MoveOptions:
    """Flags controlling how a move treats conflicts.

    Attributes:
        with_dependencies: Pull the transitive dependencies of moved tasks
            into a cross-tag move
        ignore_dependencies: Drop conflicting edges instead of failing
        allow_overwrite: Replace an item already holding a requested ID
        create_destination: Create a missing destination tag
    """

    with_dependencies: bool = False
    ignore_dependencies: bool = False
    allow_overwrite: bool = False
    create_destination: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "with_dependencies": self.with_dependencies,
            "ignore_dependencies": self.ignore_dependencies,
            "allow_overwrite": self.allow_overwrite,
            "create_destination": self.create_destination,
        }


def _parse_refs(values: Any) -> List[TaskRef]:
    try:
        return parse_task_refs(values)
    except InvalidTaskIdError as exc:
        raise InvalidMoveRequestError(str(exc), {"value": repr(exc.value)}) from exc


@dataclass(frozen=True)
class MoveRequest:
    """A move as requested by a caller, with identifiers already parsed.

    Build instances with ``MoveRequest.create`` so raw IDs are parsed once.
    """

    task_ids: Tuple[TaskRef, ...]
    source_tag: str
    destination_tag: Optional[str] = None
    new_ids: Tuple[Tuple[TaskRef, TaskRef], ...] = ()
    options: MoveOptions = field(default_factory=MoveOptions)

    @classmethod
    def create(
        cls,
        task_ids: Any,
        source_tag: str,
        destination_tag: Optional[str] = None,
        new_ids: Union[Mapping[Any, Any], Sequence[Any], str, None] = None,
        options: Optional[MoveOptions] = None,
        **flags: bool,
    ) -> "MoveRequest":
        """
        Parse caller input into a request.

        Args:
            task_ids: IDs to move (list, single value or ``"1,2.1"`` string)
            source_tag: Tag the items currently live in
            destination_tag: Target tag for a cross-tag move
            new_ids: For moves within a tag, either a mapping of source to
                destination ID or a sequence parallel to ``task_ids``
            options: MoveOptions; keyword flags are used when omitted

        Raises:
            InvalidMoveRequestError: Malformed IDs, duplicates, or mismatched
                source/destination counts
        """
        refs = _parse_refs(task_ids)
        if not refs:
            raise InvalidMoveRequestError("At least one task ID is required")
        if len(set(refs)) != len(refs):
            raise InvalidMoveRequestError(
                "Duplicate task IDs in move request",
                {"task_ids": [str(r) for r in refs]},
            )
        if not source_tag:
            raise InvalidMoveRequestError("A source tag is required")

        pairs: List[Tuple[TaskRef, TaskRef]] = []
        if new_ids:
            if isinstance(new_ids, Mapping):
                try:
                    mapping = {parse_task_ref(k): parse_task_ref(v) for k, v in new_ids.items()}
                except InvalidTaskIdError as exc:
                    raise InvalidMoveRequestError(str(exc), {"value": repr(exc.value)}) from exc
                missing = [str(r) for r in refs if r not in mapping]
                extra = [str(k) for k in mapping if k not in refs]
                if missing or extra:
                    raise InvalidMoveRequestError(
                        "new_ids must map exactly the task IDs being moved",
                        {"missing": missing, "unexpected": extra},
                    )
                pairs = [(r, mapping[r]) for r in refs]
            else:
                destinations = _parse_refs(new_ids)
                if len(destinations) != len(refs):
                    raise InvalidMoveRequestError(
                        f"Number of source IDs ({len(refs)}) must match "
                        f"number of destination IDs ({len(destinations)})",
                        {"source_count": len(refs), "destination_count": len(destinations)},
                    )
                pairs = list(zip(refs, destinations))

        return cls(
            task_ids=tuple(refs),
            source_tag=source_tag,
            destination_tag=destination_tag or None,
            new_ids=tuple(pairs),
            options=options or MoveOptions(**flags),
        )

    @property
    def is_cross_tag(self) -> bool:
        return self.destination_tag is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_ids": [str(r) for r in self.task_ids],
            "source_tag": self.source_tag,
            "destination_tag": self.destination_tag,
            "new_ids": {str(s): str(d) for s, d in self.new_ids},
            "options": self.options.to_dict(),
        }


@dataclass(frozen=True)
class MoveEntry:
    """One item relocation in a plan."""

    source: TaskRef
    destination: TaskRef
    from_tag: str
    to_tag: str
    kind: MoveKind

    def describe(self) -> str:
        if self.kind == MoveKind.PROMOTE:
            return f"Converted subtask {self.source} to task {self.destination}"
        if self.kind == MoveKind.DEMOTE:
            return f"Converted task {self.source} to subtask {self.destination}"
        if self.kind == MoveKind.REPARENT:
            return f"Moved subtask {self.source} to {self.destination}"
        if self.kind == MoveKind.CROSS_TAG:
            return (
                f'Moved task {self.source} from "{self.from_tag}" to '
                f'"{self.to_tag}" as task {self.destination}'
            )
        return f"Moved task {self.source} to new ID {self.destination}"


@dataclass
class MovePlan:
    """A validated move, ready for the executor.

    Attributes:
        entries: Relocations in application order
        remap: Old reference to new reference for every relocated item,
            subtasks of relocated tasks included (cross-tag moves)
        dropped_edges: Edges of moved tasks the executor must clear
            (``(owner, target)`` before the move)
        pulled_in: Task IDs added to the move by ``with_dependencies``
        create_destination: Destination tag must be created first
        warnings: Non-fatal notes gathered during validation
    """

    source_tag: str
    destination_tag: Optional[str]
    entries: List[MoveEntry]
    options: MoveOptions = field(default_factory=MoveOptions)
    remap: Dict[TaskRef, TaskRef] = field(default_factory=dict)
    dropped_edges: List[Tuple[TaskRef, TaskRef]] = field(default_factory=list)
    pulled_in: List[int] = field(default_factory=list)
    create_destination: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def is_cross_tag(self) -> bool:
        return self.destination_tag is not None and self.destination_tag != self.source_tag

    @property
    def touched_tags(self) -> List[str]:
        tags = [self.source_tag]
        if self.is_cross_tag:
            tags.append(self.destination_tag)
        return tags


@dataclass
class MovedTask:
    id: str
    old_id: str
    from_tag: str
    to_tag: str
    kind: MoveKind
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "old_id": self.old_id,
            "from_tag": self.from_tag,
            "to_tag": self.to_tag,
            "kind": self.kind.value,
            "message": self.message,
        }


@dataclass
class EdgeChange:
    """A dependency edge removed by a move."""

    owner: str
    dependency: str
    tag: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "task_id": self.owner,
            "dependency_id": self.dependency,
            "tag": self.tag,
            "reason": self.reason,
        }


@dataclass
class MoveSummary:
    """What a move did, for callers and UIs."""

    source_tag: str
    destination_tag: Optional[str]
    moved: List[MovedTask] = field(default_factory=list)
    dropped_edges: List[EdgeChange] = field(default_factory=list)
    severed_edges: List[EdgeChange] = field(default_factory=list)
    pulled_in: List[int] = field(default_factory=list)
    created_destination: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "; ".join(m.message for m in self.moved)

    @property
    def affected_ids(self) -> List[str]:
        result: List[str] = []
        for moved in self.moved:
            for value in (moved.old_id, moved.id):
                if value not in result:
                    result.append(value)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "source_tag": self.source_tag,
            "destination_tag": self.destination_tag,
            "moved_tasks": [m.to_dict() for m in self.moved],
            "dropped_dependencies": [e.to_dict() for e in self.dropped_edges],
            "severed_dependencies": [e.to_dict() for e in self.severed_edges],
            "pulled_in": list(self.pulled_in),
            "created_destination": self.created_destination,
        }
