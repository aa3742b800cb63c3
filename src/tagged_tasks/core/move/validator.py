"""
Move validation.

``validate_move`` checks a request against the document and returns a
``MovePlan`` the executor can apply without further checks. Every rejection
is raised here, before anything is mutated.

Rules, in order:
1. The source tag must exist.
2. Within a tag, each source item must exist and each destination must be
   free (unless overwrite is allowed). Pairs are checked in order against a
   simulated occupancy, so later pairs see the effect of earlier ones.
3. Across tags, only top-level tasks may move; dependency edges that would
   be split across tags are conflicts, resolved by the dependency options.
4. No subtask may be left with an edge to a task that shares its ID with
   one of the subtask's siblings; the written form cannot express it.
"""

import logging
from typing import Dict, List, Set

from tagged_tasks.core.errors.move import (
    DependencyConflict,
    DependencyConflictError,
    IdConflictError,
    InvalidMoveRequestError,
    InvalidSubtaskMoveError,
    TagNotFoundError,
    TaskNotFoundError,
)
from tagged_tasks.core.graph import DependencyGraph
from tagged_tasks.core.models import SubtaskId, TagPartition, TaskDocument, TaskId, TaskRef
from tagged_tasks.core.move.executor import simulate_move
from tagged_tasks.core.move.plan import MoveEntry, MoveKind, MovePlan, MoveRequest

logger = logging.getLogger(__name__)


def validate_move(document: TaskDocument, request: MoveRequest) -> MovePlan:
    """
    Validate a move request against a document.

    Args:
        document: Current document (not modified)
        request: Parsed move request

    Returns:
        MovePlan describing the relocations and edge changes

    Raises:
        TagNotFoundError: Source (or destination) tag missing
        TaskNotFoundError: A referenced task or subtask does not exist
        IdConflictError: A destination ID is taken
        DependencyConflictError: A cross-tag move would split dependency edges
        InvalidSubtaskMoveError: Unsupported subtask move
        ShadowedDependencyError: A subtask edge to a task would read back as a sibling
        InvalidMoveRequestError: Malformed request
    """
    partition = document.get_partition(request.source_tag)
    if partition is None:
        raise TagNotFoundError(request.source_tag, document.tag_names(), role="source")

    graph = DependencyGraph.build(partition, request.source_tag)

    if request.is_cross_tag:
        plan = _validate_cross_tag(document, partition, graph, request)
    else:
        plan = _validate_within_tag(graph, request)

    # Dry run on a copy: raises ShadowedDependencyError for edges the
    # written form could not express after the move.
    simulate_move(document, plan)
    return plan


# ---------------------------------------------------------------------------
# Within one tag
# ---------------------------------------------------------------------------


def _validate_within_tag(graph: DependencyGraph, request: MoveRequest) -> MovePlan:
    tag = request.source_tag
    if not request.new_ids:
        raise InvalidMoveRequestError(
            "A destination ID is required for each task moved within a tag",
            {"task_ids": [str(r) for r in request.task_ids]},
        )

    # Simulated occupancy: refs present after each accepted pair.
    occupied: Set[TaskRef] = set(graph.refs())
    entries: List[MoveEntry] = []
    warnings: List[str] = []

    for source, destination in request.new_ids:
        if source == destination:
            raise InvalidMoveRequestError(
                f"Cannot move {source} to itself",
                {"task_id": str(source)},
            )
        if source not in occupied:
            what = "Subtask" if isinstance(source, SubtaskId) else "Task"
            raise TaskNotFoundError(source, tag, what=what)

        kind = MoveKind.for_pair(source, destination)

        if isinstance(destination, SubtaskId):
            if isinstance(source, TaskId):
                if destination.parent == source.id:
                    raise InvalidSubtaskMoveError(source, f"Cannot make task {source} a subtask of itself")
                children = [r for r in occupied if isinstance(r, SubtaskId) and r.parent == source.id]
                if children:
                    raise InvalidSubtaskMoveError(
                        source,
                        f"Cannot move task {source} to subtask position {destination} "
                        f"because it has {len(children)} subtasks",
                    )
            if TaskId(destination.parent) not in occupied:
                raise TaskNotFoundError(TaskId(destination.parent), tag, what="Parent task")

        if destination in occupied:
            if not request.options.allow_overwrite:
                raise IdConflictError(source, destination, tag)
            if isinstance(destination, TaskId) and isinstance(source, SubtaskId) and source.parent == destination.id:
                raise InvalidSubtaskMoveError(source, f"Subtask {source} cannot replace its own parent task")
            warnings.append(f"Replacing existing {destination} in tag \"{tag}\"")

        _simulate(occupied, source, destination, kind)
        entries.append(MoveEntry(source, destination, tag, tag, kind))

    logger.debug("Validated %d move(s) within tag '%s'", len(entries), tag)
    return MovePlan(
        source_tag=tag,
        destination_tag=None,
        entries=entries,
        options=request.options,
        remap={e.source: e.destination for e in entries},
        warnings=warnings,
    )


def _simulate(occupied: Set[TaskRef], source: TaskRef, destination: TaskRef, kind: MoveKind) -> None:
    if isinstance(destination, TaskId):
        # An overwritten task takes its subtasks with it.
        for ref in [r for r in occupied if isinstance(r, SubtaskId) and r.parent == destination.id]:
            occupied.discard(ref)

    occupied.discard(source)
    if kind == MoveKind.RENUMBER:
        for ref in [r for r in occupied if isinstance(r, SubtaskId) and r.parent == source.id]:
            occupied.discard(ref)
            occupied.add(SubtaskId(destination.id, ref.sub))
    occupied.add(destination)


# ---------------------------------------------------------------------------
# Across tags
# ---------------------------------------------------------------------------


def find_cross_tag_conflicts(
    graph: DependencyGraph,
    moving: Set[int],
    source_tag: str,
) -> List[DependencyConflict]:
    """
    Dependency edges a cross-tag move of ``moving`` would split.

    Every task reachable from the moving set is inspected, so the result
    names the whole chain a caller would have to move together, not only the
    first hop.
    """
    conflicts: List[DependencyConflict] = []
    order = {task_id: index for index, task_id in enumerate(graph.task_ids())}
    for task_id in sorted(graph.dependency_closure(moving), key=lambda t: order.get(t, t)):
        for edge in graph.task_edges(task_id):
            if not edge.exists or edge.is_internal:
                continue
            if task_id in moving and edge.target.task_id in moving:
                continue
            conflicts.append(DependencyConflict(edge.owner, edge.target, source_tag))
    return sorted(set(conflicts), key=DependencyConflict.sort_key)


def _validate_cross_tag(
    document: TaskDocument,
    partition: TagPartition,
    graph: DependencyGraph,
    request: MoveRequest,
) -> MovePlan:
    source_tag = request.source_tag
    destination_tag = request.destination_tag
    options = request.options

    if destination_tag == source_tag:
        raise InvalidMoveRequestError(
            f'Source and destination tags are both "{source_tag}"; '
            "use new IDs to move tasks within a tag",
            {"source_tag": source_tag, "destination_tag": destination_tag},
        )

    destination = document.get_partition(destination_tag)
    create_destination = False
    if destination is None:
        if not options.create_destination:
            raise TagNotFoundError(destination_tag, document.tag_names(), role="destination")
        create_destination = True

    if request.new_ids:
        raise InvalidMoveRequestError(
            "Destination IDs are assigned automatically for moves between tags",
            {"new_ids": {str(s): str(d) for s, d in request.new_ids}},
        )

    for ref in request.task_ids:
        if isinstance(ref, SubtaskId):
            raise InvalidSubtaskMoveError(
                ref,
                f"Cannot move subtask {ref} directly between tags; promote it to a task first",
            )
        graph.require(ref)

    warnings: List[str] = []
    moving: Set[int] = {ref.id for ref in request.task_ids}
    pulled_in: List[int] = []
    dropped = []

    if options.with_dependencies and options.ignore_dependencies:
        warnings.append("Both with_dependencies and ignore_dependencies set; ignoring dependencies")

    # Only tasks with an edge out of the moving set can start a conflict chain.
    leaving = [t for t in sorted(moving) if graph.has_cross_partition_dangling_edge(t, moving)]
    conflicts = find_cross_tag_conflicts(graph, moving, source_tag) if leaving else []
    if conflicts:
        if options.ignore_dependencies:
            for task_id in leaving:
                for edge in graph.cross_partition_edges(task_id, moving):
                    dropped.append((edge.owner, edge.target))
            logger.info(
                "Dropping %d cross-tag dependency edge(s) moving to '%s'",
                len(dropped),
                destination_tag,
            )
        elif options.with_dependencies:
            closure = graph.dependency_closure(moving)
            pulled_in = sorted(closure - moving, key=partition.index_of)
            moving = closure
            logger.info("Pulling dependencies %s into move to '%s'", pulled_in, destination_tag)
        else:
            raise DependencyConflictError(conflicts, source_tag, destination_tag)

    for task_id in moving:
        for edge in graph.task_edges(task_id):
            if not edge.exists:
                dropped.append((edge.owner, edge.target))
                warnings.append(f"Dropping dangling dependency {edge.owner} -> {edge.target}")

    ordered = sorted(moving, key=partition.index_of)
    next_id = destination.max_task_id() + 1 if destination is not None else 1

    entries: List[MoveEntry] = []
    remap: Dict[TaskRef, TaskRef] = {}
    for offset, task_id in enumerate(ordered):
        new_id = next_id + offset
        entries.append(
            MoveEntry(TaskId(task_id), TaskId(new_id), source_tag, destination_tag, MoveKind.CROSS_TAG)
        )
        remap[TaskId(task_id)] = TaskId(new_id)
        for sub_id in partition.get_task(task_id).subtask_ids():
            remap[SubtaskId(task_id, sub_id)] = SubtaskId(new_id, sub_id)

    logger.debug(
        "Validated cross-tag move of %s from '%s' to '%s'",
        ordered,
        source_tag,
        destination_tag,
    )
    return MovePlan(
        source_tag=source_tag,
        destination_tag=destination_tag,
        entries=entries,
        options=options,
        remap=remap,
        dropped_edges=dropped,
        pulled_in=pulled_in,
        create_destination=create_destination,
        warnings=warnings,
    )
