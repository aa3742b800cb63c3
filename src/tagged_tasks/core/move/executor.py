"""
Move execution.

``apply_move`` applies a validated ``MovePlan`` to a copy of the document and
returns the new document plus a ``MoveSummary``. It performs no I/O and does
not raise for plans produced by ``validate_move``, which dry-runs every plan
through ``simulate_move`` before returning it.

Dependency rewriting works on resolved references: before an item is
relocated every edge in the partition is resolved to an absolute
``TaskRef``, the structural change is made, the old-to-new remap is applied
to the resolved targets, and only edges whose written form no longer
resolves to the intended target are re-encoded.
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

from tagged_tasks.core.graph import DependencyGraph, encode_dependency, resolve_dependency
from tagged_tasks.core.models import (
    DependencyValue,
    Subtask,
    SubtaskId,
    TagPartition,
    Task,
    TaskDocument,
    TaskId,
    TaskRef,
)
from tagged_tasks.core.move.plan import (
    EdgeChange,
    MovedTask,
    MoveEntry,
    MoveKind,
    MovePlan,
    MoveSummary,
)

logger = logging.getLogger(__name__)

Node = Union[Task, Subtask]
ResolvedEdges = Dict[TaskRef, List[Tuple[DependencyValue, TaskRef]]]


def apply_move(document: TaskDocument, plan: MovePlan) -> Tuple[TaskDocument, MoveSummary]:
    """
    Apply a validated plan.

    Args:
        document: Document the plan was validated against (left untouched)
        plan: Output of ``validate_move``

    Returns:
        Tuple of (updated document, summary)
    """
    updated, summary = simulate_move(document, plan)
    for warning in summary.warnings:
        logger.warning(warning)
    logger.info("Applied move: %s", summary.message)
    return updated, summary


def simulate_move(document: TaskDocument, plan: MovePlan) -> Tuple[TaskDocument, MoveSummary]:
    """Like ``apply_move`` without the summary logging; the validator uses it as a dry run.

    Raises:
        ShadowedDependencyError: A rewritten subtask edge cannot be expressed
    """
    updated = document.model_copy(deep=True)
    summary = MoveSummary(
        source_tag=plan.source_tag,
        destination_tag=plan.destination_tag,
        pulled_in=list(plan.pulled_in),
        created_destination=plan.create_destination,
        warnings=list(plan.warnings),
    )

    if plan.is_cross_tag:
        _apply_cross_tag(updated, plan, summary)
    else:
        partition = updated.tags[plan.source_tag]
        for entry in plan.entries:
            _apply_within_tag(partition, entry)
            summary.moved.append(_moved(entry))
    return updated, summary


def _moved(entry: MoveEntry) -> MovedTask:
    return MovedTask(
        id=str(entry.destination),
        old_id=str(entry.source),
        from_tag=entry.from_tag,
        to_tag=entry.to_tag,
        kind=entry.kind,
        message=entry.describe(),
    )


# ---------------------------------------------------------------------------
# Dependency rewriting
# ---------------------------------------------------------------------------


def _iter_task_nodes(task: Task) -> Iterator[Tuple[TaskRef, Node, List[int]]]:
    yield TaskId(task.id), task, []
    sibling_ids = task.subtask_ids()
    for subtask in task.subtasks:
        yield SubtaskId(task.id, subtask.id), subtask, sibling_ids


def _iter_nodes(partition: TagPartition) -> Iterator[Tuple[TaskRef, Node, List[int]]]:
    """Yield ``(ref, node, sibling_ids)`` for every task and subtask."""
    for task in partition.tasks:
        yield from _iter_task_nodes(task)


def _resolve_all(graph: DependencyGraph) -> ResolvedEdges:
    resolved: ResolvedEdges = {}
    for ref in graph.refs():
        resolved[ref] = [(edge.raw, edge.target) for edge in graph.edges_from(ref)]
    return resolved


def _rewrite_edges(
    owner: TaskRef,
    sibling_ids: List[int],
    edges: List[Tuple[DependencyValue, TaskRef]],
    remap: Dict[TaskRef, TaskRef],
    force: bool = False,
    drop: Optional[Callable[[TaskRef], bool]] = None,
) -> Optional[List[DependencyValue]]:
    """
    New dependency list for ``owner``, or None when nothing changes.

    Each edge keeps its written form when that still resolves to the
    intended (remapped) target from the owner's new position. With ``force``
    the list is always rebuilt, dropping self-references and duplicates.
    """
    result: List[DependencyValue] = []
    seen: Set[TaskRef] = set()
    changed = False
    for raw, target in edges:
        if drop is not None and drop(target):
            changed = True
            continue
        intended = remap.get(target, target)
        if resolve_dependency(owner, raw, sibling_ids) == intended:
            value = raw
        else:
            value = encode_dependency(owner, intended, sibling_ids)
            changed = True
        if force and (intended == owner or intended in seen):
            continue
        seen.add(intended)
        result.append(value)
    if changed or force:
        return result
    return None


def _targets_moved(edges: List[Tuple[DependencyValue, TaskRef]], remap: Dict[TaskRef, TaskRef]) -> bool:
    return any(target in remap for _, target in edges)


def _rewrite_partition(
    partition: TagPartition,
    resolved: ResolvedEdges,
    remap: Dict[TaskRef, TaskRef],
) -> None:
    """Apply ``remap`` to every edge of the partition after a relocation."""
    inverse = {new: old for old, new in remap.items()}
    for ref, node, sibling_ids in _iter_nodes(partition):
        old_ref = inverse.get(ref, ref)
        edges = resolved.get(old_ref, [])
        if not edges:
            continue
        # Relocated items and items pointing at one get de-duplicated.
        affected = old_ref != ref or _targets_moved(edges, remap)
        new_deps = _rewrite_edges(ref, sibling_ids, edges, remap, force=affected)
        if new_deps is not None and new_deps != node.dependencies:
            node.dependencies = new_deps


# ---------------------------------------------------------------------------
# Within one tag
# ---------------------------------------------------------------------------


def _subtask_from_task(task: Task, sub_id: int) -> Subtask:
    data = task.model_dump(exclude_unset=True, exclude={"subtasks", "priority"})
    data["id"] = sub_id
    return Subtask.model_validate(data)


def _task_from_subtask(subtask: Subtask, task_id: int, parent: Task) -> Task:
    data = subtask.model_dump(exclude_unset=True)
    data["id"] = task_id
    data["priority"] = parent.priority
    data.setdefault("dependencies", [])
    return Task.model_validate(data)


def _remove_subtask(task: Task, sub_id: int) -> Tuple[Subtask, int]:
    for index, subtask in enumerate(task.subtasks):
        if subtask.id == sub_id:
            return task.subtasks.pop(index), index
    raise KeyError(sub_id)


def _place_subtask(parent: Task, subtask: Subtask, index: Optional[int] = None) -> None:
    """Insert ``subtask`` into ``parent``, replacing an existing holder of its ID."""
    for position, existing in enumerate(parent.subtasks):
        if existing.id == subtask.id:
            parent.subtasks[position] = subtask
            return
    if index is None:
        parent.subtasks.append(subtask)
    else:
        parent.subtasks.insert(index, subtask)


def _place_task(partition: TagPartition, task: Task, index: Optional[int] = None) -> None:
    """Insert ``task``, replacing an existing holder of its ID in place."""
    occupant = partition.index_of(task.id)
    if occupant is not None:
        partition.tasks[occupant] = task
    elif index is None:
        partition.tasks.append(task)
    else:
        partition.tasks.insert(index, task)


def _apply_within_tag(partition: TagPartition, entry: MoveEntry) -> None:
    resolved = _resolve_all(DependencyGraph.build(partition, entry.from_tag))
    source, destination = entry.source, entry.destination
    remap: Dict[TaskRef, TaskRef] = {source: destination}

    if entry.kind == MoveKind.RENUMBER:
        index = partition.index_of(source.id)
        task = partition.tasks.pop(index)
        for sub_id in task.subtask_ids():
            remap[SubtaskId(source.id, sub_id)] = SubtaskId(destination.id, sub_id)
        task.id = destination.id
        occupant = partition.index_of(destination.id)
        if occupant is not None:
            # Overwrite: the moved task keeps its own position.
            partition.tasks.pop(occupant)
            if occupant < index:
                index -= 1
        partition.tasks.insert(index, task)

    elif entry.kind == MoveKind.PROMOTE:
        parent = partition.get_task(source.parent)
        subtask, _ = _remove_subtask(parent, source.sub)
        _place_task(partition, _task_from_subtask(subtask, destination.id, parent))

    elif entry.kind == MoveKind.REPARENT:
        old_parent = partition.get_task(source.parent)
        subtask, index = _remove_subtask(old_parent, source.sub)
        subtask.id = destination.sub
        new_parent = partition.get_task(destination.parent)
        # Renumbering among siblings keeps the subtask's position.
        _place_subtask(new_parent, subtask, index if new_parent is old_parent else None)

    elif entry.kind == MoveKind.DEMOTE:
        index = partition.index_of(source.id)
        task = partition.tasks.pop(index)
        parent = partition.get_task(destination.parent)
        _place_subtask(parent, _subtask_from_task(task, destination.sub))

    _rewrite_partition(partition, resolved, remap)
    logger.debug(entry.describe())


# ---------------------------------------------------------------------------
# Across tags
# ---------------------------------------------------------------------------


def _apply_cross_tag(document: TaskDocument, plan: MovePlan, summary: MoveSummary) -> None:
    source = document.tags[plan.source_tag]
    destination = document.get_partition(plan.destination_tag)
    if destination is None:
        destination = document.create_partition(plan.destination_tag)

    graph = DependencyGraph.build(source, plan.source_tag)
    resolved = _resolve_all(graph)
    moving_ids = {entry.source.task_id for entry in plan.entries}
    dropped = set(plan.dropped_edges)

    # Entries are in source order; detach them all before any reference is rewritten.
    detached: List[Tuple[MoveEntry, Task]] = []
    for entry in plan.entries:
        detached.append((entry, source.tasks.pop(source.index_of(entry.source.id))))

    for entry, task in detached:
        old_id = task.id
        dropped_here = [
            (old_ref, target)
            for old_ref, edges in resolved.items()
            if old_ref.task_id == old_id
            for _, target in edges
            if (old_ref, target) in dropped or target.task_id not in moving_ids
        ]
        for old_ref, target in dropped_here:
            reason = "cross-tag conflict ignored" if target in graph else "dangling"
            summary.dropped_edges.append(EdgeChange(str(old_ref), str(target), plan.source_tag, reason))

        task.id = entry.destination.id
        for ref, node, sibling_ids in _iter_task_nodes(task):
            old_ref = TaskId(old_id) if isinstance(ref, TaskId) else SubtaskId(old_id, ref.sub)
            edges = resolved.get(old_ref, [])
            if not edges:
                continue
            leaving = {target for owner, target in dropped_here if owner == old_ref}
            new_deps = _rewrite_edges(
                ref, sibling_ids, edges, plan.remap, force=True, drop=leaving.__contains__
            )
            if new_deps is not None:
                node.dependencies = new_deps
        destination.tasks.append(task)
        summary.moved.append(_moved(entry))

    for ref, node, _ in _iter_nodes(source):
        edges = resolved.get(ref, [])
        kept: List[DependencyValue] = []
        severed = False
        for raw, target in edges:
            if target.task_id in moving_ids:
                severed = True
                summary.severed_edges.append(
                    EdgeChange(str(ref), str(target), plan.source_tag, f'moved to "{plan.destination_tag}"')
                )
                summary.warnings.append(
                    f"Removed dependency {ref} -> {target}: {target} moved to \"{plan.destination_tag}\""
                )
                continue
            kept.append(raw)
        if severed:
            node.dependencies = kept

