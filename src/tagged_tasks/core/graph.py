"""
Dependency graph index for a single tag partition.

Dependencies are stored in their written form (``3`` or ``"3.1"``) and are
relative to the item that holds them. The index resolves every edge once to
an absolute ``TaskRef``:

- held by a task:    ``3`` -> ``TaskId(3)``, ``"3.1"`` -> ``SubtaskId(3, 1)``
- held by subtask p.s: ``3`` -> ``SubtaskId(p, 3)`` if task p has a subtask 3,
  otherwise ``TaskId(3)``; ``"3.1"`` -> ``SubtaskId(3, 1)``

Usage:
    graph = DependencyGraph.build(partition, tag="backlog")
    graph.dependents(TaskId(2))          # who depends on task 2
    graph.dependency_closure([1])        # task IDs task 1 needs, transitively
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Union

from tagged_tasks.core.errors.move import ShadowedDependencyError, TaskNotFoundError
from tagged_tasks.core.models import (
    DependencyValue,
    Subtask,
    SubtaskId,
    TagPartition,
    Task,
    TaskId,
    TaskRef,
    parse_task_ref,
    ref_sort_key,
)


Node = Union[Task, Subtask]


def resolve_dependency(
    owner: TaskRef,
    value: DependencyValue,
    sibling_ids: Iterable[int] = (),
) -> TaskRef:
    """
    Resolve one written dependency to an absolute reference.

    Args:
        owner: Item that holds the dependency
        value: Dependency as written (``int`` or ``"p.s"``)
        sibling_ids: Subtask IDs under the owner's parent (subtask owners only)

    Returns:
        Absolute TaskRef the dependency points at
    """
    ref = parse_task_ref(value)
    if isinstance(ref, TaskId) and isinstance(owner, SubtaskId) and ref.id in set(sibling_ids):
        return SubtaskId(owner.parent, ref.id)
    return ref


def encode_dependency(
    owner: TaskRef,
    target: TaskRef,
    sibling_ids: Iterable[int] = (),
) -> DependencyValue:
    """
    Express ``target`` relative to ``owner`` in the written form.

    Sibling subtasks are written as their bare ID; other subtasks as
    ``"p.s"``; top-level tasks as their integer ID.

    Raises:
        ShadowedDependencyError: ``owner`` is a subtask, ``target`` a task,
            and a sibling subtask holds the same ID (a bare integer would
            read back as the sibling)
    """
    if isinstance(target, SubtaskId):
        if isinstance(owner, SubtaskId) and target.parent == owner.parent:
            return target.sub
        return str(target)
    if isinstance(owner, SubtaskId) and target.id in set(sibling_ids):
        raise ShadowedDependencyError(owner, target, SubtaskId(owner.parent, target.id))
    return target.id


@dataclass(frozen=True)
class DependencyEdge:
    """A resolved dependency edge.

    Attributes:
        owner: Item holding the dependency
        target: Absolute reference the dependency points at
        raw: The dependency as written on the owner
        position: Index of ``raw`` in the owner's dependency list
        exists: Whether ``target`` resolves in the partition
    """

    owner: TaskRef
    target: TaskRef
    raw: DependencyValue
    position: int
    exists: bool

    @property
    def is_self_reference(self) -> bool:
        return self.owner == self.target

    @property
    def is_internal(self) -> bool:
        """Edge between a task and its own subtasks (or between siblings)."""
        return self.owner.task_id == self.target.task_id


class DependencyGraph:
    """Adjacency view of one partition's tasks and subtasks.

    The index is a snapshot: it is not updated when the partition changes.
    """

    def __init__(self, partition: TagPartition, tag: Optional[str] = None) -> None:
        self.partition = partition
        self.tag = tag or ""
        self._nodes: Dict[TaskRef, Node] = {}
        self._edges: Dict[TaskRef, List[DependencyEdge]] = {}
        self._reverse: Dict[TaskRef, Set[TaskRef]] = {}
        self._index()

    @classmethod
    def build(cls, partition: TagPartition, tag: Optional[str] = None) -> "DependencyGraph":
        return cls(partition, tag)

    def _index(self) -> None:
        for task in self.partition.tasks:
            self._nodes[TaskId(task.id)] = task
            for subtask in task.subtasks:
                self._nodes[SubtaskId(task.id, subtask.id)] = subtask

        for task in self.partition.tasks:
            owner = TaskId(task.id)
            self._add_edges(owner, task.dependencies, ())
            sibling_ids = task.subtask_ids()
            for subtask in task.subtasks:
                self._add_edges(SubtaskId(task.id, subtask.id), subtask.dependencies, sibling_ids)

    def _add_edges(
        self,
        owner: TaskRef,
        values: Sequence[DependencyValue],
        sibling_ids: Sequence[int],
    ) -> None:
        edges = []
        for position, value in enumerate(values):
            target = resolve_dependency(owner, value, sibling_ids)
            edges.append(
                DependencyEdge(
                    owner=owner,
                    target=target,
                    raw=value,
                    position=position,
                    exists=target in self._nodes,
                )
            )
            self._reverse.setdefault(target, set()).add(owner)
        self._edges[owner] = edges

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, ref: object) -> bool:
        return ref in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def resolve(self, ref: TaskRef) -> Optional[Node]:
        """Return the task or subtask for ``ref``, or None."""
        return self._nodes.get(ref)

    def require(self, ref: TaskRef) -> Node:
        """Like ``resolve`` but raises ``TaskNotFoundError``."""
        node = self._nodes.get(ref)
        if node is None:
            what = "Subtask" if isinstance(ref, SubtaskId) else "Task"
            raise TaskNotFoundError(ref, self.tag, what=what)
        return node

    def task_ids(self) -> List[int]:
        return [task.id for task in self.partition.tasks]

    def refs(self) -> List[TaskRef]:
        return list(self._nodes.keys())

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def edges_from(self, ref: TaskRef) -> List[DependencyEdge]:
        """Edges held by ``ref`` itself, in written order."""
        return list(self._edges.get(ref, []))

    def task_edges(self, task_id: int) -> List[DependencyEdge]:
        """Edges held by task ``task_id`` and by all of its subtasks."""
        task = self.partition.get_task(task_id)
        if task is None:
            return []
        edges = self.edges_from(TaskId(task_id))
        for subtask in task.subtasks:
            edges.extend(self.edges_from(SubtaskId(task_id, subtask.id)))
        return edges

    def edges(self) -> Iterator[DependencyEdge]:
        for owner_edges in self._edges.values():
            yield from owner_edges

    def dependents(self, ref: TaskRef) -> Set[TaskRef]:
        """Items whose dependencies point at ``ref``."""
        return set(self._reverse.get(ref, set()))

    def task_dependents(self, task_id: int) -> Set[TaskRef]:
        """Items outside task ``task_id`` that depend on it or on one of its subtasks."""
        result: Set[TaskRef] = set()
        for ref in self._nodes:
            if ref.task_id != task_id:
                continue
            result.update(o for o in self._reverse.get(ref, set()) if o.task_id != task_id)
        return result

    def cross_partition_edges(self, task_id: int, target_ids: Iterable[int]) -> List[DependencyEdge]:
        """
        Edges of task ``task_id`` that would dangle after it leaves the partition.

        Args:
            task_id: Task being moved out (its subtasks' edges included)
            target_ids: Task IDs that will travel with it

        Returns:
            Edges to existing items whose owning task is not in ``target_ids``
        """
        travelling = set(target_ids)
        travelling.add(task_id)
        return [
            edge
            for edge in self.task_edges(task_id)
            if edge.exists and edge.target.task_id not in travelling
        ]

    def has_cross_partition_dangling_edge(self, task_id: int, target_ids: Iterable[int]) -> bool:
        return bool(self.cross_partition_edges(task_id, target_ids))

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def dependency_closure(self, task_ids: Iterable[int]) -> Set[int]:
        """
        Task IDs reachable from ``task_ids`` through existing dependency edges.

        Edges held by subtasks count for their parent task; edges pointing at
        a subtask pull in its parent. The start IDs are part of the result.
        """
        seen: Set[int] = set()
        queue = deque(task_ids)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            for edge in self.task_edges(current):
                if edge.exists and edge.target.task_id not in seen:
                    queue.append(edge.target.task_id)
        return seen

    def find_cycles(self) -> List[List[TaskRef]]:
        """
        Dependency cycles among items of this partition.

        Returns:
            One list per strongly connected component with more than one
            member, plus single items that depend on themselves. Members are
            sorted task-first (1, 1.1, 2, ...).
        """
        index_of: Dict[TaskRef, int] = {}
        lowlink: Dict[TaskRef, int] = {}
        on_stack: Set[TaskRef] = set()
        stack: List[TaskRef] = []
        cycles: List[List[TaskRef]] = []
        counter = 0

        def successors(ref: TaskRef) -> List[TaskRef]:
            return [e.target for e in self._edges.get(ref, []) if e.exists]

        for root in self._nodes:
            if root in index_of:
                continue
            work = [(root, iter(successors(root)))]
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)

            while work:
                node, children = work[-1]
                advanced = False
                for child in children:
                    if child not in index_of:
                        index_of[child] = lowlink[child] = counter
                        counter += 1
                        stack.append(child)
                        on_stack.add(child)
                        work.append((child, iter(successors(child))))
                        advanced = True
                        break
                    if child in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[child])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index_of[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in successors(node):
                        cycles.append(sorted(component, key=ref_sort_key))

        cycles.sort(key=lambda c: ref_sort_key(c[0]))
        return cycles
