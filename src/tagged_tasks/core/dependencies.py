"""
Dependency consistency checks for a tag partition.

A partition can hold edges that point nowhere (the target was deleted or
never existed), edges from an item to itself, or the same edge twice. These
are tracked, reportable inconsistencies: ``validate_dependencies`` lists
them, ``fix_dependencies`` removes them. Cycles are reported only.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

from tagged_tasks.core.graph import DependencyGraph
from tagged_tasks.core.models import TagPartition, TaskRef

logger = logging.getLogger(__name__)

MISSING = "missing"
SELF_REFERENCE = "self"
DUPLICATE = "duplicate"


@dataclass(frozen=True)
class DependencyIssue:
    kind: str
    task_id: str
    dependency_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "task_id": self.task_id, "dependency_id": self.dependency_id}


@dataclass
class DependencyReport:
    """Inconsistencies found in one partition."""

    tag: str
    issues: List[DependencyIssue] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    tasks_checked: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.issues and not self.cycles

    def by_kind(self, kind: str) -> List[DependencyIssue]:
        return [i for i in self.issues if i.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "valid": self.is_valid,
            "tasks_checked": self.tasks_checked,
            "issues": [i.to_dict() for i in self.issues],
            "cycles": [list(c) for c in self.cycles],
        }


def _scan(graph: DependencyGraph) -> Dict[TaskRef, List[DependencyIssue]]:
    found: Dict[TaskRef, List[DependencyIssue]] = {}
    for ref in graph.refs():
        seen: Set[TaskRef] = set()
        for edge in graph.edges_from(ref):
            kind = None
            if edge.is_self_reference:
                kind = SELF_REFERENCE
            elif not edge.exists:
                kind = MISSING
            elif edge.target in seen:
                kind = DUPLICATE
            seen.add(edge.target)
            if kind is not None:
                found.setdefault(ref, []).append(DependencyIssue(kind, str(ref), str(edge.target)))
    return found


def validate_dependencies(partition: TagPartition, tag: str) -> DependencyReport:
    """
    Check every dependency edge in ``partition``.

    Returns:
        DependencyReport with missing, self and duplicate edges plus cycles
    """
    graph = DependencyGraph.build(partition, tag)
    report = DependencyReport(tag=tag, tasks_checked=len(partition.tasks))
    for issues in _scan(graph).values():
        report.issues.extend(issues)
    report.cycles = [[str(r) for r in cycle] for cycle in graph.find_cycles()]
    logger.debug(
        "Dependency check for tag '%s': %d issue(s), %d cycle(s)",
        tag,
        len(report.issues),
        len(report.cycles),
    )
    return report


def fix_dependencies(partition: TagPartition, tag: str) -> DependencyReport:
    """
    Remove missing, self and duplicate edges from ``partition`` in place.

    Returns:
        DependencyReport listing the removed edges (cycles are left alone
        and reported as found after the fix)
    """
    graph = DependencyGraph.build(partition, tag)
    found = _scan(graph)
    report = DependencyReport(tag=tag, tasks_checked=len(partition.tasks))

    for ref, issues in found.items():
        node = graph.resolve(ref)
        keep: List = []
        seen: Set[TaskRef] = set()
        for edge in graph.edges_from(ref):
            if edge.is_self_reference or not edge.exists or edge.target in seen:
                continue
            seen.add(edge.target)
            keep.append(edge.raw)
        node.dependencies = keep
        report.issues.extend(issues)

    report.cycles = [
        [str(r) for r in cycle] for cycle in DependencyGraph.build(partition, tag).find_cycles()
    ]
    if report.issues:
        logger.info("Removed %d invalid dependency edge(s) in tag '%s'", len(report.issues), tag)
    return report
