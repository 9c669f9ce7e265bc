"""
Validation and repair of parsed diagrams.

``validate`` never raises on content. Every invariant violation is repaired
deterministically and reported as a ``ValidationWarning``:

- duplicate-id: later duplicates renamed ``id-2``, ``id-3``, ...
- dangling-edge / dangling-dependency: references to missing ids removed
- invalid-date: events or tasks with unparseable dates dropped
- clamped-range: task end before start clamped to start
- progress-clamped: progress outside 0..100 clamped
- dependency-cycle: the dependency closing each cycle removed
- dependency-overlap: task starting before a dependency ends (reported only)
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Set

import networkx as nx

from .models import (
    ContractError,
    Diagram,
    DiagramData,
    GanttData,
    GanttTask,
    TimelineData,
    unique_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationWarning:
    """A non-fatal finding, usually describing a repair."""

    code: str
    message: str
    element_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "element_id": self.element_id}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Repaired data plus the warnings produced while repairing it."""

    data: Diagram
    warnings: List[ValidationWarning]


def _warn(
    warnings: List[ValidationWarning],
    code: str,
    message: str,
    element_id: Optional[str] = None,
) -> None:
    warning = ValidationWarning(code, message, element_id)
    logger.warning("%s", warning)
    warnings.append(warning)


def _dedupe(items, attribute: str, label: str, warnings: List[ValidationWarning]):
    """Rename second and later duplicates of an id attribute."""
    seen: Set[str] = set()
    result = []
    for item in items:
        item_id = getattr(item, attribute)
        if item_id in seen:
            new_id = unique_id(item_id, seen)
            _warn(
                warnings,
                "duplicate-id",
                f"Duplicate {label} id '{item_id}' renamed to '{new_id}'",
                new_id,
            )
            item = replace(item, **{attribute: new_id})
            item_id = new_id
        seen.add(item_id)
        result.append(item)
    return result


def validate(data: Diagram) -> ValidationResult:
    """
    Check invariants and repair violations.

    Args:
        data: A DiagramData, TimelineData or GanttData.

    Returns:
        ValidationResult with repaired data and warnings.

    Raises:
        ContractError: If data is not a diagram container.
    """
    if isinstance(data, DiagramData):
        return validate_diagram(data)
    if isinstance(data, TimelineData):
        return validate_timeline(data)
    if isinstance(data, GanttData):
        return validate_gantt(data)
    raise ContractError(f"Cannot validate {type(data).__name__}")


def validate_diagram(data: DiagramData) -> ValidationResult:
    """Enforce unique node ids and edges that reference existing nodes."""
    warnings: List[ValidationWarning] = []
    nodes = _dedupe(data.nodes, "id", "node", warnings)
    node_ids = {node.id for node in nodes}

    edges = []
    for edge in data.edges:
        missing = [end for end in (edge.from_id, edge.to_id) if end not in node_ids]
        if missing:
            _warn(
                warnings,
                "dangling-edge",
                f"Edge {edge.from_id} -> {edge.to_id} references missing node "
                f"'{missing[0]}'",
                missing[0],
            )
            continue
        edges.append(edge)

    return ValidationResult(replace(data, nodes=nodes, edges=edges), warnings)


def validate_timeline(data: TimelineData) -> ValidationResult:
    """Drop undated events and enforce unique event ids."""
    warnings: List[ValidationWarning] = []
    dated = []
    for event in data.events:
        if event.date is None:
            _warn(
                warnings,
                "invalid-date",
                f"Event '{event.title}' has no valid date and was dropped",
                event.id,
            )
            continue
        dated.append(event)

    events = _dedupe(dated, "id", "event", warnings)
    return ValidationResult(replace(data, events=events), warnings)


def validate_gantt(data: GanttData) -> ValidationResult:
    """
    Repair a task schedule.

    Order matters: undated tasks are dropped before ids are made unique, and
    dependencies are resolved against the final ids before cycles are
    broken.
    """
    warnings: List[ValidationWarning] = []

    dated = []
    for task in data.tasks:
        if task.start is None or task.end is None:
            _warn(
                warnings,
                "invalid-date",
                f"Task '{task.name}' has no valid start or end date and was dropped",
                task.id,
            )
            continue
        dated.append(task)

    tasks = _dedupe(dated, "id", "task", warnings)
    task_ids = {task.id for task in tasks}

    repaired: List[GanttTask] = []
    for task in tasks:
        changes: Dict[str, Any] = {}
        if task.end < task.start:
            _warn(
                warnings,
                "clamped-range",
                f"Task '{task.id}' ends before it starts; end clamped to "
                f"{task.start.isoformat()}",
                task.id,
            )
            changes["end"] = task.start

        if not 0 <= task.progress <= 100:
            clamped = min(max(task.progress, 0), 100)
            _warn(
                warnings,
                "progress-clamped",
                f"Task '{task.id}' progress {task.progress} clamped to {clamped}",
                task.id,
            )
            changes["progress"] = clamped

        dependencies: List[str] = []
        for dep_id in task.dependencies:
            if dep_id in dependencies:
                continue
            if dep_id == task.id:
                _warn(
                    warnings,
                    "dependency-cycle",
                    f"Task '{task.id}' depends on itself; dependency removed",
                    task.id,
                )
                continue
            if dep_id not in task_ids:
                _warn(
                    warnings,
                    "dangling-dependency",
                    f"Task '{task.id}' depends on missing task '{dep_id}'; "
                    f"dependency removed",
                    task.id,
                )
                continue
            dependencies.append(dep_id)
        if dependencies != task.dependencies:
            changes["dependencies"] = dependencies

        repaired.append(replace(task, **changes) if changes else task)

    repaired = _break_cycles(repaired, warnings)
    _check_overlaps(repaired, warnings)
    return ValidationResult(replace(data, tasks=repaired), warnings)


def _break_cycles(
    tasks: List[GanttTask], warnings: List[ValidationWarning]
) -> List[GanttTask]:
    """
    Remove the dependency that closes each cycle.

    Cycles are searched from tasks in input order, so the same schedule is
    always repaired the same way.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(task.id for task in tasks)
    for task in tasks:
        for dep_id in task.dependencies:
            graph.add_edge(dep_id, task.id)

    removed: Dict[str, Set[str]] = {}
    while True:
        try:
            cycle = nx.find_cycle(graph, source=[task.id for task in tasks])
        except nx.NetworkXNoCycle:
            break
        dep_id, task_id = cycle[-1][0], cycle[-1][1]
        graph.remove_edge(dep_id, task_id)
        removed.setdefault(task_id, set()).add(dep_id)
        path = " -> ".join([edge[0] for edge in cycle] + [cycle[-1][1]])
        _warn(
            warnings,
            "dependency-cycle",
            f"Dependency cycle {path}; removed dependency of '{task_id}' on '{dep_id}'",
            task_id,
        )

    if not removed:
        return tasks
    return [
        replace(
            task,
            dependencies=[d for d in task.dependencies if d not in removed[task.id]],
        )
        if task.id in removed
        else task
        for task in tasks
    ]


def _check_overlaps(tasks: List[GanttTask], warnings: List[ValidationWarning]) -> None:
    by_id = {task.id: task for task in tasks}
    for task in tasks:
        for dep_id in task.dependencies:
            dependency = by_id[dep_id]
            if task.start < dependency.end:
                _warn(
                    warnings,
                    "dependency-overlap",
                    f"Task '{task.id}' starts {task.start.isoformat()} before "
                    f"dependency '{dep_id}' ends {dependency.end.isoformat()}",
                    task.id,
                )
