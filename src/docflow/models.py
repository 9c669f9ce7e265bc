"""
Data models for diagram extraction.

This module contains the dataclasses shared by every stage of the pipeline:
the candidate blocks found by the segmenter, the node/edge envelope used by
graph-shaped notations, and the event and task containers used by timelines
and Gantt charts. All containers serialise to plain dicts (dates as ISO
strings) so that state can round-trip through JSON.

Classes:
    NotationKind: The notation kinds the pipeline understands.
    PriorityTier: Detection tiers used to resolve overlapping candidates.
    Priority: Gantt task priorities.
    DetectedBlock: A candidate region of the document text.
    Node, Edge, DiagramData: Graph envelope for flowchart-like notations.
    TimelineEvent, TimelineData: Dated events.
    GanttTask, GanttData: Scheduled tasks.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union


class ContractError(ValueError):
    """Raised when a caller violates the library's input contract."""

    pass


class NotationKind(str, Enum):
    """Notation kinds recognised in document text."""

    FLOWCHART = "flowchart"
    SEQUENCE = "sequence"
    TEXT_FLOW = "textFlow"
    ORG_CHART = "orgChart"
    TIMELINE = "timeline"
    GANTT = "gantt"

    @classmethod
    def coerce(cls, value: Union["NotationKind", str]) -> "NotationKind":
        """
        Convert a kind or its string value into a NotationKind.

        Raises:
            ContractError: If the value names no supported kind.
        """
        if isinstance(value, cls):
            return value
        for kind in cls:
            if value == kind.value:
                return kind
        raise ContractError(f"Unsupported notation kind: {value!r}")


GRAPH_KINDS = frozenset(
    {
        NotationKind.FLOWCHART,
        NotationKind.SEQUENCE,
        NotationKind.TEXT_FLOW,
        NotationKind.ORG_CHART,
    }
)


class PriorityTier(IntEnum):
    """Detection tiers, higher wins when candidates overlap."""

    HEURISTIC = 1
    TABLE = 2
    FENCE = 3


class Priority(str, Enum):
    """Gantt task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Priority"]:
        """Return the priority named by value, or None if it names none."""
        if not value:
            return None
        text = value.strip().lower()
        for priority in cls:
            if text == priority.value:
                return priority
        return None


@dataclass(frozen=True)
class DetectedBlock:
    """
    A candidate region of the document that looks like a diagram.

    Attributes:
        kind: Notation the region matches.
        raw_text: Text handed to the notation's parser (fence body for
            fenced blocks, the matched lines otherwise).
        start: Offset of the first character of the region in the document.
        end: Offset one past the last character of the region.
        confidence: How strongly the region matches the notation (0..1).
        tier: Detection tier that produced the candidate.
        label: Fence info string or heading that introduced the region.
    """

    kind: NotationKind
    raw_text: str
    start: int
    end: int
    confidence: float
    tier: PriorityTier = PriorityTier.HEURISTIC
    label: Optional[str] = None

    @property
    def byte_range(self) -> Tuple[int, int]:
        return (self.start, self.end)

    @property
    def span(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "DetectedBlock") -> bool:
        """Return True if the two regions share at least one character."""
        return self.start < other.end and other.start < self.end

    def rank(self) -> Tuple[int, float, int, int]:
        """Sort key for conflict resolution (larger is stronger)."""
        return (int(self.tier), self.confidence, self.span, -self.start)


# ---------------------------------------------------------------------------
# Graph envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Node:
    """A node of a graph-shaped diagram."""

    id: str
    label: str
    category: Optional[str] = None
    style: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "style": dict(self.style),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            category=data.get("category"),
            style=dict(data.get("style") or {}),
        )


@dataclass(frozen=True)
class Edge:
    """A directed connection between two nodes."""

    from_id: str
    to_id: str
    label: Optional[str] = None
    style: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "label": self.label,
            "style": self.style,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        return cls(
            from_id=data["from"],
            to_id=data["to"],
            label=data.get("label"),
            style=data.get("style"),
        )


@dataclass(frozen=True)
class DiagramData:
    """
    Canonical node/edge representation for flowchart-like notations.

    Used for flowchart, sequence, org chart and text flow diagrams. Node and
    edge order is significant: sequence diagrams read edges as messages in
    order, and layouts use node order to break ties.
    """

    kind: NotationKind
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagramData":
        return cls(
            kind=NotationKind.coerce(data["kind"]),
            nodes=[Node.from_dict(item) for item in data.get("nodes", [])],
            edges=[Edge.from_dict(item) for item in data.get("edges", [])],
            metadata=dict(data.get("metadata") or {}),
        )


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


def _date_to_str(value: Optional[datetime.date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _date_from_str(value: Optional[str]) -> Optional[datetime.date]:
    if value is None:
        return None
    return datetime.date.fromisoformat(value)


@dataclass(frozen=True)
class TimelineEvent:
    """
    A dated event on a timeline.

    ``date`` is None only between parsing and validation, when the source
    token could not be normalised; validation drops such events.
    """

    id: str
    title: str
    date: Optional[datetime.date]
    category: Optional[str] = None
    milestone: bool = False
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": _date_to_str(self.date),
            "category": self.category,
            "milestone": self.milestone,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineEvent":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            date=_date_from_str(data.get("date")),
            category=data.get("category"),
            milestone=bool(data.get("milestone", False)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class TimelineData:
    """Timeline events in source order, plus diagram metadata."""

    events: List[TimelineEvent] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    kind = NotationKind.TIMELINE

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")

    @property
    def is_empty(self) -> bool:
        return not self.events

    def get_event(self, event_id: str) -> Optional[TimelineEvent]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def sorted_events(self) -> List[TimelineEvent]:
        """Events in ascending date order; source order breaks ties."""
        return sorted(self.events, key=lambda event: event.date or datetime.date.max)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "events": [event.to_dict() for event in self.events],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineData":
        return cls(
            events=[TimelineEvent.from_dict(item) for item in data.get("events", [])],
            metadata=dict(data.get("metadata") or {}),
        )


# ---------------------------------------------------------------------------
# Gantt
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GanttTask:
    """
    A scheduled task.

    Attributes:
        id: Task id, unique after validation. Dependencies refer to it.
        name: Display name.
        start: First day of the task.
        end: Last day of the task (end >= start after validation).
        progress: Completion percentage, 0..100.
        dependencies: Ids of tasks this task depends on.
        assignee: Optional owner.
        priority: Task priority.
        milestone: True for zero-length marker tasks.
    """

    id: str
    name: str
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    progress: int = 0
    dependencies: List[str] = field(default_factory=list)
    assignee: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    milestone: bool = False

    @property
    def duration_days(self) -> int:
        if self.start is None or self.end is None:
            return 0
        return (self.end - self.start).days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start": _date_to_str(self.start),
            "end": _date_to_str(self.end),
            "progress": self.progress,
            "dependencies": list(self.dependencies),
            "assignee": self.assignee,
            "priority": self.priority.value,
            "milestone": self.milestone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GanttTask":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            start=_date_from_str(data.get("start")),
            end=_date_from_str(data.get("end")),
            progress=int(data.get("progress", 0)),
            dependencies=list(data.get("dependencies") or []),
            assignee=data.get("assignee"),
            priority=Priority.parse(data.get("priority")) or Priority.MEDIUM,
            milestone=bool(data.get("milestone", False)),
        )


@dataclass(frozen=True)
class GanttData:
    """Gantt tasks in input order, plus diagram metadata."""

    tasks: List[GanttTask] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    kind = NotationKind.GANTT

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")

    @property
    def is_empty(self) -> bool:
        return not self.tasks

    def get_task(self, task_id: str) -> Optional[GanttTask]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "tasks": [task.to_dict() for task in self.tasks],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GanttData":
        return cls(
            tasks=[GanttTask.from_dict(item) for item in data.get("tasks", [])],
            metadata=dict(data.get("metadata") or {}),
        )


Diagram = Union[DiagramData, TimelineData, GanttData]


def diagram_from_dict(data: Dict[str, Any]) -> Diagram:
    """
    Rebuild any diagram container from its ``to_dict`` form.

    Raises:
        ContractError: If the dict names an unsupported kind.
    """
    kind = NotationKind.coerce(data.get("kind"))
    if kind == NotationKind.TIMELINE:
        return TimelineData.from_dict(data)
    if kind == NotationKind.GANTT:
        return GanttData.from_dict(data)
    return DiagramData.from_dict(data)


def unique_id(base: str, taken) -> str:
    """
    Return ``base`` or the first free ``base-N`` (N >= 2) not in ``taken``.

    Args:
        base: Preferred id.
        taken: Container of ids already in use.
    """
    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
