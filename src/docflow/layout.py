"""
Layout module: pure geometry for every diagram kind.

Uses networkx for:
- Graph representation
- BFS layer assignment from root nodes
- Back edge detection
- Node ordering within layers (barycenter heuristic)

Nothing here produces markup or touches the filesystem; the SVG and PNG
renderers draw a ``LayoutResult`` and the interaction binder hit-tests it.
"""

import datetime
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx

from .dates import month_starts
from .models import (
    ContractError,
    Diagram,
    DiagramData,
    GanttData,
    GanttTask,
    NotationKind,
    Priority,
    TimelineData,
)

Point = Tuple[float, float]

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

DEFAULT_TITLES = {
    NotationKind.FLOWCHART: "Flowchart",
    NotationKind.SEQUENCE: "Sequence Diagram",
    NotationKind.TEXT_FLOW: "Process Flow",
    NotationKind.ORG_CHART: "Organization Chart",
    NotationKind.TIMELINE: "Project Timeline",
    NotationKind.GANTT: "Project Gantt Chart",
}

PRIORITY_ROLES = {
    Priority.LOW: "task-low",
    Priority.MEDIUM: "task",
    Priority.HIGH: "task-high",
    Priority.CRITICAL: "task-critical",
}

CATEGORY_ROLES = {
    "start": "node-start",
    "end": "node-start",
    "decision": "node-decision",
    "data": "node-data",
    "store": "node-data",
}


@dataclass(frozen=True)
class LayoutConfig:
    """
    Geometric constants for every layout.

    Attributes:
        margin: Space around the drawing.
        title_height: Space reserved for the title.
        node_min_width: Minimum width of graph nodes.
        node_height: Height of graph nodes and participant boxes.
        node_padding: Horizontal padding inside a node around its label.
        char_width: Estimated width of one label character.
        horizontal_spacing: Gap between nodes in a layer.
        vertical_spacing: Gap between layers.
        direction: "TB" (top to bottom) or "LR" (left to right).
        timeline_spacing: Vertical distance between uniformly spaced events.
        timeline_axis_x: X position of the timeline axis.
        timeline_label_width: Space reserved for event labels.
        proportional: Space timeline events by elapsed days.
        pixels_per_day: Horizontal Gantt scale, and the proportional
            timeline scale.
        gantt_label_width: Space reserved for task names left of the bars.
        gantt_row_height: Height of one task row.
        gantt_bar_height: Height of a task bar.
        participant_spacing: Distance between sequence lifelines.
        message_spacing: Vertical distance between sequence messages.
        placeholder_width: Width of the empty-diagram placeholder.
        placeholder_height: Height of the empty-diagram placeholder.
    """

    margin: int = 40
    title_height: int = 40
    node_min_width: int = 100
    node_height: int = 40
    node_padding: int = 12
    char_width: float = 7.0
    horizontal_spacing: int = 40
    vertical_spacing: int = 60
    direction: str = "TB"
    timeline_spacing: int = 60
    timeline_axis_x: int = 120
    timeline_label_width: int = 320
    proportional: bool = False
    pixels_per_day: float = 4.0
    gantt_label_width: int = 180
    gantt_row_height: int = 36
    gantt_bar_height: int = 20
    participant_spacing: int = 160
    message_spacing: int = 44
    placeholder_width: int = 360
    placeholder_height: int = 120

    def __post_init__(self):
        if self.direction not in ("TB", "LR"):
            raise ContractError(
                f"Invalid direction '{self.direction}'. Must be 'TB' or 'LR'."
            )
        if not self.pixels_per_day > 0:
            raise ContractError("pixels_per_day must be positive")

    def text_width(self, text: str) -> float:
        return len(text) * self.char_width

    def node_width(self, label: str) -> float:
        return max(self.node_min_width, self.text_width(label) + 2 * self.node_padding)


@dataclass
class NodeLayout:
    """A positioned entity: graph node, participant, event marker or task bar."""

    id: str
    label: str
    role: str
    shape: str = "rect"
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    layer: int = 0
    position: int = 0  # Position within layer
    progress: Optional[float] = None  # Filled fraction of a task bar

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom


@dataclass
class EdgeLayout:
    """A connector as a polyline."""

    source: str
    target: str
    role: str
    points: List[Point]
    label: Optional[str] = None
    dashed: bool = False
    arrow: bool = True

    @property
    def label_position(self) -> Point:
        """Midpoint of the middle segment."""
        index = max(0, (len(self.points) - 1) // 2)
        (x1, y1), (x2, y2) = self.points[index], self.points[min(index + 1, len(self.points) - 1)]
        return ((x1 + x2) / 2, (y1 + y2) / 2)


@dataclass
class LineLayout:
    """A plain line such as an axis, a lifeline or a grid tick."""

    x1: float
    y1: float
    x2: float
    y2: float
    role: str
    dashed: bool = False


@dataclass
class TextLayout:
    """A positioned text run; ``anchor`` is start, middle or end."""

    x: float
    y: float
    text: str
    role: str
    anchor: str = "start"


@dataclass(frozen=True)
class TimeScale:
    """Linear mapping between dates and one axis."""

    origin: datetime.date
    pixels_per_day: float
    offset: float
    axis: str = "x"

    def position(self, value: datetime.date) -> float:
        return self.offset + (value - self.origin).days * self.pixels_per_day

    def days_for(self, pixels: float) -> int:
        """Whole days for a pixel displacement, halves rounded away from zero."""
        days = abs(pixels) / self.pixels_per_day
        whole = int(days + 0.5)
        return whole if pixels >= 0 else -whole


@dataclass
class LayoutResult:
    """Result of a layout: everything the renderers need to draw."""

    kind: NotationKind
    width: float = 0
    height: float = 0
    title: Optional[str] = None
    nodes: Dict[str, NodeLayout] = field(default_factory=dict)
    edges: List[EdgeLayout] = field(default_factory=list)
    lines: List[LineLayout] = field(default_factory=list)
    texts: List[TextLayout] = field(default_factory=list)
    decorations: List[NodeLayout] = field(default_factory=list)
    layers: List[List[str]] = field(default_factory=list)
    back_edges: Set[Tuple[str, str]] = field(default_factory=set)
    scale: Optional[TimeScale] = None
    placeholder: Optional[str] = None

    @property
    def has_cycles(self) -> bool:
        return bool(self.back_edges)

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """Return the id of the top-most entity under a point, if any."""
        hit = None
        for node in self.nodes.values():
            if node.contains(x, y):
                hit = node.id
        return hit


def compute_layout(data: Diagram, config: Optional[LayoutConfig] = None) -> LayoutResult:
    """
    Lay out any diagram container.

    Args:
        data: Validated DiagramData, TimelineData or GanttData.
        config: Geometry; defaults to LayoutConfig().

    Returns:
        LayoutResult, a placeholder result when the diagram is empty.

    Raises:
        ContractError: If data is not a diagram container.
    """
    config = config or LayoutConfig()
    if isinstance(data, DiagramData):
        if data.is_empty:
            return placeholder_layout(data.kind, data.title, config)
        if data.kind == NotationKind.SEQUENCE:
            return SequenceLayout(config).layout(data)
        return NetworkXLayout(config).layout(data)
    if isinstance(data, TimelineData):
        if data.is_empty:
            return placeholder_layout(data.kind, data.title, config)
        return TimelineLayout(config).layout(data)
    if isinstance(data, GanttData):
        if data.is_empty:
            return placeholder_layout(data.kind, data.title, config)
        return GanttLayout(config).layout(data)
    raise ContractError(f"Cannot lay out {type(data).__name__}")


def _add_title(result: LayoutResult, title: Optional[str], config: LayoutConfig) -> None:
    result.title = title or DEFAULT_TITLES[result.kind]
    result.texts.insert(
        0, TextLayout(result.width / 2, config.margin * 0.5 + 16, result.title, "title", "middle")
    )


def placeholder_layout(
    kind: NotationKind, title: Optional[str], config: LayoutConfig
) -> LayoutResult:
    """Layout for a diagram with nothing to draw."""
    width = config.placeholder_width + 2 * config.margin
    top = config.margin + config.title_height
    height = top + config.placeholder_height + config.margin
    message = f"No {DEFAULT_TITLES[kind].lower()} data to display"
    result = LayoutResult(kind=kind, width=width, height=height, placeholder=message)
    result.decorations.append(
        NodeLayout(
            id="placeholder",
            label=message,
            role="placeholder",
            shape="rounded",
            x=config.margin,
            y=top,
            width=config.placeholder_width,
            height=config.placeholder_height,
        )
    )
    result.texts.append(
        TextLayout(width / 2, top + config.placeholder_height / 2 + 4, message, "caption", "middle")
    )
    _add_title(result, title, config)
    return result


class NetworkXLayout:
    """
    Layered layout for flowcharts, org charts and text flows.

    Layers come from BFS distance to the roots (nodes without predecessors,
    otherwise the first node not yet placed). Edges that do not point to a
    later layer are back edges; they are excluded from ordering and routed
    along the right (TB) or bottom (LR) margin.
    """

    BACK_EDGE_GAP = 16

    def __init__(self, config: LayoutConfig):
        self.config = config
        self.graph: nx.DiGraph = None
        self.back_edges: Set[Tuple[str, str]] = set()

    def layout(self, data: DiagramData) -> LayoutResult:
        """
        Compute positions for every node and a route for every edge.

        Args:
            data: A validated, non-empty DiagramData.

        Returns:
            LayoutResult with node boxes, edge polylines and layers.
        """
        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(data.node_ids())
        self.graph.add_edges_from((edge.from_id, edge.to_id) for edge in data.edges)

        node_layer = self._assign_layers()
        self.back_edges = {
            (u, v) for u, v in self.graph.edges() if node_layer[v] <= node_layer[u]
        }
        layers: List[List[str]] = [[] for _ in range(max(node_layer.values()) + 1)]
        for node_id in self.graph.nodes():
            layers[node_layer[node_id]].append(node_id)
        layers = self._order_layers(layers)

        result = LayoutResult(kind=data.kind, layers=layers, back_edges=set(self.back_edges))
        sublabels = {}
        for layer_idx, layer in enumerate(layers):
            for pos_idx, node_id in enumerate(layer):
                node = data.get_node(node_id)
                if data.kind == NotationKind.ORG_CHART and node.category:
                    sublabels[node_id] = node.category
                result.nodes[node_id] = NodeLayout(
                    id=node_id,
                    label=node.label,
                    role=CATEGORY_ROLES.get(node.category, "node"),
                    shape=node.style.get("shape", "rect"),
                    width=self.config.node_width(node.label),
                    height=self.config.node_height + (14 if node_id in sublabels else 0),
                    layer=layer_idx,
                    position=pos_idx,
                )

        if self.config.direction == "TB":
            self._position_vertical(result)
        else:
            self._position_horizontal(result)

        for node_id, node in result.nodes.items():
            if node_id in sublabels:
                result.texts.append(TextLayout(node.cx, node.cy - 2, node.label, node.role, "middle"))
                result.texts.append(
                    TextLayout(node.cx, node.cy + 13, sublabels[node_id], node.role, "middle")
                )
            else:
                result.texts.append(TextLayout(node.cx, node.cy + 4, node.label, node.role, "middle"))

        self._route_edges(data, result)
        _add_title(result, data.title, self.config)
        return result

    def _assign_layers(self) -> Dict[str, int]:
        """BFS distance from roots; unreached nodes seed further searches."""
        order = list(self.graph.nodes())
        node_layer: Dict[str, int] = {}
        sources = [n for n in order if self.graph.in_degree(n) == 0] or order[:1]

        while True:
            queue = deque()
            for source in sources:
                if source not in node_layer:
                    node_layer[source] = 0
                    queue.append(source)
            while queue:
                current = queue.popleft()
                for successor in self.graph.successors(current):
                    if successor not in node_layer:
                        node_layer[successor] = node_layer[current] + 1
                        queue.append(successor)
            remaining = [n for n in order if n not in node_layer]
            if not remaining:
                return node_layer
            sources = remaining[:1]

    def _order_layers(self, layers: List[List[str]]) -> List[List[str]]:
        """
        Order nodes within each layer to minimize edge crossings.
        Uses barycenter heuristic.
        """
        if len(layers) <= 1:
            return layers

        # Create working graph without back edges for ordering
        working_graph = self.graph.copy()
        working_graph.remove_edges_from(self.back_edges)

        # Multiple passes of barycenter ordering
        for _ in range(4):
            # Forward pass
            for i in range(1, len(layers)):
                layers[i] = self._order_layer_by_barycenter(
                    layers[i], layers[i - 1], working_graph, use_predecessors=True
                )

            # Backward pass
            for i in range(len(layers) - 2, -1, -1):
                layers[i] = self._order_layer_by_barycenter(
                    layers[i], layers[i + 1], working_graph, use_predecessors=False
                )

        return layers

    def _order_layer_by_barycenter(
        self,
        layer: List[str],
        ref_layer: List[str],
        graph: nx.DiGraph,
        use_predecessors: bool,
    ) -> List[str]:
        """
        Order nodes by barycenter (average position of connected nodes).
        """
        ref_positions = {node: i for i, node in enumerate(ref_layer)}

        def barycenter(node: str) -> float:
            if use_predecessors:
                neighbors = list(graph.predecessors(node))
            else:
                neighbors = list(graph.successors(node))

            positions = [ref_positions[n] for n in neighbors if n in ref_positions]

            if not positions:
                # Keep original order for nodes with no connections to ref layer
                return layer.index(node)

            return sum(positions) / len(positions)

        return sorted(layer, key=barycenter)

    def _position_vertical(self, result: LayoutResult) -> None:
        config = self.config
        top = config.margin + config.title_height
        layer_widths = [
            sum(result.nodes[n].width for n in layer)
            + config.horizontal_spacing * (len(layer) - 1)
            for layer in result.layers
        ]
        content_width = max(layer_widths)
        for layer_idx, layer in enumerate(result.layers):
            x = config.margin + (content_width - layer_widths[layer_idx]) / 2
            y = top + layer_idx * (config.node_height + config.vertical_spacing)
            for node_id in layer:
                node = result.nodes[node_id]
                node.x, node.y = x, y
                x += node.width + config.horizontal_spacing

        lanes = len(self.back_edges) * self.BACK_EDGE_GAP
        result.width = config.margin * 2 + content_width + (lanes + 20 if lanes else 0)
        bottom = top + len(result.layers) * (config.node_height + config.vertical_spacing)
        result.height = bottom - config.vertical_spacing + config.margin + 14

    def _position_horizontal(self, result: LayoutResult) -> None:
        config = self.config
        top = config.margin + config.title_height
        column_widths = [max(result.nodes[n].width for n in layer) for layer in result.layers]
        column_heights = [
            len(layer) * config.node_height + config.vertical_spacing / 2 * (len(layer) - 1)
            for layer in result.layers
        ]
        content_height = max(column_heights)
        x = config.margin
        for layer_idx, layer in enumerate(result.layers):
            y = top + (content_height - column_heights[layer_idx]) / 2
            for node_id in layer:
                node = result.nodes[node_id]
                node.x = x + (column_widths[layer_idx] - node.width) / 2
                node.y = y
                y += config.node_height + config.vertical_spacing / 2
            x += column_widths[layer_idx] + config.horizontal_spacing * 1.5

        lanes = len(self.back_edges) * self.BACK_EDGE_GAP
        result.width = x - config.horizontal_spacing * 1.5 + config.margin
        result.height = top + content_height + config.margin + 14 + (lanes + 20 if lanes else 0)

    def _route_edges(self, data: DiagramData, result: LayoutResult) -> None:
        vertical = self.config.direction == "TB"
        if vertical:
            content_edge = max(node.right for node in result.nodes.values())
        else:
            content_edge = max(node.bottom for node in result.nodes.values())
        lane = 0
        elbows_only = data.kind == NotationKind.ORG_CHART

        for edge in data.edges:
            source = result.nodes[edge.from_id]
            target = result.nodes[edge.to_id]
            if (edge.from_id, edge.to_id) in self.back_edges:
                lane += 1
                offset = content_edge + 20 + lane * self.BACK_EDGE_GAP
                if vertical:
                    points = [
                        (source.right, source.cy + 6),
                        (offset, source.cy + 6),
                        (offset, target.cy - 6),
                        (target.right, target.cy - 6),
                    ]
                else:
                    points = [
                        (source.cx + 6, source.bottom),
                        (source.cx + 6, offset),
                        (target.cx - 6, offset),
                        (target.cx - 6, target.bottom),
                    ]
            elif vertical:
                start = (source.cx, source.bottom)
                end = (target.cx, target.y)
                if abs(start[0] - end[0]) < 1 and not elbows_only:
                    points = [start, end]
                elif target.layer == source.layer + 1:
                    mid = source.bottom + (target.y - source.bottom) / 2
                    points = [start, (start[0], mid), (end[0], mid), end]
                else:
                    mid = target.y - self.config.vertical_spacing / 2
                    points = [start, (start[0], mid), (end[0], mid), end]
            else:
                start = (source.right, source.cy)
                end = (target.x, target.cy)
                if abs(start[1] - end[1]) < 1 and not elbows_only:
                    points = [start, end]
                else:
                    mid = end[0] - self.config.horizontal_spacing * 0.75
                    points = [start, (mid, start[1]), (mid, end[1]), end]

            result.edges.append(
                EdgeLayout(
                    source=edge.from_id,
                    target=edge.to_id,
                    role="edge",
                    points=points,
                    label=edge.label,
                    dashed=edge.style == "dotted",
                    arrow=edge.style != "line",
                )
            )
            if edge.label:
                x, y = result.edges[-1].label_position
                result.texts.append(TextLayout(x + 4, y - 4, edge.label, "caption"))


class SequenceLayout:
    """Participants across the top, one horizontal arrow per message."""

    SELF_LOOP = 30

    def __init__(self, config: LayoutConfig):
        self.config = config

    def layout(self, data: DiagramData) -> LayoutResult:
        config = self.config
        top = config.margin + config.title_height
        result = LayoutResult(kind=data.kind)
        centers: Dict[str, float] = {}

        for index, node in enumerate(data.nodes):
            center = config.margin + config.participant_spacing * (index + 0.5)
            width = min(config.node_width(node.label), config.participant_spacing - 10)
            centers[node.id] = center
            result.nodes[node.id] = NodeLayout(
                id=node.id,
                label=node.label,
                role="participant",
                shape="rect",
                x=center - width / 2,
                y=top,
                width=width,
                height=config.node_height,
                position=index,
            )
            result.texts.append(
                TextLayout(center, top + config.node_height / 2 + 4, node.label, "participant", "middle")
            )

        first_message = top + config.node_height + config.message_spacing
        for index, edge in enumerate(data.edges):
            y = first_message + index * config.message_spacing
            x1, x2 = centers[edge.from_id], centers[edge.to_id]
            if edge.from_id == edge.to_id:
                loop = self.SELF_LOOP
                points = [(x1, y), (x1 + loop, y), (x1 + loop, y + 16), (x1, y + 16)]
                label_x, anchor = x1 + loop + 6, "start"
            else:
                points = [(x1, y), (x2, y)]
                label_x, anchor = (x1 + x2) / 2, "middle"
            role = "reply" if edge.style == "reply" else "message"
            result.edges.append(
                EdgeLayout(
                    source=edge.from_id,
                    target=edge.to_id,
                    role=role,
                    points=points,
                    label=edge.label,
                    dashed=role == "reply",
                )
            )
            if edge.label:
                result.texts.append(TextLayout(label_x, y - 6, edge.label, "caption", anchor))

        bottom = first_message + max(len(data.edges) - 1, 0) * config.message_spacing + 30
        for center in centers.values():
            result.lines.append(
                LineLayout(center, top + config.node_height, center, bottom, "lifeline", dashed=True)
            )

        result.width = config.margin * 2 + config.participant_spacing * len(data.nodes)
        result.height = bottom + config.margin
        _add_title(result, data.title, config)
        return result


class TimelineLayout:
    """
    One vertical axis with events in ascending date order.

    Uniform mode spaces events evenly; proportional mode places them by
    elapsed days at ``pixels_per_day``. Either way the result carries a
    TimeScale at ``pixels_per_day`` so drags convert to whole days.
    """

    MARKER = 16
    MILESTONE = 20

    def __init__(self, config: LayoutConfig):
        self.config = config

    def layout(self, data: TimelineData) -> LayoutResult:
        config = self.config
        events = data.sorted_events()
        top = config.margin + config.title_height
        first_y = top + config.timeline_spacing / 2
        origin = events[0].date
        scale = TimeScale(origin, config.pixels_per_day, first_y, axis="y")
        result = LayoutResult(kind=data.kind, scale=scale)
        axis_x = config.timeline_axis_x

        y = first_y
        for index, event in enumerate(events):
            if config.proportional:
                y = scale.position(event.date)
            else:
                y = first_y + index * config.timeline_spacing
            size = self.MILESTONE if event.milestone else self.MARKER
            if event.milestone:
                role, shape = "milestone", "diamond"
            elif event.category == "deadline":
                role, shape = "deadline", "circle"
            else:
                role, shape = "event", "circle"
            result.nodes[event.id] = NodeLayout(
                id=event.id,
                label=event.title,
                role=role,
                shape=shape,
                x=axis_x - size / 2,
                y=y - size / 2,
                width=size,
                height=size,
                position=index,
            )
            result.texts.append(TextLayout(axis_x + 20, y, event.title, "label"))
            caption = event.date.isoformat()
            if event.category and event.category != "deadline":
                caption += f" | {event.category}"
            result.texts.append(TextLayout(axis_x + 20, y + 14, caption, "caption"))
            result.texts.append(
                TextLayout(axis_x - 20, y + 4, event.date.isoformat(), "caption", "end")
            )

        axis_bottom = y + config.timeline_spacing / 2
        result.lines.append(LineLayout(axis_x, top, axis_x, axis_bottom, "axis"))

        legend_y = axis_bottom + 24
        legend = (("event", "circle", "Event"), ("milestone", "diamond", "Milestone"),
                  ("deadline", "circle", "Deadline"))
        for index, (role, shape, label) in enumerate(legend):
            x = config.margin + index * 110
            result.decorations.append(
                NodeLayout(id=f"legend-{role}", label=label, role=role, shape=shape,
                           x=x, y=legend_y - 6, width=12, height=12)
            )
            result.texts.append(TextLayout(x + 18, legend_y + 4, label, "caption"))

        result.width = axis_x + 20 + config.timeline_label_width + config.margin
        result.height = legend_y + 16 + config.margin
        _add_title(result, data.title, config)
        return result


class GanttLayout:
    """
    One row per task in input order, bars on a shared day scale.

    Dependencies are elbow connectors from the end of the dependency bar to
    the start of the dependent bar. Zero-length tasks and milestones are
    diamonds.
    """

    HEADER = 28

    def __init__(self, config: LayoutConfig):
        self.config = config

    def layout(self, data: GanttData) -> LayoutResult:
        config = self.config
        tasks = data.tasks
        origin = min(task.start for task in tasks)
        last = max(task.end for task in tasks)
        chart_left = config.margin + config.gantt_label_width
        scale = TimeScale(origin, config.pixels_per_day, chart_left, axis="x")
        result = LayoutResult(kind=data.kind, scale=scale)

        rows_top = config.margin + config.title_height + self.HEADER
        rows_bottom = rows_top + len(tasks) * config.gantt_row_height
        chart_right = scale.position(last)

        for tick in month_starts(origin, last):
            x = scale.position(tick)
            result.lines.append(LineLayout(x, rows_top - 4, x, rows_bottom, "grid"))
            result.texts.append(
                TextLayout(x, rows_top - 10, f"{MONTH_LABELS[tick.month - 1]} {tick.year}", "caption", "middle")
            )
        result.lines.append(LineLayout(chart_left, rows_top, chart_left, rows_bottom, "axis"))

        for index, task in enumerate(tasks):
            row_y = rows_top + index * config.gantt_row_height
            result.nodes[task.id] = self._task_node(task, index, row_y, scale)
            result.texts.append(TextLayout(config.margin, row_y + 15, task.name, "label"))
            result.texts.append(
                TextLayout(config.margin, row_y + 29, task.assignee or "Unassigned", "caption")
            )
            node = result.nodes[task.id]
            if node.shape == "bar":
                result.texts.append(
                    TextLayout(node.right + 6, node.cy + 4, f"{task.progress}%", "caption")
                )

        for task in tasks:
            target = result.nodes[task.id]
            for dep_id in task.dependencies:
                source = result.nodes[dep_id]
                bend = target.x - 10
                result.edges.append(
                    EdgeLayout(
                        source=dep_id,
                        target=task.id,
                        role="dependency",
                        points=[
                            (source.right, source.cy),
                            (bend, source.cy),
                            (bend, target.cy),
                            (target.x, target.cy),
                        ],
                    )
                )

        legend_y = rows_bottom + 24
        for index, (role, label) in enumerate((("task-progress", "Progress"), ("task", "Remaining"))):
            x = chart_left + index * 110
            result.decorations.append(
                NodeLayout(id=f"legend-{role}", label=label, role=role, shape="rect",
                           x=x, y=legend_y - 6, width=16, height=12)
            )
            result.texts.append(TextLayout(x + 22, legend_y + 4, label, "caption"))

        result.width = max(chart_right, chart_left + 220) + 50 + config.margin
        result.height = legend_y + 16 + config.margin
        _add_title(result, data.title, config)
        return result

    def _task_node(self, task: GanttTask, index: int, row_y: float, scale: TimeScale) -> NodeLayout:
        config = self.config
        x = scale.position(task.start)
        center_y = row_y + config.gantt_row_height / 2
        if task.milestone or task.duration_days == 0:
            size = config.gantt_bar_height
            return NodeLayout(
                id=task.id,
                label=task.name,
                role="task-milestone",
                shape="diamond",
                x=x - size / 2,
                y=center_y - size / 2,
                width=size,
                height=size,
                position=index,
            )
        return NodeLayout(
            id=task.id,
            label=task.name,
            role=PRIORITY_ROLES[task.priority],
            shape="bar",
            x=x,
            y=center_y - config.gantt_bar_height / 2,
            width=task.duration_days * scale.pixels_per_day,
            height=config.gantt_bar_height,
            position=index,
            progress=task.progress / 100,
        )
