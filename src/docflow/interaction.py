"""
Interaction binder.

Two halves share one model of interaction:

- ``InteractionSession`` runs interactions in Python against a precomputed
  layout: hit-testing clicks, zooming the viewport, dragging events and tasks
  along the date axis and adding or deleting entities in edit mode. Every
  mutation produces a new, re-validated diagram container and a fresh
  layout.
- ``InteractionBinder.bind`` embeds a JSON binding descriptor and a static
  script in the rendered SVG so that the enabled behaviours also work when
  the SVG is opened on its own.

Only behaviours enabled by the theme's interaction flags are available.
"""

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

import networkx as nx

from .dates import add_days
from .layout import LayoutConfig, LayoutResult, compute_layout
from .models import (
    ContractError,
    Diagram,
    DiagramData,
    Edge,
    GanttData,
    GanttTask,
    Node,
    TimelineData,
    TimelineEvent,
)
from .renderer import SvgRenderer
from .theme import DEFAULT_THEME, InteractionFlags, Theme, validate_theme
from .validation import ValidationResult, ValidationWarning, validate

logger = logging.getLogger(__name__)

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
DRAG_HANDLES = ("move", "start", "end")


@dataclass(frozen=True)
class Viewport:
    """Pan and zoom state; only this transform changes when zooming."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    def zoom(self, factor: float, cx: float, cy: float) -> "Viewport":
        """
        Zoom around a screen point, keeping the content under it fixed.

        The resulting scale is clamped to [MIN_ZOOM, MAX_ZOOM].
        """
        if factor <= 0:
            raise ContractError(f"Zoom factor must be positive, got {factor}")
        scale = min(max(self.scale * factor, MIN_ZOOM), MAX_ZOOM)
        world_x, world_y = self.to_world(cx, cy)
        return Viewport(
            scale=scale,
            translate_x=cx - world_x * scale,
            translate_y=cy - world_y * scale,
        )

    def to_world(self, x: float, y: float) -> Tuple[float, float]:
        """Convert a screen point to layout coordinates."""
        return ((x - self.translate_x) / self.scale, (y - self.translate_y) / self.scale)

    def transform(self) -> str:
        return (
            f"translate({round(self.translate_x, 2):g},{round(self.translate_y, 2):g}) "
            f"scale({round(self.scale, 4):g})"
        )


@dataclass(frozen=True)
class EntityDetail:
    """Full data of a clicked entity."""

    entity_id: str
    kind: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class DragResult:
    """Outcome of a drag: the new diagram, its warnings and its layout."""

    data: Diagram
    warnings: List[ValidationWarning]
    layout: LayoutResult
    affected_ids: List[str]
    days: int


@dataclass
class EventHandlers:
    """Callbacks invoked by an InteractionSession."""

    on_click: Optional[Callable[[EntityDetail], None]] = None
    on_zoom: Optional[Callable[[Viewport], None]] = None
    on_drag: Optional[Callable[[DragResult], None]] = None
    on_change: Optional[Callable[[ValidationResult], None]] = None
    on_update: Optional[Callable[[str], None]] = None


@dataclass(frozen=True)
class InteractiveArtifact:
    """A rendered SVG with its embedded binding descriptor."""

    svg: str
    bindings: Dict[str, Any]
    data: Diagram


def entity_kind(data: Diagram) -> str:
    if isinstance(data, TimelineData):
        return "event"
    if isinstance(data, GanttData):
        return "task"
    return "node"


def entity_fields(data: Diagram) -> Dict[str, Dict[str, Any]]:
    """Serialised fields of every entity, keyed by id."""
    if isinstance(data, TimelineData):
        return {event.id: event.to_dict() for event in data.events}
    if isinstance(data, GanttData):
        return {task.id: task.to_dict() for task in data.tasks}
    return {node.id: node.to_dict() for node in data.nodes}


def _check_flags(flags: InteractionFlags, *names: str) -> None:
    missing = [name for name in names if not getattr(flags, name)]
    if missing:
        raise ContractError(
            f"Interaction requires {', '.join(missing)} to be enabled in the theme"
        )


class InteractionSession:
    """
    Stateful interaction over one diagram.

    Example:
        >>> theme = replace(DEFAULT_THEME, interaction=InteractionFlags(
        ...     clickable=True, draggable=True, edit_mode=True))
        >>> session = InteractionSession(gantt, theme)
        >>> result = session.drag("build", dx=28)   # 7 days at 4 px/day
    """

    def __init__(
        self,
        data: Diagram,
        theme: Theme = DEFAULT_THEME,
        config: Optional[LayoutConfig] = None,
        handlers: Optional[EventHandlers] = None,
    ):
        self.theme = validate_theme(theme)
        self.config = config or LayoutConfig()
        self.handlers = handlers or EventHandlers()
        self.data = data
        self.layout = compute_layout(data, self.config)
        self.viewport = Viewport()

    @property
    def flags(self) -> InteractionFlags:
        return self.theme.interaction

    def detail(self, entity_id: str) -> EntityDetail:
        """
        Return the full data of an entity.

        Raises:
            ContractError: If no entity has this id.
        """
        fields = entity_fields(self.data)
        if entity_id not in fields:
            raise ContractError(f"Unknown entity id: {entity_id!r}")
        return EntityDetail(entity_id, entity_kind(self.data), fields[entity_id])

    def click(self, x: float, y: float) -> Optional[EntityDetail]:
        """
        Hit-test a screen point and report the entity under it.

        Returns:
            EntityDetail, or None if the point hits no entity.
        """
        _check_flags(self.flags, "clickable")
        world_x, world_y = self.viewport.to_world(x, y)
        entity_id = self.layout.hit_test(world_x, world_y)
        if entity_id is None:
            return None
        detail = self.detail(entity_id)
        if self.handlers.on_click:
            self.handlers.on_click(detail)
        return detail

    def zoom(self, factor: float, x: float, y: float) -> Viewport:
        """Zoom around a screen point; the layout is untouched."""
        _check_flags(self.flags, "zoomable")
        self.viewport = self.viewport.zoom(factor, x, y)
        if self.handlers.on_zoom:
            self.handlers.on_zoom(self.viewport)
        return self.viewport

    def drag(
        self, entity_id: str, dx: float = 0.0, dy: float = 0.0, handle: str = "move"
    ) -> DragResult:
        """
        Move an event or task along the date axis.

        The pixel displacement along the axis (x for Gantt charts, y for
        timelines) is divided by the current zoom and converted to whole
        days, halves rounded away from zero.

        Args:
            entity_id: Event or task id.
            dx: Horizontal displacement in screen pixels.
            dy: Vertical displacement in screen pixels.
            handle: "move" shifts both dates; "start" or "end" resizes a task.

        Raises:
            ContractError: If dragging is disabled, the entity is unknown, the
                diagram has no date axis, the handle is invalid
                or the move leaves the supported calendar range.
        """
        _check_flags(self.flags, "edit_mode", "draggable")
        if handle not in DRAG_HANDLES:
            raise ContractError(f"Invalid drag handle {handle!r}; expected one of {DRAG_HANDLES}")
        if self.layout.scale is None:
            raise ContractError("Only timeline events and Gantt tasks can be dragged")
        self.detail(entity_id)

        pixels = dx if self.layout.scale.axis == "x" else dy
        days = self.layout.scale.days_for(pixels / self.viewport.scale)

        if isinstance(self.data, TimelineData):
            if handle != "move":
                raise ContractError("Timeline events only support the 'move' handle")
            try:
                events = [
                    replace(event, date=add_days(event.date, days)) if event.id == entity_id else event
                    for event in self.data.events
                ]
            except OverflowError:
                raise ContractError(f"Dragging {entity_id!r} by {days} day(s) leaves the calendar") from None
            updated = replace(self.data, events=events)
            affected = [entity_id]
        else:
            try:
                tasks = [
                    self._shift_task(task, days, handle) if task.id == entity_id else task
                    for task in self.data.tasks
                ]
            except OverflowError:
                raise ContractError(f"Dragging {entity_id!r} by {days} day(s) leaves the calendar") from None
            updated = replace(self.data, tasks=tasks)
            affected = self._dependents(updated, entity_id)

        validation = validate(updated)
        self._apply(validation)
        result = DragResult(
            data=self.data,
            warnings=validation.warnings,
            layout=self.layout,
            affected_ids=affected,
            days=days,
        )
        logger.debug("Dragged %s by %d day(s)", entity_id, days)
        if self.handlers.on_drag:
            self.handlers.on_drag(result)
        return result

    def delete(self, entity_id: str) -> ValidationResult:
        """Remove an entity; references to it are dropped by validation."""
        _check_flags(self.flags, "edit_mode")
        self.detail(entity_id)
        if isinstance(self.data, TimelineData):
            updated = replace(
                self.data, events=[e for e in self.data.events if e.id != entity_id]
            )
        elif isinstance(self.data, GanttData):
            updated = replace(self.data, tasks=[t for t in self.data.tasks if t.id != entity_id])
        else:
            updated = replace(self.data, nodes=[n for n in self.data.nodes if n.id != entity_id])
        validation = validate(updated)
        self._apply(validation)
        self._notify(validation)
        return validation

    def add(self, entity, edges: Optional[List[Edge]] = None) -> ValidationResult:
        """
        Append an entity (and, for graph diagrams, edges) to the diagram.

        Raises:
            ContractError: If edit mode is off or the entity does not belong
                in this kind of diagram.
        """
        _check_flags(self.flags, "edit_mode")
        if isinstance(self.data, TimelineData) and isinstance(entity, TimelineEvent):
            updated = replace(self.data, events=self.data.events + [entity])
        elif isinstance(self.data, GanttData) and isinstance(entity, GanttTask):
            updated = replace(self.data, tasks=self.data.tasks + [entity])
        elif isinstance(self.data, DiagramData) and isinstance(entity, Node):
            updated = replace(
                self.data,
                nodes=self.data.nodes + [entity],
                edges=self.data.edges + list(edges or []),
            )
        else:
            raise ContractError(
                f"Cannot add {type(entity).__name__} to a {self.data.kind.value} diagram"
            )
        validation = validate(updated)
        self._apply(validation)
        self._notify(validation)
        return validation

    def render(self) -> str:
        """Render the current diagram with the current viewport transform."""
        renderer = SvgRenderer(self.theme)
        root = renderer.build(self.layout, transform=self.viewport.transform())
        return renderer.to_string(root)

    def _apply(self, validation: ValidationResult) -> None:
        self.data = validation.data
        self.layout = compute_layout(self.data, self.config)
        if self.flags.real_time_updates and self.handlers.on_update:
            self.handlers.on_update(self.render())

    def _notify(self, validation: ValidationResult) -> None:
        if self.handlers.on_change:
            self.handlers.on_change(validation)

    @staticmethod
    def _shift_task(task: GanttTask, days: int, handle: str) -> GanttTask:
        if handle == "move":
            return replace(task, start=add_days(task.start, days), end=add_days(task.end, days))
        if handle == "start":
            return replace(task, start=add_days(task.start, days))
        return replace(task, end=add_days(task.end, days))

    @staticmethod
    def _dependents(data: GanttData, task_id: str) -> List[str]:
        """The task plus every task that depends on it, in input order."""
        graph = nx.DiGraph()
        graph.add_nodes_from(task.id for task in data.tasks)
        for task in data.tasks:
            for dep_id in task.dependencies:
                graph.add_edge(dep_id, task.id)
        reached = nx.descendants(graph, task_id) | {task_id}
        return [task.id for task in data.tasks if task.id in reached]


class InteractionBinder:
    """
    Attach interaction to rendered diagrams.

    Example:
        >>> theme = replace(DEFAULT_THEME, interaction=InteractionFlags(clickable=True))
        >>> artifact = InteractionBinder(theme).bind(diagram)
        >>> "df-bindings" in artifact.svg
        True
    """

    def __init__(self, theme: Theme = DEFAULT_THEME, config: Optional[LayoutConfig] = None):
        self.theme = validate_theme(theme)
        self.config = config or LayoutConfig()

    def bindings(self, data: Diagram, layout: LayoutResult) -> Dict[str, Any]:
        """The JSON-serialisable descriptor embedded in bound SVG."""
        flags = self.theme.interaction
        descriptor: Dict[str, Any] = {
            "kind": data.kind.value,
            "flags": {
                "clickable": flags.clickable,
                "zoomable": flags.zoomable,
                "draggable": flags.draggable and flags.edit_mode,
                "realTimeUpdates": flags.real_time_updates,
                "editMode": flags.edit_mode,
            },
        }
        if flags.clickable:
            descriptor["entities"] = entity_fields(data)
        if flags.zoomable:
            descriptor["zoom"] = {"min": MIN_ZOOM, "max": MAX_ZOOM}
        if flags.draggable and flags.edit_mode and layout.scale is not None:
            descriptor["scale"] = {
                "axis": layout.scale.axis,
                "pixelsPerDay": layout.scale.pixels_per_day,
                "origin": layout.scale.origin.isoformat(),
            }
        return descriptor

    def bind(self, data: Diagram) -> InteractiveArtifact:
        """
        Render a diagram with its enabled behaviours attached.

        With every flag off the SVG is the static rendering and the
        descriptor is empty.
        """
        layout = compute_layout(data, self.config)
        renderer = SvgRenderer(self.theme)
        root = renderer.build(layout)
        if not self.theme.interaction.any_enabled:
            return InteractiveArtifact(renderer.to_string(root), {}, data)

        descriptor = self.bindings(data, layout)
        root.set("data-interactive", "true")
        config = ET.SubElement(root, "script", {"id": "df-bindings", "type": "application/json"})
        config.text = json.dumps(descriptor, sort_keys=True)
        ET.SubElement(root, "script", {"type": "application/ecmascript"}).text = BINDING_SCRIPT
        return InteractiveArtifact(renderer.to_string(root), descriptor, data)

    def session(self, data: Diagram, handlers: Optional[EventHandlers] = None) -> InteractionSession:
        return InteractionSession(data, self.theme, self.config, handlers)


BINDING_SCRIPT = """
(function () {
  var svg = document.currentScript ? document.currentScript.ownerSVGElement : null;
  if (!svg) { svg = document.querySelector('svg[data-interactive]'); }
  var config = JSON.parse(svg.querySelector('#df-bindings').textContent);
  var viewport = svg.querySelector('#df-viewport');
  var view = {scale: 1, x: 0, y: 0};
  function emit(name, detail) {
    svg.dispatchEvent(new CustomEvent('docflow:' + name, {detail: detail, bubbles: true}));
    if (window.parent !== window) { window.parent.postMessage({type: 'docflow:' + name, detail: detail}, '*'); }
  }
  function apply() {
    viewport.setAttribute('transform', 'translate(' + view.x + ',' + view.y + ') scale(' + view.scale + ')');
  }
  function entityOf(target) {
    var node = target.closest ? target.closest('[data-entity-id]') : null;
    return node ? node.getAttribute('data-entity-id') : null;
  }
  if (config.flags.clickable) {
    svg.addEventListener('click', function (evt) {
      var id = entityOf(evt.target);
      if (id) { emit('click', {id: id, kind: config.kind, fields: config.entities[id]}); }
    });
  }
  if (config.flags.zoomable) {
    svg.addEventListener('wheel', function (evt) {
      evt.preventDefault();
      var factor = evt.deltaY < 0 ? 1.1 : 1 / 1.1;
      var scale = Math.min(Math.max(view.scale * factor, config.zoom.min), config.zoom.max);
      var wx = (evt.offsetX - view.x) / view.scale, wy = (evt.offsetY - view.y) / view.scale;
      view = {scale: scale, x: evt.offsetX - wx * scale, y: evt.offsetY - wy * scale};
      apply();
      emit('zoom', view);
    }, {passive: false});
  }
  if (config.flags.draggable && config.scale) {
    var drag = null;
    svg.addEventListener('mousedown', function (evt) {
      var id = entityOf(evt.target);
      if (id) { drag = {id: id, x: evt.clientX, y: evt.clientY, node: svg.querySelector('[data-entity-id="' + id + '"]')}; }
    });
    svg.addEventListener('mousemove', function (evt) {
      if (!drag) { return; }
      var dx = config.scale.axis === 'x' ? (evt.clientX - drag.x) / view.scale : 0;
      var dy = config.scale.axis === 'y' ? (evt.clientY - drag.y) / view.scale : 0;
      drag.node.setAttribute('transform', 'translate(' + dx + ',' + dy + ')');
    });
    svg.addEventListener('mouseup', function (evt) {
      if (!drag) { return; }
      var pixels = config.scale.axis === 'x' ? evt.clientX - drag.x : evt.clientY - drag.y;
      var raw = Math.abs(pixels / view.scale) / config.scale.pixelsPerDay;
      var days = (pixels < 0 ? -1 : 1) * Math.floor(raw + 0.5);
      drag.node.removeAttribute('transform');
      emit('drag', {id: drag.id, handle: 'move', days: days});
      drag = null;
    });
  }
})();
"""
