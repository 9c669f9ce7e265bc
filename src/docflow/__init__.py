"""
DocFlow - Diagrams from Document Text

A Python library that finds flowcharts, sequence diagrams, process steps,
org charts, timelines and Gantt schedules in free-form text and renders
each one as standalone SVG.

Example:
    >>> from docflow import extract_diagrams
    >>> result = extract_diagrams('''
    ...     ## Roadmap
    ...     2024-01-15: Kickoff
    ...     2024-03-01: Launch [milestone]
    ... ''')
    >>> [diagram.kind.value for diagram in result.diagrams]
    ['timeline']
    >>> result.diagrams[0].svg.startswith('<?xml')
    True

Interaction Example:
    >>> from dataclasses import replace
    >>> theme = replace(DEFAULT_THEME, interaction=InteractionFlags(clickable=True))
    >>> session = InteractionBinder(theme).session(result.diagrams[0].data)
    >>> detail = session.click(120, 110)
"""

from .detector import DetectionResult, Segmenter, SkippedBlock
from .export import DiagramExporter
from .generator import (
    DiagramGenerator,
    ExtractedDiagram,
    GenerationResult,
    extract_diagrams,
)
from .interaction import (
    DragResult,
    EntityDetail,
    EventHandlers,
    InteractionBinder,
    InteractionSession,
    InteractiveArtifact,
    Viewport,
)
from .layout import LayoutConfig, LayoutResult, NodeLayout, compute_layout
from .models import (
    ContractError,
    DetectedBlock,
    DiagramData,
    Edge,
    GanttData,
    GanttTask,
    Node,
    NotationKind,
    Priority,
    PriorityTier,
    TimelineData,
    TimelineEvent,
    diagram_from_dict,
)
from .parsers import NotationParser, ParseError, ParseOutcome
from .png_renderer import PNGRenderer, render_to_png
from .registry import NotationRegistry, default_registry
from .renderer import SvgRenderer, render_svg
from .theme import DEFAULT_THEME, Fonts, InteractionFlags, Palette, Theme
from .validation import ValidationResult, ValidationWarning, validate

__version__ = "0.3.0"

__all__ = [
    # Main API
    "DiagramGenerator",
    "ExtractedDiagram",
    "GenerationResult",
    "extract_diagrams",
    # Models
    "ContractError",
    "NotationKind",
    "PriorityTier",
    "Priority",
    "DetectedBlock",
    "Node",
    "Edge",
    "DiagramData",
    "TimelineEvent",
    "TimelineData",
    "GanttTask",
    "GanttData",
    "diagram_from_dict",
    # Detection and parsing
    "Segmenter",
    "DetectionResult",
    "SkippedBlock",
    "NotationParser",
    "NotationRegistry",
    "ParseError",
    "ParseOutcome",
    "default_registry",
    # Validation
    "validate",
    "ValidationResult",
    "ValidationWarning",
    # Layout
    "LayoutConfig",
    "LayoutResult",
    "NodeLayout",
    "compute_layout",
    # Rendering
    "Theme",
    "Palette",
    "Fonts",
    "InteractionFlags",
    "DEFAULT_THEME",
    "SvgRenderer",
    "render_svg",
    "PNGRenderer",
    "render_to_png",
    "DiagramExporter",
    # Interaction
    "InteractionBinder",
    "InteractionSession",
    "InteractiveArtifact",
    "EventHandlers",
    "EntityDetail",
    "DragResult",
    "Viewport",
]
