"""
Main diagram generator module.

Combines detection, parsing, validation, layout and rendering to turn a
free-form document into standalone SVG diagrams.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .detector import Segmenter
from .export import DiagramExporter
from .interaction import InteractionBinder
from .layout import LayoutConfig, compute_layout
from .models import DetectedBlock, Diagram, NotationKind
from .registry import NotationRegistry, default_registry
from .renderer import SvgRenderer
from .theme import DEFAULT_THEME, Theme, validate_theme
from .validation import ValidationWarning, validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedDiagram:
    """
    One diagram found in a document.

    Attributes:
        kind: Notation kind.
        data: Validated diagram container.
        warnings: Skipped lines and repairs for this diagram.
        block: The document region it came from.
        confidence: Detection confidence times parse confidence.
        svg: Rendered SVG, or None when rendering was not requested.
    """

    kind: NotationKind
    data: Diagram
    warnings: List[ValidationWarning]
    block: DetectedBlock
    confidence: float
    svg: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "data": self.data.to_dict(),
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


@dataclass(frozen=True)
class GenerationResult:
    """Diagrams in document order plus document-level warnings."""

    diagrams: List[ExtractedDiagram] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diagrams": [diagram.to_dict() for diagram in self.diagrams],
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


class DiagramGenerator:
    """
    Extract and render diagrams embedded in document text.

    Example:
        >>> generator = DiagramGenerator()
        >>> result = generator.generate('''
        ...     2024-01-15: Kickoff
        ...     2024-03-01: Launch [milestone]
        ... ''')
        >>> result.diagrams[0].kind.value
        'timeline'
    """

    def __init__(
        self,
        theme: Theme = DEFAULT_THEME,
        layout_config: Optional[LayoutConfig] = None,
        registry: Optional[NotationRegistry] = None,
    ):
        """
        Initialize the diagram generator.

        Args:
            theme: Palette, fonts and interaction flags used for rendering.
            layout_config: Geometry constants; defaults to LayoutConfig().
            registry: Notation strategies; defaults to the six built-ins.

        Raises:
            ContractError: If theme is not a valid Theme.
        """
        self.theme = validate_theme(theme)
        self.layout_config = layout_config or LayoutConfig()
        self.registry = registry if registry is not None else default_registry()
        self.segmenter = Segmenter(self.registry)
        self.renderer = SvgRenderer(self.theme)
        self.binder = InteractionBinder(self.theme, self.layout_config)
        self.exporter = DiagramExporter()

    def extract(self, text: str, allowed_kinds=None) -> GenerationResult:
        """
        Detect, parse and validate diagrams without rendering them.

        Args:
            text: The document.
            allowed_kinds: Kinds to look for; None for all.

        Returns:
            GenerationResult whose diagrams have ``svg=None``.

        Raises:
            ContractError: If text is not a string or allowed_kinds names an
                unsupported kind.
        """
        detection = self.segmenter.detect(text, allowed_kinds)
        warnings: List[ValidationWarning] = [
            ValidationWarning("unterminated-fence", skipped.reason, None)
            for skipped in detection.skipped
        ]
        diagrams: List[ExtractedDiagram] = []

        for block in detection.blocks:
            outcome = self.registry.get(block.kind).try_parse(block.raw_text)
            if outcome is None:
                message = (
                    f"Could not parse {block.kind.value} block at offsets "
                    f"{block.start}-{block.end}"
                )
                logger.info(message)
                warnings.append(ValidationWarning("unparsed-block", message, None))
                continue

            validation = validate(outcome.data)
            notes = [ValidationWarning("skipped-line", note, None) for note in outcome.warnings]
            diagrams.append(
                ExtractedDiagram(
                    kind=block.kind,
                    data=validation.data,
                    warnings=notes + validation.warnings,
                    block=block,
                    confidence=round(block.confidence * outcome.confidence, 3),
                )
            )

        logger.debug("Extracted %d diagram(s)", len(diagrams))
        return GenerationResult(diagrams=diagrams, warnings=warnings)

    def generate(self, text: str, allowed_kinds=None) -> GenerationResult:
        """
        Extract diagrams and render each one to standalone SVG.

        With interaction flags set in the theme, each SVG embeds its
        interaction bindings.
        """
        extracted = self.extract(text, allowed_kinds)
        diagrams = [
            ExtractedDiagram(
                kind=diagram.kind,
                data=diagram.data,
                warnings=diagram.warnings,
                block=diagram.block,
                confidence=diagram.confidence,
                svg=self.render(diagram.data),
            )
            for diagram in extracted.diagrams
        ]
        return GenerationResult(diagrams=diagrams, warnings=extracted.warnings)

    def render(self, data: Diagram) -> str:
        """Render one validated diagram to SVG."""
        if self.theme.interaction.any_enabled:
            return self.binder.bind(data).svg
        return self.renderer.render(compute_layout(data, self.layout_config))

    def save_svg(self, text: str, directory: str, prefix: str = "diagram") -> List[str]:
        """
        Generate every diagram in a document and save each as an SVG file.

        Files are named ``{prefix}-{index}-{kind}.svg``.

        Args:
            text: The document.
            directory: Output directory, created if missing.
            prefix: Filename prefix.

        Returns:
            Paths of the written files, in document order.
        """
        paths = []
        for index, diagram in enumerate(self.generate(text).diagrams, 1):
            filename = str(Path(directory) / f"{prefix}-{index}-{diagram.kind.value}.svg")
            paths.append(self.exporter.save_svg(diagram.svg, filename))
        return paths

    def save_json(self, text: str, filename: str) -> str:
        """
        Extract diagrams and save the structured result as JSON.

        Returns:
            Path to the saved JSON file
        """
        return self.exporter.save_json(self.extract(text), filename)

    def save_png(self, data: Diagram, filename: str, scale: int = 2) -> str:
        """
        Lay out one validated diagram and save it as a PNG image.

        Args:
            data: A diagram container, usually ``ExtractedDiagram.data``.
            filename: Output filename (should end in .png).
            scale: Resolution multiplier.

        Returns:
            Path to the saved PNG file
        """
        layout = compute_layout(data, self.layout_config)
        return self.exporter.save_png(layout, filename, theme=self.theme, scale=scale)


def extract_diagrams(
    text: str, allowed_kinds=None, theme: Theme = DEFAULT_THEME
) -> GenerationResult:
    """
    Extract and render every diagram in a document.

    Args:
        text: The document.
        allowed_kinds: Kinds to look for; None for all.
        theme: Rendering theme, including interaction flags.

    Returns:
        GenerationResult with one rendered diagram per detected block.

    Raises:
        ContractError: If theme is malformed or allowed_kinds names an
            unsupported kind.
    """
    return DiagramGenerator(theme=theme).generate(text, allowed_kinds)
