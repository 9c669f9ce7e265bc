"""
File export functionality for extracted diagrams.

This module handles writing diagrams to disk:
- SVG files (.svg) - Standalone markup, optionally with interaction bindings
- JSON files (.json) - The structured diagram data and warnings
- PNG images - Rasterised output of a layout

The DiagramExporter class wraps file I/O so the generator and callers share
one place for paths and encodings.
"""

import json
from pathlib import Path
from typing import Any, Optional

from .layout import LayoutResult
from .png_renderer import PNGRenderer
from .theme import DEFAULT_THEME, Theme


class DiagramExporter:
    """
    Exports diagrams to various file formats.

    Attributes:
        default_font: Default font path for PNG export.
    """

    def __init__(self, default_font: Optional[str] = None):
        """
        Initialize the diagram exporter.

        Args:
            default_font: Default TrueType font path for PNG export.
        """
        self.default_font = default_font

    def save_svg(self, svg: str, filename: str) -> str:
        """
        Save rendered SVG markup to a file.

        Args:
            svg: The SVG document string.
            filename: Output filename (should end in .svg).

        Returns:
            The output filename.
        """
        output_path = Path(filename)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(svg, encoding="utf-8")
        return filename

    def save_json(self, data: Any, filename: str, indent: int = 2) -> str:
        """
        Save diagram data as JSON.

        Args:
            data: Anything with a ``to_dict`` method (a diagram container or
                a GenerationResult), or a plain dict.
            filename: Output filename (should end in .json).
            indent: JSON indentation.

        Returns:
            The output filename.
        """
        payload = data.to_dict() if hasattr(data, "to_dict") else data
        output_path = Path(filename)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(payload, indent=indent, sort_keys=True), encoding="utf-8"
        )
        return filename

    def save_png(
        self,
        layout: LayoutResult,
        filename: str,
        theme: Theme = DEFAULT_THEME,
        scale: int = 2,
        font: Optional[str] = None,
    ) -> str:
        """
        Save a layout as a high-resolution PNG image.

        Args:
            layout: The positioned diagram.
            filename: Output filename (should end in .png).
            theme: Colours and font sizes.
            scale: Resolution multiplier for crisp output (default 2 for retina).
            font: Font path to use (overrides default_font if provided).

        Returns:
            The output filename.

        Example:
            >>> exporter = DiagramExporter()
            >>> exporter.save_png(compute_layout(data), "timeline.png", scale=3)
        """
        renderer = PNGRenderer(theme=theme, scale=scale, font_path=font or self.default_font)
        output_path = Path(filename)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        renderer.save(layout, str(output_path))
        return filename
