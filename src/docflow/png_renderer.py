"""
PNG Renderer module.

Rasterises the same LayoutResult the SVG renderer draws, for print
pipelines that need a byte stream rather than markup.
"""

import io
import math
import os
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .layout import EdgeLayout, LayoutResult, LineLayout, NodeLayout, TextLayout
from .theme import DEFAULT_THEME, Theme, validate_theme

ANCHORS = {"start": "ls", "middle": "ms", "end": "rs"}


class PNGRenderer:
    """Renders layouts as PNG images with theme colours."""

    def __init__(
        self,
        theme: Theme = DEFAULT_THEME,
        scale: int = 2,  # For high-resolution output
        font_path: Optional[str] = None,  # Custom font path
    ):
        self.theme = validate_theme(theme)
        self.scale = scale
        self.font_path = font_path
        self._fonts: Dict[int, ImageFont.ImageFont] = {}

    def _get_font(self, size: int) -> ImageFont.ImageFont:
        """Get a font for rendering text at a theme font size."""
        if size in self._fonts:
            return self._fonts[size]

        font_size = size * self.scale
        font_options: List[str] = []
        if self.font_path:
            font_options.append(self.font_path)
        # First family in the theme's font stack, e.g. "Arial"
        family = self.theme.fonts.family.split(",")[0].strip().strip("\"'")
        if family:
            font_options.append(family)
        font_options.extend(
            [
                "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
                "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
                "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
                "DejaVuSans.ttf",
                "/System/Library/Fonts/Helvetica.ttc",
                "C:/Windows/Fonts/arial.ttf",
            ]
        )

        for path in font_options:
            if os.path.isabs(path) and not os.path.exists(path):
                continue
            try:
                self._fonts[size] = ImageFont.truetype(path, font_size)
                return self._fonts[size]
            except OSError:
                continue

        # Fallback to default font
        try:
            self._fonts[size] = ImageFont.load_default(size=font_size)
        except TypeError:
            # Older Pillow versions don't support size parameter
            self._fonts[size] = ImageFont.load_default()
        return self._fonts[size]

    def _xy(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self.scale, y * self.scale)

    def render(self, layout: LayoutResult) -> Image.Image:
        """
        Render a layout as an image.

        Args:
            layout: The positioned diagram.

        Returns:
            An RGB PIL image, ``scale`` times the layout size.
        """
        size = (
            max(1, int(math.ceil(layout.width * self.scale))),
            max(1, int(math.ceil(layout.height * self.scale))),
        )
        img = Image.new("RGB", size, self.theme.resolve("background").fill)
        draw = ImageDraw.Draw(img)

        for line in layout.lines:
            self._draw_line(draw, line)
        for decoration in layout.decorations:
            self._draw_shape(draw, decoration)
        for edge in layout.edges:
            self._draw_edge(draw, edge)
        for node in layout.nodes.values():
            self._draw_shape(draw, node)
            if node.progress:
                fill = self.theme.resolve("task-progress").fill
                draw.rectangle(
                    [self._xy(node.x, node.y),
                     self._xy(node.x + node.width * min(node.progress, 1.0), node.bottom)],
                    fill=fill,
                )
        for text in layout.texts:
            self._draw_text(draw, text)
        return img

    def to_bytes(self, layout: LayoutResult) -> bytes:
        """Render a layout and return PNG-encoded bytes."""
        buffer = io.BytesIO()
        self.render(layout).save(buffer, "PNG")
        return buffer.getvalue()

    def save(self, layout: LayoutResult, output_path: str = "diagram.png") -> str:
        """
        Render the layout and save it as a PNG file.

        Returns:
            Path to the saved PNG file
        """
        self.render(layout).save(output_path, "PNG")
        return output_path

    def _width(self, stroke_width: float) -> int:
        return max(1, int(round(stroke_width * self.scale)))

    def _draw_line(self, draw: ImageDraw.ImageDraw, line: LineLayout) -> None:
        style = self.theme.resolve(line.role)
        if style.stroke == "none" or style.stroke_width <= 0:
            return
        points = [self._xy(line.x1, line.y1), self._xy(line.x2, line.y2)]
        self._polyline(draw, points, style.stroke, self._width(style.stroke_width), line.dashed)

    def _draw_edge(self, draw: ImageDraw.ImageDraw, edge: EdgeLayout) -> None:
        style = self.theme.resolve(edge.role)
        points = [self._xy(x, y) for x, y in edge.points]
        self._polyline(draw, points, style.stroke, self._width(style.stroke_width), edge.dashed)
        if edge.arrow and len(points) >= 2:
            self._draw_arrowhead(draw, points[-2], points[-1], style.stroke)

    def _polyline(self, draw, points, color: str, width: int, dashed: bool) -> None:
        for p1, p2 in zip(points, points[1:]):
            if dashed:
                self._draw_dashed(draw, p1, p2, color, width)
            else:
                draw.line([p1, p2], fill=color, width=width)

    def _draw_dashed(self, draw, p1, p2, color: str, width: int) -> None:
        dash, gap = 6 * self.scale, 4 * self.scale
        length = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
        if length == 0:
            return
        ux, uy = (p2[0] - p1[0]) / length, (p2[1] - p1[1]) / length
        position = 0.0
        while position < length:
            end = min(position + dash, length)
            draw.line(
                [(p1[0] + ux * position, p1[1] + uy * position),
                 (p1[0] + ux * end, p1[1] + uy * end)],
                fill=color,
                width=width,
            )
            position += dash + gap

    def _draw_arrowhead(
        self,
        draw: ImageDraw.ImageDraw,
        from_point: Tuple[float, float],
        to_point: Tuple[float, float],
        color: str,
    ):
        """Draw an arrowhead at the end of a line."""
        x1, y1 = from_point
        x2, y2 = to_point
        if (x1, y1) == (x2, y2):
            return

        arrow_size = 8 * self.scale

        # Calculate angle
        angle = math.atan2(y2 - y1, x2 - x1)

        # Calculate arrowhead points
        angle1 = angle + math.pi * 0.8
        angle2 = angle - math.pi * 0.8

        ax1 = x2 + arrow_size * math.cos(angle1)
        ay1 = y2 + arrow_size * math.sin(angle1)
        ax2 = x2 + arrow_size * math.cos(angle2)
        ay2 = y2 + arrow_size * math.sin(angle2)

        # Draw filled arrowhead
        draw.polygon([(x2, y2), (ax1, ay1), (ax2, ay2)], fill=color)

    def _draw_shape(self, draw: ImageDraw.ImageDraw, node: NodeLayout) -> None:
        style = self.theme.resolve(node.role)
        fill = None if style.fill == "none" else style.fill
        outline = None if style.stroke == "none" else style.stroke
        width = self._width(style.stroke_width) if style.stroke_width > 0 else 0
        box = [self._xy(node.x, node.y), self._xy(node.right, node.bottom)]

        if node.shape == "circle":
            draw.ellipse(box, fill=fill, outline=outline, width=width)
        elif node.shape == "diamond":
            points = [
                self._xy(node.cx, node.y),
                self._xy(node.right, node.cy),
                self._xy(node.cx, node.bottom),
                self._xy(node.x, node.cy),
            ]
            draw.polygon(points, fill=fill, outline=outline)
        elif node.shape in ("rounded", "bar", "cylinder"):
            radius = {"rounded": 10, "bar": 3, "cylinder": node.height / 4}[node.shape]
            draw.rounded_rectangle(
                box, radius=radius * self.scale, fill=fill, outline=outline, width=width
            )
        else:
            draw.rectangle(box, fill=fill, outline=outline, width=width)

    def _draw_text(self, draw: ImageDraw.ImageDraw, text: TextLayout) -> None:
        style = self.theme.resolve(text.role)
        font = self._get_font(style.font_size)
        draw.text(
            self._xy(text.x, text.y),
            text.text,
            fill=style.text,
            font=font,
            anchor=ANCHORS.get(text.anchor, "ls"),
        )


def render_to_png(layout: LayoutResult, output_path: str = "diagram.png", **kwargs) -> str:
    """
    Convenience function to render a layout to PNG.

    Args:
        layout: LayoutResult from compute_layout
        output_path: Path to save the PNG file
        **kwargs: Additional parameters for PNGRenderer

    Returns:
        Path to the saved PNG file
    """
    renderer = PNGRenderer(**kwargs)
    return renderer.save(layout, output_path)
