"""
SVG renderer.

Draws a LayoutResult as standalone SVG markup. Every colour, stroke and font
comes from ``Theme.resolve``; geometry comes only from the layout. Output is
deterministic: identical inputs produce byte-identical markup.
"""

import xml.etree.ElementTree as ET
from typing import Dict, Iterable, Optional

from .layout import EdgeLayout, LayoutResult, LineLayout, NodeLayout, TextLayout
from .theme import DEFAULT_THEME, Theme, validate_theme

SVG_NS = "http://www.w3.org/2000/svg"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
ARROW_ROLES = ("edge", "message", "reply", "dependency")


def fmt(value: float) -> str:
    """Format a coordinate with at most two decimals and no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def points_attr(points: Iterable) -> str:
    return " ".join(f"{fmt(x)},{fmt(y)}" for x, y in points)


class SvgRenderer:
    """
    Render layouts to SVG.

    Example:
        >>> from docflow.layout import compute_layout
        >>> svg = SvgRenderer().render(compute_layout(data))
    """

    def __init__(self, theme: Theme = DEFAULT_THEME):
        self.theme = validate_theme(theme)

    def render(self, layout: LayoutResult) -> str:
        """Render a layout to an SVG document string."""
        return self.to_string(self.build(layout))

    def to_string(self, root: ET.Element) -> str:
        return XML_DECLARATION + ET.tostring(root, encoding="unicode")

    def build(self, layout: LayoutResult, transform: Optional[str] = None) -> ET.Element:
        """
        Build the SVG element tree for a layout.

        Args:
            layout: The positioned diagram.
            transform: Optional transform for the viewport group.

        Returns:
            The root ``<svg>`` element.
        """
        width, height = fmt(layout.width), fmt(layout.height)
        root = ET.Element(
            "svg",
            {
                "xmlns": SVG_NS,
                "width": width,
                "height": height,
                "viewBox": f"0 0 {width} {height}",
                "class": f"docflow docflow-{layout.kind.value}",
                "data-kind": layout.kind.value,
                "font-family": self.theme.fonts.family,
            },
        )
        ET.SubElement(root, "title").text = layout.title or ""
        self._defs(root)

        background = self.theme.resolve("background")
        ET.SubElement(
            root,
            "rect",
            {"class": "df-background", "x": "0", "y": "0", "width": width,
             "height": height, "fill": background.fill},
        )

        viewport_attrs = {"id": "df-viewport", "class": "df-viewport"}
        if transform:
            viewport_attrs["transform"] = transform
        viewport = ET.SubElement(root, "g", viewport_attrs)

        for line in layout.lines:
            self._line(viewport, line)
        for decoration in layout.decorations:
            group = ET.SubElement(viewport, "g", {"class": f"df-decoration df-{decoration.role}"})
            self._shape(group, decoration)
        for edge in layout.edges:
            self._edge(viewport, edge)
        for node in layout.nodes.values():
            self._node(viewport, node)
        for text in layout.texts:
            self._text(viewport, text)
        return root

    def _defs(self, root: ET.Element) -> None:
        defs = ET.SubElement(root, "defs")
        for role in ARROW_ROLES:
            style = self.theme.resolve(role)
            marker = ET.SubElement(
                defs,
                "marker",
                {
                    "id": f"df-arrow-{role}",
                    "viewBox": "0 0 10 10",
                    "refX": "9",
                    "refY": "5",
                    "markerWidth": "8",
                    "markerHeight": "8",
                    "orient": "auto-start-reverse",
                },
            )
            ET.SubElement(marker, "path", {"d": "M 0 0 L 10 5 L 0 10 z", "fill": style.stroke})

    def _line(self, parent: ET.Element, line: LineLayout) -> None:
        style = self.theme.resolve(line.role)
        attrs = {
            "class": f"df-{line.role}",
            "x1": fmt(line.x1),
            "y1": fmt(line.y1),
            "x2": fmt(line.x2),
            "y2": fmt(line.y2),
            "stroke": style.stroke,
            "stroke-width": fmt(style.stroke_width),
        }
        if line.dashed:
            attrs["stroke-dasharray"] = "6,4"
        ET.SubElement(parent, "line", attrs)

    def _edge(self, parent: ET.Element, edge: EdgeLayout) -> None:
        style = self.theme.resolve(edge.role)
        attrs = {
            "class": f"df-{edge.role}",
            "data-source": edge.source,
            "data-target": edge.target,
            "points": points_attr(edge.points),
            "fill": "none",
            "stroke": style.stroke,
            "stroke-width": fmt(style.stroke_width),
        }
        if edge.dashed:
            attrs["stroke-dasharray"] = "6,4"
        if edge.arrow:
            attrs["marker-end"] = f"url(#df-arrow-{edge.role})"
        ET.SubElement(parent, "polyline", attrs)

    def _node(self, parent: ET.Element, node: NodeLayout) -> None:
        group = ET.SubElement(
            parent,
            "g",
            {"class": f"df-entity df-{node.role}", "data-entity-id": node.id},
        )
        ET.SubElement(group, "title").text = node.label
        self._shape(group, node)
        if node.progress:
            progress = self.theme.resolve("task-progress")
            ET.SubElement(
                group,
                "rect",
                {
                    "class": "df-task-progress",
                    "x": fmt(node.x),
                    "y": fmt(node.y),
                    "width": fmt(node.width * min(node.progress, 1.0)),
                    "height": fmt(node.height),
                    "rx": "3",
                    "fill": progress.fill,
                    "fill-opacity": "0.8",
                },
            )

    def _shape(self, parent: ET.Element, node: NodeLayout) -> None:
        style = self.theme.resolve(node.role)
        paint = {
            "fill": style.fill,
            "stroke": style.stroke,
            "stroke-width": fmt(style.stroke_width),
        }
        if node.shape == "circle":
            ET.SubElement(
                parent,
                "ellipse",
                {"cx": fmt(node.cx), "cy": fmt(node.cy), "rx": fmt(node.width / 2),
                 "ry": fmt(node.height / 2), **paint},
            )
        elif node.shape == "diamond":
            points = [
                (node.cx, node.y),
                (node.right, node.cy),
                (node.cx, node.bottom),
                (node.x, node.cy),
            ]
            ET.SubElement(parent, "polygon", {"points": points_attr(points), **paint})
        else:
            radius = {"rounded": 10, "bar": 3, "cylinder": node.height / 4}.get(node.shape, 0)
            attrs = {
                "x": fmt(node.x),
                "y": fmt(node.y),
                "width": fmt(node.width),
                "height": fmt(node.height),
            }
            if radius:
                attrs["rx"] = fmt(radius)
            ET.SubElement(parent, "rect", {**attrs, **paint})

    def _text(self, parent: ET.Element, text: TextLayout) -> None:
        style = self.theme.resolve(text.role)
        attrs: Dict[str, str] = {
            "x": fmt(text.x),
            "y": fmt(text.y),
            "fill": style.text,
            "font-size": str(style.font_size),
        }
        if text.anchor != "start":
            attrs["text-anchor"] = text.anchor
        if style.font_weight != "normal":
            attrs["font-weight"] = style.font_weight
        ET.SubElement(parent, "text", attrs).text = text.text


def render_svg(layout: LayoutResult, theme: Theme = DEFAULT_THEME) -> str:
    """Convenience wrapper around SvgRenderer(theme).render(layout)."""
    return SvgRenderer(theme).render(layout)

