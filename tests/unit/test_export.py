"""Unit tests for the file exporter."""

import json
import os
import tempfile

from PIL import Image

from docflow.export import DiagramExporter
from docflow.layout import compute_layout
from docflow.renderer import render_svg


class TestDiagramExporter:
    """Tests for DiagramExporter."""

    def test_save_svg(self, timeline_data):
        svg = render_svg(compute_layout(timeline_data))
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "timeline.svg")
            assert DiagramExporter().save_svg(svg, filename) == filename
            with open(filename, encoding="utf-8") as handle:
                assert handle.read() == svg

    def test_creates_parent_directories(self, timeline_data):
        svg = render_svg(compute_layout(timeline_data))
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "nested", "deeper", "timeline.svg")
            DiagramExporter().save_svg(svg, filename)
            assert os.path.exists(filename)

    def test_save_json_uses_to_dict(self, gantt_data):
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "plan.json")
            DiagramExporter().save_json(gantt_data, filename)
            with open(filename, encoding="utf-8") as handle:
                payload = json.load(handle)
        assert payload == gantt_data.to_dict()
        assert payload["tasks"][1]["dependencies"] == ["design"]

    def test_save_json_plain_dict(self):
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "data.json")
            DiagramExporter().save_json({"b": 1, "a": 2}, filename, indent=None)
            with open(filename, encoding="utf-8") as handle:
                assert handle.read() == '{"a": 2, "b": 1}'

    def test_save_png(self, gantt_data):
        layout = compute_layout(gantt_data)
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "plan.png")
            assert DiagramExporter().save_png(layout, filename, scale=1) == filename
            with Image.open(filename) as image:
                assert image.format == "PNG"
                assert image.width >= int(layout.width)
