"""Unit tests for DiagramGenerator."""

import json
import os
import tempfile

import pytest

from docflow import DiagramGenerator, extract_diagrams
from docflow.models import ContractError, NotationKind, TimelineData


class TestInit:
    """Tests for DiagramGenerator initialization."""

    def test_default_init(self, generator):
        assert len(generator.registry) == 6
        assert generator.layout_config.direction == "TB"

    def test_invalid_theme(self):
        with pytest.raises(ContractError, match="Expected a Theme"):
            DiagramGenerator(theme={"palette": {}})


class TestExtract:
    """Tests for DiagramGenerator.extract."""

    def test_timeline(self, generator, timeline_text):
        result = generator.extract(timeline_text)
        (diagram,) = result.diagrams
        assert diagram.kind is NotationKind.TIMELINE
        assert isinstance(diagram.data, TimelineData)
        assert diagram.svg is None
        assert diagram.warnings == []
        assert result.warnings == []

    def test_confidence_in_range(self, generator, timeline_text):
        diagram = generator.extract(timeline_text).diagrams[0]
        assert 0 < diagram.confidence <= 1

    def test_allowed_kinds_filter(self, generator, timeline_text, gantt_table_text):
        text = timeline_text + "\n" + gantt_table_text
        kinds = [d.kind for d in generator.extract(text, allowed_kinds=["gantt"]).diagrams]
        assert kinds == [NotationKind.GANTT]

    def test_unknown_kind(self, generator, timeline_text):
        with pytest.raises(ContractError):
            generator.extract(timeline_text, allowed_kinds=["venn"])

    def test_text_must_be_str(self, generator):
        with pytest.raises(ContractError):
            generator.extract(None)

    def test_unparsed_block(self, generator):
        result = generator.extract("```gantt\nnothing here\n```\n")
        assert result.diagrams == []
        assert [w.code for w in result.warnings] == ["unparsed-block"]

    def test_skipped_line(self, generator):
        result = generator.extract("```timeline\n2024-01-15: Kickoff\nno date here\n```\n")
        (diagram,) = result.diagrams
        assert [w.code for w in diagram.warnings] == ["skipped-line"]
        assert "no date here" in diagram.warnings[0].message
        assert diagram.confidence == 0.5

    def test_unterminated_fence(self, generator, timeline_text):
        result = generator.extract(timeline_text + "\n```mermaid\nflowchart TD\nA --> B\n")
        assert [d.kind for d in result.diagrams] == [NotationKind.TIMELINE]
        assert [w.code for w in result.warnings] == ["unterminated-fence"]

    def test_repairs_reported_per_diagram(self, generator):
        text = "```gantt\n| Task | Start | End |\n| Build | 2024-02-01 | 2024-01-01 |\n```\n"
        (diagram,) = generator.extract(text).diagrams
        assert [w.code for w in diagram.warnings] == ["clamped-range"]
        task = diagram.data.tasks[0]
        assert task.end == task.start


class TestGenerate:
    """Tests for DiagramGenerator.generate and render."""

    def test_every_diagram_rendered(self, generator, timeline_text, gantt_table_text):
        result = generator.generate(timeline_text + "\n" + gantt_table_text)
        assert len(result.diagrams) == 2
        for diagram in result.diagrams:
            assert diagram.svg.startswith("<?xml")
            assert f'data-kind="{diagram.kind.value}"' in diagram.svg

    def test_static_by_default(self, generator, timeline_text):
        svg = generator.generate(timeline_text).diagrams[0].svg
        assert "df-bindings" not in svg

    def test_interactive_theme(self, interactive_theme, timeline_text):
        svg = DiagramGenerator(theme=interactive_theme).generate(timeline_text).diagrams[0].svg
        assert "df-bindings" in svg
        assert 'data-interactive="true"' in svg

    def test_to_dict(self, generator, timeline_text):
        payload = generator.generate(timeline_text).to_dict()
        assert set(payload) == {"diagrams", "warnings"}
        assert set(payload["diagrams"][0]) == {"kind", "data", "warnings"}
        json.dumps(payload)

    def test_extract_diagrams_function(self, sequence_fence_text):
        result = extract_diagrams(sequence_fence_text)
        assert [d.kind for d in result.diagrams] == [NotationKind.SEQUENCE]
        assert result.diagrams[0].svg is not None


class TestSave:
    """Tests for the save helpers."""

    def test_save_svg(self, generator, timeline_text, gantt_table_text):
        with tempfile.TemporaryDirectory() as directory:
            paths = generator.save_svg(timeline_text + "\n" + gantt_table_text, directory)
            assert [os.path.basename(p) for p in paths] == [
                "diagram-1-timeline.svg",
                "diagram-2-gantt.svg",
            ]
            assert all(os.path.exists(p) for p in paths)

    def test_save_svg_prefix(self, generator, timeline_text):
        with tempfile.TemporaryDirectory() as directory:
            (path,) = generator.save_svg(timeline_text, directory, prefix="roadmap")
            assert os.path.basename(path) == "roadmap-1-timeline.svg"

    def test_save_json(self, generator, gantt_table_text):
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "result.json")
            generator.save_json(gantt_table_text, filename)
            with open(filename, encoding="utf-8") as handle:
                payload = json.load(handle)
        tasks = payload["diagrams"][0]["data"]["tasks"]
        assert [t["id"] for t in tasks] == ["design", "build"]
        assert tasks[1]["dependencies"] == ["design"]

    def test_save_png(self, generator, timeline_data):
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            output_path = f.name

        try:
            assert generator.save_png(timeline_data, output_path, scale=1) == output_path
            with open(output_path, "rb") as handle:
                assert handle.read(4) == b"\x89PNG"
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)
