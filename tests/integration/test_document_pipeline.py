"""Integration tests: a realistic planning document through the whole pipeline."""

import os
import tempfile
import xml.etree.ElementTree as ET

import pytest

from docflow import DiagramGenerator
from docflow.interaction import InteractionSession
from docflow.models import NotationKind

NS = "{http://www.w3.org/2000/svg}"


@pytest.fixture
def result(mixed_document):
    return DiagramGenerator().generate(mixed_document)


class TestMixedDocument:
    """A document holding a timeline, a schedule, steps, a flowchart and a team."""

    def test_diagrams_in_document_order(self, result):
        assert [d.kind for d in result.diagrams] == [
            NotationKind.TIMELINE,
            NotationKind.GANTT,
            NotationKind.TEXT_FLOW,
            NotationKind.FLOWCHART,
            NotationKind.ORG_CHART,
        ]
        starts = [d.block.start for d in result.diagrams]
        assert starts == sorted(starts)

    def test_no_warnings(self, result):
        assert result.warnings == []
        assert all(d.warnings == [] for d in result.diagrams)

    def test_headings_become_titles(self, result):
        titles = {d.kind: d.data.title for d in result.diagrams}
        assert titles[NotationKind.TIMELINE] == "Milestones"
        assert titles[NotationKind.TEXT_FLOW] == "Release process"
        assert titles[NotationKind.ORG_CHART] == "Team"

    def test_timeline_content(self, result):
        events = result.diagrams[0].data.events
        assert [e.title for e in events] == ["Kickoff", "Design review", "Launch"]
        assert [e.milestone for e in events] == [False, False, True]

    def test_schedule_content(self, result):
        tasks = result.diagrams[1].data.tasks
        assert [(t.id, t.assignee) for t in tasks] == [("design", "Ann"), ("build", "Bob")]

    def test_steps_chained(self, result):
        data = result.diagrams[2].data
        assert [n.label for n in data.nodes] == [
            "Freeze the branch",
            "Run the test suite",
            "Tag the release",
        ]
        assert [(e.from_id, e.to_id) for e in data.edges] == [
            ("step-1", "step-2"),
            ("step-2", "step-3"),
        ]

    def test_flowchart_loop(self, result):
        data = result.diagrams[3].data
        assert data.get_node("B").label == "Tests pass?"
        assert [(e.from_id, e.to_id, e.label) for e in data.edges] == [
            ("A", "B", None),
            ("B", "C", "yes"),
            ("B", "A", "no"),
        ]

    def test_org_chart_hierarchy(self, result):
        data = result.diagrams[4].data
        assert data.metadata["root"] == "dana-cole"
        assert [(e.from_id, e.to_id) for e in data.edges] == [
            ("dana-cole", "ann-wu"),
            ("dana-cole", "bob-li"),
        ]
        assert data.get_node("ann-wu").category == "Designer"

    def test_every_svg_parses(self, result):
        for diagram in result.diagrams:
            root = ET.fromstring(diagram.svg.encode("utf-8"))
            assert root.get("data-kind") == diagram.kind.value
            ids = {
                g.get("data-entity-id")
                for g in root.iter(f"{NS}g")
                if g.get("data-entity-id")
            }
            assert ids

    def test_save_all(self, mixed_document):
        with tempfile.TemporaryDirectory() as directory:
            paths = DiagramGenerator().save_svg(mixed_document, directory, prefix="plan")
            assert [os.path.basename(p) for p in paths] == [
                "plan-1-timeline.svg",
                "plan-2-gantt.svg",
                "plan-3-textFlow.svg",
                "plan-4-flowchart.svg",
                "plan-5-orgChart.svg",
            ]


class TestInteractiveDocument:
    """The same document rendered with interaction enabled."""

    def test_every_svg_bound(self, mixed_document, interactive_theme):
        result = DiagramGenerator(theme=interactive_theme).generate(mixed_document)
        for diagram in result.diagrams:
            assert 'data-interactive="true"' in diagram.svg
            assert 'id="df-bindings"' in diagram.svg

    def test_edit_extracted_schedule(self, mixed_document, interactive_theme):
        generator = DiagramGenerator(theme=interactive_theme)
        gantt = generator.extract(mixed_document, allowed_kinds="gantt").diagrams[0]
        session = InteractionSession(gantt.data, interactive_theme)

        result = session.drag("design", dx=-8)
        assert result.days == -2
        assert result.affected_ids == ["design", "build"]
        assert result.warnings == []

        detail = session.click(*_center(session, "build"))
        assert detail.fields["start"] == "2024-02-21"


def _center(session, entity_id):
    node = session.layout.nodes[entity_id]
    return node.cx, node.cy
