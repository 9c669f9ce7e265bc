"""End-to-end properties of extraction, from document text to SVG."""

import datetime
import json
import textwrap

import networkx as nx

from docflow import DiagramGenerator, extract_diagrams
from docflow.models import DiagramData, GanttData, NotationKind, TimelineData


def doc(text):
    return textwrap.dedent(text).lstrip("\n")


def only(result, kind):
    diagrams = [d for d in result.diagrams if d.kind is kind]
    assert len(diagrams) == 1
    return diagrams[0]


class TestDeterminism:
    """Identical input gives identical output."""

    def test_same_document_same_result(self, mixed_document):
        first = extract_diagrams(mixed_document)
        second = extract_diagrams(mixed_document)
        assert first.to_dict() == second.to_dict()
        assert [d.svg for d in first.diagrams] == [d.svg for d in second.diagrams]

    def test_separate_generators_agree(self, mixed_document):
        first = DiagramGenerator().generate(mixed_document)
        second = DiagramGenerator().generate(mixed_document)
        assert json.dumps(first.to_dict(), sort_keys=True) == json.dumps(
            second.to_dict(), sort_keys=True
        )


class TestReferentialIntegrity:
    """Every reference in an extracted diagram resolves."""

    def test_edges_and_dependencies_resolve(self, mixed_document, flowchart_fence_text):
        result = extract_diagrams(mixed_document + "\n" + flowchart_fence_text)
        for diagram in result.diagrams:
            data = diagram.data
            if isinstance(data, DiagramData):
                ids = data.node_ids()
                assert len(ids) == len(set(ids))
                for edge in data.edges:
                    assert edge.from_id in ids and edge.to_id in ids
            elif isinstance(data, GanttData):
                ids = [task.id for task in data.tasks]
                assert len(ids) == len(set(ids))
                for task in data.tasks:
                    assert set(task.dependencies) <= set(ids)

    def test_dependency_graph_is_acyclic(self):
        text = doc(
            """
            | Task | Start | End | Depends |
            |------|-------|-----|---------|
            | Alpha | 2024-01-01 | 2024-01-05 | Gamma |
            | Beta | 2024-01-06 | 2024-01-10 | Alpha |
            | Gamma | 2024-01-11 | 2024-01-15 | Beta |
            """
        )
        diagram = only(extract_diagrams(text), NotationKind.GANTT)
        graph = nx.DiGraph()
        for task in diagram.data.tasks:
            graph.add_node(task.id)
            graph.add_edges_from((dep, task.id) for dep in task.dependencies)
        assert nx.is_directed_acyclic_graph(graph)
        assert "dependency-cycle" in [w.code for w in diagram.warnings]


class TestDates:
    """Written and ISO dates normalise identically."""

    def test_written_form_matches_iso(self):
        iso = extract_diagrams("2024-01-15: Kickoff\n2024-03-01: Launch\n")
        written = extract_diagrams("January 15, 2024: Kickoff\nMarch 1, 2024: Launch\n")
        iso_events = only(iso, NotationKind.TIMELINE).data.events
        written_events = only(written, NotationKind.TIMELINE).data.events
        assert [e.date for e in written_events] == [e.date for e in iso_events]
        assert written_events[0].date == datetime.date(2024, 1, 15)

    def test_milestone_tagging(self, timeline_text):
        events = only(extract_diagrams(timeline_text), NotationKind.TIMELINE).data.events
        assert [e.milestone for e in events] == [False, True]
        assert events[1].title == "Launch"


class TestRepairs:
    """Repaired output always satisfies the schedule invariants."""

    def test_ranges_and_progress_clamped(self):
        text = doc(
            """
            | Task | Start | End | Progress |
            |------|-------|-----|----------|
            | Backwards | 2024-03-01 | 2024-02-01 | 150% |
            | Fine | 2024-01-01 | 2024-01-31 | 50% |
            """
        )
        diagram = only(extract_diagrams(text), NotationKind.GANTT)
        for task in diagram.data.tasks:
            assert task.end >= task.start
            assert 0 <= task.progress <= 100
        codes = [w.code for w in diagram.warnings]
        assert "clamped-range" in codes
        assert "progress-clamped" in codes


class TestScenarios:
    """Small documents with known results."""

    def test_two_event_timeline(self, timeline_text):
        result = extract_diagrams(timeline_text)
        assert len(result.diagrams) == 1
        data = result.diagrams[0].data
        assert isinstance(data, TimelineData)
        assert [e.date for e in data.events] == [
            datetime.date(2024, 1, 15),
            datetime.date(2024, 3, 1),
        ]

    def test_single_gantt_row(self):
        text = "| Task | Start | End |\n|---|---|---|\n| Build | 2024-01-01 | 2024-02-01 |\n"
        (task,) = only(extract_diagrams(text), NotationKind.GANTT).data.tasks
        assert task.name == "Build"
        assert task.duration_days == 31

    def test_two_events_with_milestone(self):
        result = extract_diagrams("2024-01-15: Kickoff\n2024-02-01: Phase1 Complete [milestone]")
        (diagram,) = result.diagrams
        events = diagram.data.events
        assert [e.date for e in events] == [datetime.date(2024, 1, 15), datetime.date(2024, 2, 1)]
        assert [e.milestone for e in events] == [False, True]
        assert events[1].title == "Phase1 Complete"

    def test_headerless_gantt_row(self):
        (task,) = only(
            extract_diagrams("Design | 2024-01-15 | 2024-02-15 | Sarah"), NotationKind.GANTT
        ).data.tasks
        assert (task.start, task.end) == (datetime.date(2024, 1, 15), datetime.date(2024, 2, 15))
        assert task.assignee == "Sarah"
        assert task.duration_days == 31

    def test_flowchart_fence_hides_table_inside(self):
        text = doc(
            """
            ```flowchart
            A[Plan] --> B[Build]
            Design | 2024-01-15 | 2024-02-15 | Sarah
            ```
            """
        )
        result = extract_diagrams(text)
        assert [d.kind for d in result.diagrams] == [NotationKind.FLOWCHART]
        assert result.diagrams[0].data.node_ids() == ["A", "B"]

    def test_fence_beats_overlapping_table(self):
        text = doc(
            """
            ```gantt
            | Task | Start | End |
            | Build | 2024-01-01 | 2024-02-01 |
            ```
            """
        )
        result = extract_diagrams(text)
        assert len(result.diagrams) == 1
        assert result.diagrams[0].block.label == "gantt"

    def test_unterminated_fence_does_not_hide_other_diagrams(
        self, timeline_text, gantt_table_text
    ):
        text = timeline_text + "\n" + gantt_table_text + "\n```mermaid\nflowchart TD\n"
        result = extract_diagrams(text)
        assert [d.kind for d in result.diagrams] == [NotationKind.TIMELINE, NotationKind.GANTT]
        assert [w.code for w in result.warnings] == ["unterminated-fence"]

    def test_empty_document(self):
        for text in ("", "   \n\n", "Just some prose without any structure."):
            result = extract_diagrams(text)
            assert result.diagrams == []
            assert result.warnings == []

    def test_sequence_fence(self, sequence_fence_text):
        data = only(extract_diagrams(sequence_fence_text), NotationKind.SEQUENCE).data
        assert [n.label for n in data.nodes] == ["User", "Server"]
        assert [e.style for e in data.edges][-1] == "reply"

    def test_to_dict_shape(self, gantt_table_text):
        payload = extract_diagrams(gantt_table_text).to_dict()
        (diagram,) = payload["diagrams"]
        assert diagram["kind"] == "gantt"
        assert diagram["data"]["tasks"][0] == {
            "id": "design",
            "name": "Design",
            "start": "2024-01-01",
            "end": "2024-01-10",
            "progress": 100,
            "dependencies": [],
            "assignee": "Ann",
            "priority": "medium",
            "milestone": False,
        }
        assert payload["warnings"] == []


class TestMalformedContent:
    """Odd document content is skipped, never fatal."""

    def test_duration_past_calendar(self):
        result = extract_diagrams(
            "- Build from 2024-01-01 for 99999999 days\n- Test from 2024-02-01 to 2024-03-01\n"
        )
        tasks = [t.name for d in result.diagrams if d.kind is NotationKind.GANTT for t in d.data.tasks]
        assert tasks == ["Test"]

    def test_mermaid_duration_past_calendar(self):
        text = doc(
            """
            ```mermaid
            gantt
                Build :b1, 9999-12-01, 60d
                Test :t1, 2024-01-01, 5d
            ```
            """
        )
        diagram = only(extract_diagrams(text), NotationKind.GANTT)
        assert [t.id for t in diagram.data.tasks] == ["t1"]
        assert [w.code for w in diagram.warnings] == ["skipped-line"]

    def test_unicode_whitespace_indent(self):
        result = extract_diagrams("## Team\n- CEO\n  - CTO\n\u3000- Dev\n")
        data = only(result, NotationKind.ORG_CHART).data
        assert [(e.from_id, e.to_id) for e in data.edges] == [("ceo", "cto"), ("ceo", "dev")]
