"""Unit tests for validation and repair."""

import datetime

import networkx as nx
import pytest

from docflow.models import (
    ContractError,
    DiagramData,
    Edge,
    GanttData,
    GanttTask,
    Node,
    NotationKind,
    TimelineData,
    TimelineEvent,
)
from docflow.validation import ValidationWarning, validate

D = datetime.date


def task(task_id, start, end, dependencies=(), progress=0):
    return GanttTask(
        task_id,
        task_id.title(),
        start,
        end,
        progress=progress,
        dependencies=list(dependencies),
    )


def codes(result):
    return [warning.code for warning in result.warnings]


class TestValidationWarning:
    """Tests for ValidationWarning."""

    def test_str(self):
        warning = ValidationWarning("duplicate-id", "Renamed", "a-2")
        assert str(warning) == "[duplicate-id] Renamed"

    def test_to_dict(self):
        assert ValidationWarning("x", "y").to_dict() == {
            "code": "x",
            "message": "y",
            "element_id": None,
        }


class TestValidateDiagram:
    """Tests for graph diagrams."""

    def test_clean_diagram_unchanged(self, flowchart_data):
        result = validate(flowchart_data)
        assert result.warnings == []
        assert result.data == flowchart_data

    def test_duplicate_node_renamed(self):
        data = DiagramData(
            kind=NotationKind.FLOWCHART,
            nodes=[Node("a", "First"), Node("a", "Second")],
        )
        result = validate(data)
        assert result.data.node_ids() == ["a", "a-2"]
        assert codes(result) == ["duplicate-id"]
        assert result.warnings[0].element_id == "a-2"

    def test_dangling_edge_removed(self):
        data = DiagramData(
            kind=NotationKind.FLOWCHART,
            nodes=[Node("a", "A")],
            edges=[Edge("a", "ghost")],
        )
        result = validate(data)
        assert result.data.edges == []
        assert codes(result) == ["dangling-edge"]
        assert result.warnings[0].element_id == "ghost"

    def test_not_a_diagram(self):
        with pytest.raises(ContractError, match="Cannot validate"):
            validate({"kind": "flowchart"})


class TestValidateTimeline:
    """Tests for timelines."""

    def test_invalid_date_dropped(self):
        data = TimelineData(
            events=[
                TimelineEvent("e1", "Kickoff", D(2024, 1, 15)),
                TimelineEvent("e2", "Impossible", None),
            ]
        )
        result = validate(data)
        assert [e.id for e in result.data.events] == ["e1"]
        assert codes(result) == ["invalid-date"]

    def test_duplicate_event_ids(self):
        data = TimelineData(
            events=[
                TimelineEvent("e1", "One", D(2024, 1, 1)),
                TimelineEvent("e1", "Two", D(2024, 1, 2)),
            ]
        )
        assert [e.id for e in validate(data).data.events] == ["e1", "e1-2"]


class TestValidateGantt:
    """Tests for task schedules."""

    def test_clean_schedule_unchanged(self, gantt_data):
        result = validate(gantt_data)
        assert result.warnings == []
        assert result.data == gantt_data

    def test_end_before_start_clamped(self):
        data = GanttData(tasks=[task("a", D(2024, 2, 1), D(2024, 1, 1))])
        result = validate(data)
        repaired = result.data.tasks[0]
        assert repaired.end == repaired.start == D(2024, 2, 1)
        assert codes(result) == ["clamped-range"]

    def test_progress_clamped(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 5), progress=140),
                task("b", D(2024, 1, 1), D(2024, 1, 5), progress=-5),
            ]
        )
        result = validate(data)
        assert [t.progress for t in result.data.tasks] == [100, 0]
        assert codes(result) == ["progress-clamped", "progress-clamped"]

    def test_undated_task_dropped(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 5)),
                task("b", None, D(2024, 1, 5), dependencies=["a"]),
            ]
        )
        result = validate(data)
        assert [t.id for t in result.data.tasks] == ["a"]
        assert codes(result) == ["invalid-date"]

    def test_dependency_on_dropped_task_removed(self):
        data = GanttData(
            tasks=[
                task("a", None, None),
                task("b", D(2024, 1, 1), D(2024, 1, 5), dependencies=["a"]),
            ]
        )
        result = validate(data)
        assert result.data.get_task("b").dependencies == []
        assert codes(result) == ["invalid-date", "dangling-dependency"]

    def test_self_dependency_is_a_cycle(self):
        data = GanttData(tasks=[task("a", D(2024, 1, 1), D(2024, 1, 5), dependencies=["a"])])
        result = validate(data)
        assert result.data.tasks[0].dependencies == []
        assert codes(result) == ["dependency-cycle"]

    def test_cycle_broken_at_closing_dependency(self):
        """Searching from the first task, the dependency closing a -> b -> c -> a goes."""
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 2), dependencies=["c"]),
                task("b", D(2024, 1, 3), D(2024, 1, 4), dependencies=["a"]),
                task("c", D(2024, 1, 5), D(2024, 1, 6), dependencies=["b"]),
            ]
        )
        result = validate(data)
        assert "dependency-cycle" in codes(result)
        assert result.data.get_task("a").dependencies == []
        assert result.data.get_task("b").dependencies == ["a"]
        assert result.data.get_task("c").dependencies == ["b"]

        graph = nx.DiGraph()
        for t in result.data.tasks:
            graph.add_node(t.id)
            graph.add_edges_from((dep, t.id) for dep in t.dependencies)
        assert nx.is_directed_acyclic_graph(graph)

    def test_duplicate_dependencies_collapsed(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 2)),
                task("b", D(2024, 1, 3), D(2024, 1, 4), dependencies=["a", "a"]),
            ]
        )
        result = validate(data)
        assert result.data.get_task("b").dependencies == ["a"]
        assert result.warnings == []

    def test_overlap_reported_not_repaired(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 10)),
                task("b", D(2024, 1, 5), D(2024, 1, 20), dependencies=["a"]),
            ]
        )
        result = validate(data)
        assert codes(result) == ["dependency-overlap"]
        assert result.data.get_task("b").start == D(2024, 1, 5)

    def test_duplicate_ids_renamed_before_dependencies(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 1, 1), D(2024, 1, 2)),
                task("a", D(2024, 1, 3), D(2024, 1, 4)),
            ]
        )
        result = validate(data)
        assert [t.id for t in result.data.tasks] == ["a", "a-2"]
        assert codes(result) == ["duplicate-id"]

    def test_validation_is_idempotent(self):
        data = GanttData(
            tasks=[
                task("a", D(2024, 2, 1), D(2024, 1, 1), progress=120, dependencies=["a", "x"]),
                task("a", D(2024, 1, 1), D(2024, 1, 2)),
            ]
        )
        once = validate(data)
        twice = validate(once.data)
        assert twice.data == once.data
        assert twice.warnings == []

    def test_warnings_are_logged(self, caplog):
        data = GanttData(tasks=[task("a", D(2024, 2, 1), D(2024, 1, 1))])
        with caplog.at_level("WARNING", logger="docflow.validation"):
            validate(data)
        assert "clamped-range" in caplog.text
