"""Unit tests for the models module."""

import datetime

import pytest

from docflow.models import (
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
    unique_id,
)


class TestNotationKind:
    """Tests for NotationKind."""

    def test_coerce_string(self):
        """Kind names coerce to enum members."""
        assert NotationKind.coerce("textFlow") is NotationKind.TEXT_FLOW
        assert NotationKind.coerce("gantt") is NotationKind.GANTT

    def test_coerce_member(self):
        """Enum members pass through unchanged."""
        assert NotationKind.coerce(NotationKind.SEQUENCE) is NotationKind.SEQUENCE

    def test_coerce_unknown(self):
        """Unknown kinds raise ContractError."""
        with pytest.raises(ContractError, match="Unsupported notation kind"):
            NotationKind.coerce("venn")

    def test_contract_error_is_value_error(self):
        """ContractError can be caught as ValueError."""
        with pytest.raises(ValueError):
            NotationKind.coerce("venn")


class TestPriority:
    """Tests for Priority.parse."""

    def test_parse_case_insensitive(self):
        assert Priority.parse(" High ") is Priority.HIGH

    def test_parse_unknown(self):
        assert Priority.parse("urgent") is None
        assert Priority.parse(None) is None


class TestDetectedBlock:
    """Tests for DetectedBlock geometry and ranking."""

    def _block(self, start, end, tier=PriorityTier.HEURISTIC, confidence=0.5):
        return DetectedBlock(
            kind=NotationKind.TIMELINE,
            raw_text="x" * (end - start),
            start=start,
            end=end,
            confidence=confidence,
            tier=tier,
        )

    def test_byte_range_and_span(self):
        block = self._block(10, 25)
        assert block.byte_range == (10, 25)
        assert block.span == 15

    def test_overlaps(self):
        """Blocks sharing a character overlap; touching blocks do not."""
        assert self._block(0, 10).overlaps(self._block(5, 15))
        assert not self._block(0, 10).overlaps(self._block(10, 20))

    def test_rank_prefers_tier_over_confidence(self):
        fence = self._block(0, 10, PriorityTier.FENCE, confidence=0.1)
        heuristic = self._block(0, 50, PriorityTier.HEURISTIC, confidence=0.9)
        assert fence.rank() > heuristic.rank()

    def test_rank_prefers_earlier_start_on_tie(self):
        assert self._block(0, 10).rank() > self._block(5, 15).rank()


class TestGanttTask:
    """Tests for GanttTask."""

    def test_duration_days(self):
        task = GanttTask(
            "t", "Task", datetime.date(2024, 1, 1), datetime.date(2024, 2, 1)
        )
        assert task.duration_days == 31

    def test_duration_without_dates(self):
        assert GanttTask("t", "Task", None, None).duration_days == 0

    def test_defaults(self):
        task = GanttTask("t", "Task", None, None)
        assert task.progress == 0
        assert task.dependencies == []
        assert task.priority is Priority.MEDIUM
        assert task.milestone is False


class TestTimelineData:
    """Tests for TimelineData."""

    def test_sorted_events_is_stable(self):
        """Events on the same date keep source order."""
        same_day = datetime.date(2024, 1, 1)
        data = TimelineData(
            events=[
                TimelineEvent("late", "Late", datetime.date(2024, 6, 1)),
                TimelineEvent("first", "First", same_day),
                TimelineEvent("second", "Second", same_day),
            ]
        )
        assert [e.id for e in data.sorted_events()] == ["first", "second", "late"]

    def test_kind_and_title(self, timeline_data):
        assert timeline_data.kind is NotationKind.TIMELINE
        assert timeline_data.title == "Roadmap"

    def test_get_event(self, timeline_data):
        assert timeline_data.get_event("launch").milestone is True
        assert timeline_data.get_event("missing") is None


class TestSerialisation:
    """Tests for to_dict / diagram_from_dict."""

    def test_edge_uses_from_and_to_keys(self):
        assert Edge("a", "b", label="go").to_dict() == {
            "from": "a",
            "to": "b",
            "label": "go",
            "style": None,
        }

    def test_dates_serialise_as_iso_strings(self, gantt_data):
        payload = gantt_data.to_dict()
        assert payload["kind"] == "gantt"
        assert payload["tasks"][0]["start"] == "2024-01-01"
        assert payload["tasks"][1]["priority"] == "high"

    def test_graph_round_trip(self, flowchart_data):
        restored = diagram_from_dict(flowchart_data.to_dict())
        assert isinstance(restored, DiagramData)
        assert restored == flowchart_data

    def test_timeline_round_trip(self, timeline_data):
        assert diagram_from_dict(timeline_data.to_dict()) == timeline_data

    def test_gantt_round_trip(self, gantt_data):
        restored = diagram_from_dict(gantt_data.to_dict())
        assert isinstance(restored, GanttData)
        assert restored == gantt_data

    def test_unknown_kind(self):
        with pytest.raises(ContractError):
            diagram_from_dict({"kind": "pie"})

    def test_node_label_defaults_to_id(self):
        assert Node.from_dict({"id": "n1"}).label == "n1"


class TestUniqueId:
    """Tests for unique_id."""

    def test_free_id_unchanged(self):
        assert unique_id("build", {"design"}) == "build"

    def test_first_free_suffix(self):
        assert unique_id("build", {"build", "build-2"}) == "build-3"
