"""Pytest configuration and shared fixtures for DocFlow tests."""

import datetime
import textwrap
from dataclasses import replace

import pytest

from docflow import DEFAULT_THEME, DiagramGenerator, InteractionFlags
from docflow.models import (
    DiagramData,
    Edge,
    GanttData,
    GanttTask,
    Node,
    NotationKind,
    Priority,
    TimelineData,
    TimelineEvent,
)


def doc(text):
    """Dedent a triple-quoted document."""
    return textwrap.dedent(text).lstrip("\n")


@pytest.fixture
def timeline_text():
    """Two dated events, the second a milestone."""
    return doc(
        """
        2024-01-15: Kickoff
        2024-03-01: Launch [milestone]
        """
    )


@pytest.fixture
def gantt_table_text():
    """Task table with a header row and a dependency column."""
    return doc(
        """
        | Task | Start | End | Owner | Progress | Depends |
        |------|-------|-----|-------|----------|---------|
        | Design | 2024-01-01 | 2024-01-10 | Ann | 100% | - |
        | Build | 2024-01-11 | 2024-02-10 | Bob | 40% | Design |
        """
    )


@pytest.fixture
def flowchart_fence_text():
    """Mermaid flowchart with a decision and a loop back."""
    return doc(
        """
        ```mermaid
        flowchart TD
            A[Start] --> B{Decision}
            B -->|yes| C[Done]
            B -->|no| A
        ```
        """
    )


@pytest.fixture
def sequence_fence_text():
    """Mermaid sequence diagram with a reply."""
    return doc(
        """
        ```mermaid
        sequenceDiagram
            participant U as User
            participant S as Server
            U->>S: Login request
            S-->>U: Token
        ```
        """
    )


@pytest.fixture
def mixed_document():
    """A planning document holding five different diagrams."""
    return doc(
        """
        # Q1 Launch Plan

        Some intro prose about the project. We will ship soon.

        ## Milestones

        2024-01-15: Kickoff
        2024-02-20: Design review
        2024-03-31: Launch [milestone]

        ## Schedule

        | Task | Start | End | Owner |
        |------|-------|-----|-------|
        | Design | 2024-01-15 | 2024-02-20 | Ann |
        | Build | 2024-02-21 | 2024-03-25 | Bob |

        ## Release process

        1. Freeze the branch
        2. Run the test suite
        3. Tag the release

        ```mermaid
        flowchart TD
            A[Commit] --> B{Tests pass?}
            B -->|yes| C[Deploy]
            B -->|no| A
        ```

        ## Team

        - Dana Cole: Director
          - Ann Wu: Designer
          - Bob Li: Engineer
        """
    )


@pytest.fixture
def generator():
    """Default DiagramGenerator instance."""
    return DiagramGenerator()


@pytest.fixture
def interactive_theme():
    """Theme with every interaction flag enabled."""
    return replace(
        DEFAULT_THEME,
        interaction=InteractionFlags(
            clickable=True,
            zoomable=True,
            draggable=True,
            real_time_updates=True,
            edit_mode=True,
        ),
    )


@pytest.fixture
def timeline_data():
    """Pre-built timeline, listed out of date order."""
    return TimelineData(
        events=[
            TimelineEvent("review", "Review", datetime.date(2024, 2, 1)),
            TimelineEvent("kickoff", "Kickoff", datetime.date(2024, 1, 1)),
            TimelineEvent(
                "launch", "Launch", datetime.date(2024, 3, 1), milestone=True
            ),
        ],
        metadata={"title": "Roadmap"},
    )


@pytest.fixture
def gantt_data():
    """Pre-built schedule: design, then build depending on it."""
    return GanttData(
        tasks=[
            GanttTask(
                "design",
                "Design",
                datetime.date(2024, 1, 1),
                datetime.date(2024, 1, 11),
                progress=100,
            ),
            GanttTask(
                "build",
                "Build",
                datetime.date(2024, 1, 11),
                datetime.date(2024, 2, 10),
                progress=40,
                dependencies=["design"],
                assignee="Bob",
                priority=Priority.HIGH,
            ),
        ]
    )


@pytest.fixture
def flowchart_data():
    """Pre-built flowchart with a cycle C -> A."""
    return DiagramData(
        kind=NotationKind.FLOWCHART,
        nodes=[Node("A", "Start"), Node("B", "Middle"), Node("C", "End")],
        edges=[Edge("A", "B"), Edge("B", "C"), Edge("C", "A", label="retry")],
    )
