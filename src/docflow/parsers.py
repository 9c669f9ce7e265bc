"""
Per-notation parsing strategies.

Every notation is handled by one ``NotationParser`` subclass exposing the
same contract:

- ``claims_fence(info, body)``: whether a fenced block belongs to it.
- ``scan(text)``: table or line-heuristic candidates found in a document.
- ``try_parse(block_text)``: a ``ParseOutcome`` or None, never an exception.

Internally each strategy raises ``ParseError`` when a block is not its
notation at all; ``try_parse`` turns that into None. Individual malformed
lines inside a recognisable block are skipped and reported as warnings on
the outcome instead.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .dates import (
    DATE_TOKEN,
    add_days,
    find_date,
    is_date_token,
    normalize_date,
    split_leading_date,
)
from .models import (
    DetectedBlock,
    Diagram,
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
    unique_id,
)

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Raised when a block cannot be read as the strategy's notation."""

    pass


@dataclass
class ParseOutcome:
    """Result of a successful parse."""

    data: Diagram
    confidence: float
    warnings: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

MARKDOWN_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+(?P<title>.+?)\s*#*\s*$")
LABEL_HEADING = re.compile(r"^\s*(?P<title>[A-Za-z][^:|>\n]{0,60}?)\s*:\s*$")
TITLE_LINE = re.compile(r"^\s*title\s*:?\s+(?P<title>.+?)\s*$", re.IGNORECASE)
BRACKET_TAG = re.compile(r"\s*\[(?P<tag>[A-Za-z][\w :-]{0,30})\]")
BULLET = re.compile(r"^\s*[-*+•]\s+")


def slugify(text: str) -> str:
    """Lower-case, hyphen-separated id derived from free text."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "item"


def heading_title(line: str) -> Optional[str]:
    """Return the title of a Markdown heading or ``Label:`` line, else None."""
    match = MARKDOWN_HEADING.match(line) or LABEL_HEADING.match(line)
    if match:
        return match.group("title").strip()
    return None


def iter_lines(text: str) -> Iterator[Tuple[int, int, str]]:
    """Yield (start, end, line) for every line, offsets into text."""
    position = 0
    for line in text.split("\n"):
        yield position, position + len(line), line
        position += len(line) + 1


def preceding_heading(
    lines: List[Tuple[int, int, str]], first: int
) -> Tuple[int, Optional[str]]:
    """
    Find the heading introducing the run starting at ``lines[first]``.

    One blank line may separate the heading from the run.

    Returns:
        (line index, title), or (first, None) when there is no heading.
    """
    index = first - 1
    if index >= 0 and not lines[index][2].strip():
        index -= 1
    if index < 0:
        return first, None
    title = heading_title(lines[index][2])
    return (index, title) if title else (first, None)


def make_block(
    text: str,
    lines: List[Tuple[int, int, str]],
    first: int,
    last: int,
    kind: NotationKind,
    confidence: float,
    tier: PriorityTier = PriorityTier.HEURISTIC,
    label: Optional[str] = None,
) -> DetectedBlock:
    """Build a DetectedBlock covering lines[first..last] inclusive."""
    start = lines[first][0]
    end = lines[last][1]
    return DetectedBlock(
        kind=kind,
        raw_text=text[start:end],
        start=start,
        end=end,
        confidence=round(min(confidence, 1.0), 3),
        tier=tier,
        label=label,
    )


def runs(flags: List[bool]) -> Iterator[Tuple[int, int]]:
    """Yield (first, last) index pairs of consecutive True values."""
    first = None
    for index, flag in enumerate(flags):
        if flag and first is None:
            first = index
        elif not flag and first is not None:
            yield first, index - 1
            first = None
    if first is not None:
        yield first, len(flags) - 1


def first_keyword(body: str) -> str:
    """First word of the first non-blank, non-comment line of a block."""
    for line in body.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith(("%%", "//", "'")):
            return stripped.split()[0]
    return ""


def extract_tags(text: str) -> Tuple[str, List[str]]:
    """Remove bracketed tags such as ``[milestone]`` and return them."""
    tags = [match.group("tag").strip().lower() for match in BRACKET_TAG.finditer(text)]
    return BRACKET_TAG.sub("", text).strip(), tags


class NotationParser(ABC):
    """
    Base class for notation strategies.

    Subclasses set ``kind`` and ``fence_tags`` and implement ``parse``.
    ``scan`` returns no candidates unless overridden.
    """

    kind: NotationKind
    fence_tags: Tuple[str, ...] = ()
    mermaid_keywords: Tuple[str, ...] = ()

    def claims_fence(self, info: str, body: str) -> bool:
        """Return True if a fenced block with this info string is ours."""
        info = info.lower()
        if info in self.fence_tags:
            return True
        if info == "mermaid" and self.mermaid_keywords:
            return first_keyword(body) in self.mermaid_keywords
        return False

    def scan(self, text: str) -> List[DetectedBlock]:
        """Find unfenced candidates for this notation in a document."""
        return []

    def try_parse(self, block_text: str) -> Optional[ParseOutcome]:
        """
        Parse a block, returning None instead of raising on bad input.

        Args:
            block_text: The candidate's raw text.

        Returns:
            ParseOutcome, or None when the block is not this notation.
        """
        try:
            outcome = self.parse(block_text)
        except ParseError as exc:
            logger.info("%s parser rejected block: %s", self.kind.value, exc)
            return None
        for note in outcome.warnings:
            logger.debug("%s parser: %s", self.kind.value, note)
        return outcome

    @abstractmethod
    def parse(self, block_text: str) -> ParseOutcome:
        """
        Parse a block.

        Raises:
            ParseError: If the block does not contain this notation.
        """


# ---------------------------------------------------------------------------
# Flowchart
# ---------------------------------------------------------------------------


class FlowchartParser(NotationParser):
    """
    Arrow-based flowcharts.

    Accepts ``A -> B``, ``A --> B``, ``A --- B``, ``A -.-> B``, ``A ==> B``,
    ``A -->|label| B``, ``A --> B: label``, ``A -- label --> B`` and chains
    such as ``A --> B --> C``. Node shapes ``A[Process]``, ``A(Data)``,
    ``A((Start))``, ``A{Decision}`` and ``A[(Store)]`` set the node category.
    """

    kind = NotationKind.FLOWCHART
    fence_tags = ("flowchart", "flow", "graph")
    mermaid_keywords = ("flowchart", "graph")

    ARROW = re.compile(
        r"\s*(?P<arrow>-\.->|==>|-->|---|->)(?:\|(?P<label>[^|]*)\|)?\s*"
    )
    TEXT_ARROW = re.compile(r"--\s+(?P<label>[^->|][^>|]*?)\s+-->")
    MESSAGE_ARROW = re.compile(r"-{1,2}>>|\s-{1,2}[x)]\s")
    NODE = re.compile(
        r"^(?P<id>[A-Za-z0-9_][\w .'&/]*?)\s*"
        r"(?:(?P<open>\[\(|\(\(|\[\[|\{\{|\[|\(|\{)(?P<label>.*?)"
        r"(?P<close>\)\]|\)\)|\]\]|\}\}|\]|\)|\}))?\s*$"
    )
    HEADER = re.compile(r"^(?:flowchart|graph)\b", re.IGNORECASE)
    IGNORED = re.compile(
        r"^(?:subgraph|end|style|classDef|class|click|linkStyle|direction)\b"
    )
    SHAPES = {
        "[": ("rect", "process"),
        "[[": ("rect", "process"),
        "(": ("rounded", "data"),
        "((": ("circle", "start"),
        "{": ("diamond", "decision"),
        "{{": ("diamond", "decision"),
        "[(": ("cylinder", "store"),
    }
    ARROW_STYLES = {"-->": None, "->": None, "---": "line", "-.->": "dotted", "==>": "thick"}
    MAX_NODE_WORDS = 5

    def parse(self, block_text: str) -> ParseOutcome:
        nodes: Dict[str, Node] = {}
        edges: List[Edge] = []
        notes: List[str] = []
        title = None
        meaningful = 0
        recognised = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            stripped = BULLET.sub("", line).strip()
            if not stripped or stripped.startswith(("%%", "#", "//")):
                continue
            title_match = TITLE_LINE.match(stripped)
            if title_match:
                title = title_match.group("title")
                continue
            if self.HEADER.match(stripped) or self.IGNORED.match(stripped):
                continue

            meaningful += 1
            try:
                self.parse_line(stripped, nodes, edges)
                recognised += 1
            except ParseError as exc:
                notes.append(f"Line {line_num}: {exc}")

        if not nodes:
            raise ParseError("No flowchart nodes found")

        metadata = {"title": title} if title else {}
        data = DiagramData(
            kind=self.kind,
            nodes=list(nodes.values()),
            edges=edges,
            metadata=metadata,
        )
        return ParseOutcome(data, recognised / meaningful, notes)

    def parse_line(
        self, line: str, nodes: Dict[str, Node], edges: List[Edge]
    ) -> None:
        """
        Parse one statement into nodes and edges.

        Raises:
            ParseError: If the statement is neither a connection nor a node
                declaration.
        """
        if self.MESSAGE_ARROW.search(line):
            raise ParseError(f"Message arrow in flowchart statement: {line}")

        line = self.TEXT_ARROW.sub(lambda m: f"-->|{m.group('label')}|", line)
        arrows = list(self.ARROW.finditer(line))
        if not arrows:
            node_id, label, shape = self.parse_endpoint(line, require_shape=True)
            self._register(nodes, node_id, label, shape)
            return

        segments = []
        position = 0
        for arrow in arrows:
            segments.append(line[position:arrow.start()])
            position = arrow.end()
        tail, trailing_label = self._split_trailing_label(line[position:])
        segments.append(tail)

        endpoints = [self.parse_endpoint(segment) for segment in segments]
        for endpoint in endpoints:
            self._register(nodes, *endpoint)

        for index, arrow in enumerate(arrows):
            label = arrow.group("label")
            if index == len(arrows) - 1 and trailing_label:
                label = trailing_label
            edges.append(
                Edge(
                    from_id=endpoints[index][0],
                    to_id=endpoints[index + 1][0],
                    label=label.strip() if label and label.strip() else None,
                    style=self.ARROW_STYLES[arrow.group("arrow")],
                )
            )

    def parse_endpoint(
        self, segment: str, require_shape: bool = False
    ) -> Tuple[str, Optional[str], Optional[str]]:
        """Return (id, label, shape opener) for one node reference."""
        text = segment.strip()
        if not text:
            raise ParseError("Empty node reference")
        match = self.NODE.match(text)
        if not match:
            raise ParseError(f"Invalid node reference: {text}")
        node_id = match.group("id").strip()
        if len(node_id.split()) > self.MAX_NODE_WORDS:
            raise ParseError(f"Node name too long: {node_id}")
        opener = match.group("open")
        if require_shape and not opener:
            raise ParseError(f"Expected an arrow or node declaration: {text}")
        label = match.group("label")
        if label is not None:
            label = label.strip().strip("\"'") or None
        return node_id, label, opener

    def _register(
        self,
        nodes: Dict[str, Node],
        node_id: str,
        label: Optional[str],
        opener: Optional[str],
    ) -> None:
        existing = nodes.get(node_id)
        if existing is not None and opener is None:
            return
        shape, category = self.SHAPES.get(opener, ("rect", None))
        nodes[node_id] = Node(
            id=node_id,
            label=label or node_id,
            category=category,
            style={"shape": shape},
        )

    @staticmethod
    def _split_trailing_label(segment: str) -> Tuple[str, Optional[str]]:
        colon = segment.rfind(":")
        if colon == -1:
            return segment, None
        head = segment[:colon]
        balanced = all(
            head.count(open_) == head.count(close)
            for open_, close in (("[", "]"), ("(", ")"), ("{", "}"))
        )
        if not balanced:
            return segment, None
        return head, segment[colon + 1:].strip() or None

    def is_statement(self, line: str) -> bool:
        """Return True if a stand-alone document line is an arrow statement."""
        stripped = BULLET.sub("", line).strip()
        if not self.ARROW.search(stripped) or stripped.endswith("."):
            return False
        if find_date(stripped):
            return False
        try:
            self.parse_line(stripped, {}, [])
        except ParseError:
            return False
        return True

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        flags = [self.is_statement(line) for _, _, line in lines]
        blocks = []
        for first, last in runs(flags):
            count = last - first + 1
            if count == 1:
                line = lines[first][2]
                # a lone arrow in prose needs a chain or a shaped node
                if len(self.ARROW.findall(line)) < 2 and not re.search(r"[\[({]", line):
                    continue
            confidence = 0.55 + 0.05 * min(count - 1, 6)
            blocks.append(make_block(text, lines, first, last, self.kind, confidence))
        return blocks


# ---------------------------------------------------------------------------
# Sequence
# ---------------------------------------------------------------------------


class SequenceParser(NotationParser):
    """
    Sequence interactions in Mermaid or PlantUML style.

    Participants are kept in declaration order, then first-use order. Each
    message becomes an edge; dashed arrows are replies.
    """

    kind = NotationKind.SEQUENCE
    fence_tags = ("sequence", "sequencediagram", "seq")
    mermaid_keywords = ("sequenceDiagram",)

    PARTICIPANT = re.compile(
        r"^(?P<type>participant|actor|boundary|control|entity|database|collections|queue)"
        r"\s+(?P<name>\"[^\"]+\"|[\w.]+)(?:\s+as\s+(?P<alias>\"[^\"]+\"|[\w. ]+?))?\s*$",
        re.IGNORECASE,
    )
    MESSAGE = re.compile(
        r"^(?P<src>[\w.]+(?: [\w.]+)*?)\s*"
        r"(?P<arrow>-->>|->>|--\)|-\)|--x|-x|-->|->)\s*[+-]?\s*"
        r"(?P<dst>[\w.]+(?: [\w.]+)*?)\s*(?::\s*(?P<text>.*?))?\s*$"
    )
    IGNORED = re.compile(
        r"^(?:sequenceDiagram|@startuml|@enduml|autonumber|note|loop|alt|else|opt|par"
        r"|and|end|activate|deactivate|rect|critical|break|skinparam|hide|==|\.\.\.|\|\|\|)",
        re.IGNORECASE,
    )

    def claims_fence(self, info: str, body: str) -> bool:
        if super().claims_fence(info, body):
            return True
        if info.lower() in ("plantuml", "puml", "uml"):
            return any(self.MESSAGE.match(line.strip()) for line in body.split("\n"))
        return False

    def parse(self, block_text: str) -> ParseOutcome:
        participants: Dict[str, Node] = {}
        edges: List[Edge] = []
        notes: List[str] = []
        title = None
        meaningful = 0
        recognised = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            stripped = line.strip()
            if not stripped or stripped.startswith(("%%", "'", "//", "#")):
                continue
            title_match = TITLE_LINE.match(stripped)
            if title_match:
                title = title_match.group("title")
                continue

            declaration = self.PARTICIPANT.match(stripped)
            if declaration:
                node = self._participant(declaration)
                participants.setdefault(node.id, node)
                meaningful += 1
                recognised += 1
                continue

            message = self.MESSAGE.match(stripped)
            if message:
                src = message.group("src")
                dst = message.group("dst")
                for name in (src, dst):
                    participants.setdefault(name, Node(id=name, label=name, category="participant"))
                arrow = message.group("arrow")
                edges.append(
                    Edge(
                        from_id=src,
                        to_id=dst,
                        label=message.group("text") or None,
                        style="reply" if arrow.startswith("--") else None,
                    )
                )
                meaningful += 1
                recognised += 1
                continue

            if self.IGNORED.match(stripped):
                continue
            meaningful += 1
            notes.append(f"Line {line_num}: Unrecognised sequence statement: {stripped}")

        if not edges:
            raise ParseError("No sequence messages found")

        metadata = {"title": title} if title else {}
        data = DiagramData(
            kind=self.kind,
            nodes=list(participants.values()),
            edges=edges,
            metadata=metadata,
        )
        return ParseOutcome(data, recognised / meaningful, notes)

    @staticmethod
    def _participant(match: "re.Match") -> Node:
        name = match.group("name")
        alias = match.group("alias")
        category = match.group("type").lower()
        if name.startswith('"'):
            label = name.strip('"')
            node_id = alias.strip('"').strip() if alias else label
        else:
            node_id = name
            label = alias.strip('"').strip() if alias else name
        return Node(id=node_id, label=label, category=category)

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        flags = []
        for _, _, line in lines:
            stripped = line.strip()
            flags.append(
                bool(self.PARTICIPANT.match(stripped))
                or bool(self.MESSAGE.match(stripped) and ">>" in stripped)
            )
        blocks = []
        for first, last in runs(flags):
            count = last - first + 1
            if count < 2:
                continue
            confidence = 0.7 + 0.05 * min(count - 2, 4)
            blocks.append(make_block(text, lines, first, last, self.kind, confidence))
        return blocks


# ---------------------------------------------------------------------------
# Text flow
# ---------------------------------------------------------------------------


class TextFlowParser(NotationParser):
    """Numbered or bulleted steps, chained in document order."""

    kind = NotationKind.TEXT_FLOW
    fence_tags = ("textflow", "text-flow", "steps", "process")

    STEP = re.compile(
        r"^(?P<indent>\s*)(?:(?P<num>\d+)[.)]|step\s+\d+\s*[:.)-]|[-*+•])\s+(?P<text>.+?)\s*$",
        re.IGNORECASE,
    )
    NUMBERED = re.compile(r"^\s*(?:\d+[.)]|step\s+\d+\s*[:.)-])\s+\S", re.IGNORECASE)
    KEYWORDS = re.compile(
        r"\b(process|workflow|steps|procedure|method|how to|instructions|pipeline)\b",
        re.IGNORECASE,
    )

    def parse(self, block_text: str) -> ParseOutcome:
        steps: List[str] = []
        notes: List[str] = []
        title = None
        meaningful = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            if not line.strip():
                continue
            match = self.STEP.match(line)
            if match:
                steps.append(match.group("text"))
                meaningful += 1
                continue
            heading = heading_title(line)
            if heading and not steps and title is None:
                title = heading
                continue
            meaningful += 1
            notes.append(f"Line {line_num}: Not a step: {line.strip()}")

        if len(steps) < 2:
            raise ParseError("A process flow needs at least two steps")

        nodes = []
        for index, label in enumerate(steps):
            if index == 0:
                category = "start"
            elif index == len(steps) - 1:
                category = "end"
            else:
                category = "process"
            shape = "rounded" if category != "process" else "rect"
            nodes.append(
                Node(id=f"step-{index + 1}", label=label, category=category, style={"shape": shape})
            )
        edges = [
            Edge(from_id=nodes[index].id, to_id=nodes[index + 1].id)
            for index in range(len(nodes) - 1)
        ]
        metadata = {"title": title} if title else {}
        data = DiagramData(kind=self.kind, nodes=nodes, edges=edges, metadata=metadata)
        return ParseOutcome(data, len(steps) / meaningful, notes)

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        flags = [bool(self.STEP.match(line)) for _, _, line in lines]
        blocks = []
        for first, last in runs(flags):
            items = [lines[index][2] for index in range(first, last + 1)]
            indents = {len(self.STEP.match(item).group("indent")) for item in items}
            if len(indents) > 1:
                continue
            numbered = all(self.NUMBERED.match(item) for item in items)
            heading_at, heading = preceding_heading(lines, first)
            count = len(items)

            if heading and self.KEYWORDS.search(heading) and count >= 2:
                confidence = 0.85 if numbered else 0.75
                blocks.append(
                    make_block(
                        text, lines, heading_at, last, self.kind, confidence, label=heading
                    )
                )
            elif numbered and count >= 3:
                confidence = 0.55 + 0.05 * min(count - 3, 3)
                blocks.append(make_block(text, lines, first, last, self.kind, confidence))
        return blocks


# ---------------------------------------------------------------------------
# Org chart
# ---------------------------------------------------------------------------


class OrgChartParser(NotationParser):
    """
    Indentation hierarchies.

    Indentation depth (spaces, tabs counted as four spaces, or bullet nesting)
    determines the parent of each item. ``Name: Role``, ``Name - Role`` and
    ``Name (Role)`` put the role in the node category. The first zero-indent
    item is the root; later zero-indent items start further trees.
    """

    kind = NotationKind.ORG_CHART
    fence_tags = ("orgchart", "org-chart", "org", "hierarchy")

    ITEM = re.compile(r"^(?P<indent>\s*)(?P<bullet>[-*+•]\s+|\d+[.)]\s+)?(?P<text>\S.*?)\s*$")
    ROLE = re.compile(
        r"^(?P<name>[^:()]+?)\s*(?::\s*(?P<colon>.+)|\s[-–—]\s+(?P<dash>.+)|\((?P<paren>[^)]+)\))$"
    )
    KEYWORDS = re.compile(
        r"\b(team|organi[sz]ation|org chart|structure|hierarchy|reporting|leadership|reports)\b",
        re.IGNORECASE,
    )

    def parse(self, block_text: str) -> ParseOutcome:
        nodes: List[Node] = []
        edges: List[Edge] = []
        notes: List[str] = []
        title = None
        stack: List[Tuple[int, str]] = []
        taken = set()
        bulleted = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            if not line.strip():
                continue
            match = self.ITEM.match(line)
            if not nodes and title is None and not match.group("bullet"):
                heading = heading_title(line)
                if heading:
                    title = heading
                    continue

            indent = len(match.group("indent").expandtabs(4))
            name, role = self._split_role(match.group("text"))
            if not name:
                notes.append(f"Line {line_num}: Empty name")
                continue
            if match.group("bullet"):
                bulleted += 1

            node_id = unique_id(slugify(name), taken)
            taken.add(node_id)
            nodes.append(Node(id=node_id, label=name, category=role))

            while stack and indent <= stack[-1][0]:
                stack.pop()
            if stack:
                edges.append(Edge(from_id=stack[-1][1], to_id=node_id))
            stack.append((indent, node_id))

        if len(nodes) < 2 or not edges:
            raise ParseError("An org chart needs at least one parent and child")

        metadata = {"root": nodes[0].id}
        if title:
            metadata["title"] = title
        data = DiagramData(kind=self.kind, nodes=nodes, edges=edges, metadata=metadata)
        confidence = 1.0 if bulleted in (0, len(nodes)) else bulleted / len(nodes)
        return ParseOutcome(data, confidence, notes)

    def _split_role(self, text: str) -> Tuple[str, Optional[str]]:
        match = self.ROLE.match(text)
        if not match:
            return text.strip(), None
        role = match.group("colon") or match.group("dash") or match.group("paren")
        return match.group("name").strip(), role.strip() if role else None

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        flags = [bool(re.match(r"^\s*[-*+•]\s+\S", line)) for _, _, line in lines]
        blocks = []
        for first, last in runs(flags):
            items = [lines[index][2] for index in range(first, last + 1)]
            indents = [len(self.ITEM.match(item).group("indent").expandtabs(4)) for item in items]
            if len(set(indents)) < 2 or indents[0] != min(indents):
                continue
            heading_at, heading = preceding_heading(lines, first)
            if heading and self.KEYWORDS.search(heading):
                confidence = 0.8 + 0.05 * min(len(set(indents)) - 2, 2)
                blocks.append(
                    make_block(text, lines, heading_at, last, self.kind, confidence, label=heading)
                )
            elif len(items) >= 3:
                blocks.append(make_block(text, lines, first, last, self.kind, 0.5))
        return blocks


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class TimelineParser(NotationParser):
    """
    Dated event lines.

    ``2024-01-15: Kickoff``, ``January 15, 2024 - Kickoff`` and
    ``- 2024/01/15 Kickoff`` are all events. ``[milestone]`` or a
    ``Milestone:`` prefix marks a milestone; other bracketed tags set the
    category. Mermaid ``section`` lines set the category of the events that
    follow them.
    """

    kind = NotationKind.TIMELINE
    fence_tags = ("timeline", "milestones", "roadmap")
    mermaid_keywords = ("timeline",)

    MILESTONE_PREFIX = re.compile(r"^\s*(?:[-*+]\s+)?milestone\s*:?\s*", re.IGNORECASE)
    SECTION = re.compile(r"^\s*section\s+(?P<name>.+?)\s*$", re.IGNORECASE)
    SEPARATORS = " \t:-–—|,"
    RANGE_TAIL = re.compile(r"^\s*(?:-|–|to|until|through)\s*", re.IGNORECASE)
    TRAILING_PREPOSITION = re.compile(r"\s+(?:on|at|by|in)\s*$", re.IGNORECASE)
    DEADLINE = re.compile(r"\b(deadline|due)\b", re.IGNORECASE)
    KEYWORDS = re.compile(r"\b(timeline|milestones?|roadmap|history|schedule|dates)\b", re.IGNORECASE)

    def parse(self, block_text: str) -> ParseOutcome:
        events: List[TimelineEvent] = []
        notes: List[str] = []
        title = None
        section = None
        meaningful = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            stripped = line.strip()
            if not stripped or stripped.startswith(("%%", "//")):
                continue
            if stripped.lower() == "timeline":
                continue
            title_match = TITLE_LINE.match(stripped)
            if title_match:
                title = title_match.group("title")
                continue
            section_match = self.SECTION.match(stripped)
            if section_match:
                section = section_match.group("name")
                continue

            meaningful += 1
            event = self.parse_event(stripped, f"event-{len(events) + 1}", section)
            if event is None:
                heading = heading_title(stripped)
                if heading and not events and title is None:
                    title = heading
                    meaningful -= 1
                    continue
                notes.append(f"Line {line_num}: No date found: {stripped}")
                continue
            events.append(event)

        if not events:
            raise ParseError("No dated events found")

        metadata = {"title": title} if title else {}
        return ParseOutcome(TimelineData(events=events, metadata=metadata), len(events) / meaningful, notes)

    def parse_event(
        self, line: str, event_id: str, section: Optional[str] = None
    ) -> Optional[TimelineEvent]:
        """Parse one event line, or return None if it carries no date."""
        milestone = False
        prefix = self.MILESTONE_PREFIX.match(line)
        if prefix:
            milestone = True
            line = line[prefix.end():]

        leading = split_leading_date(line)
        if leading:
            token, remainder = leading
        else:
            found = find_date(line)
            if not found:
                return None
            token, start, end = found
            head = self.TRAILING_PREPOSITION.sub("", line[:start].rstrip(" (,"))
            remainder = head + " " + line[end:].lstrip(")")

        remainder, tags = extract_tags(remainder)
        category = section
        for tag in tags:
            if tag == "milestone":
                milestone = True
            elif category is None or category == section:
                category = tag

        parts = [part.strip(self.SEPARATORS) for part in re.split(r"\s+:\s+", remainder)]
        parts = [part for part in parts if part]
        title = parts[0] if parts else token
        description = " : ".join(parts[1:]) or None
        if category is None and self.DEADLINE.search(title):
            category = "deadline"

        return TimelineEvent(
            id=event_id,
            title=title,
            date=normalize_date(token),
            category=category,
            milestone=milestone,
            description=description,
        )

    def is_event_line(self, line: str) -> bool:
        """Return True if a document line starts with a single date."""
        text = self.MILESTONE_PREFIX.sub("", line, count=1)
        leading = split_leading_date(text)
        if not leading:
            return False
        remainder = leading[1]
        connector = self.RANGE_TAIL.match(remainder)
        # "2024-01-15 to 2024-02-01 ..." is a task range, not an event
        return not (connector and DATE_TOKEN.match(remainder, connector.end()))

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        flags = [self.is_event_line(line) for _, _, line in lines]
        blocks = []
        for first, last in runs(flags):
            count = last - first + 1
            confidence = 0.5 + 0.1 * min(count - 1, 3)
            heading_at, heading = preceding_heading(lines, first)
            if heading and self.KEYWORDS.search(heading):
                blocks.append(
                    make_block(
                        text, lines, heading_at, last, self.kind, confidence + 0.1, label=heading
                    )
                )
            else:
                blocks.append(make_block(text, lines, first, last, self.kind, confidence))
        return blocks


# ---------------------------------------------------------------------------
# Gantt
# ---------------------------------------------------------------------------


COLUMN_ALIASES = {
    "name": ("name", "task", "task name", "activity", "item", "work item"),
    "start": ("start", "start date", "begin", "from", "starts"),
    "end": ("end", "end date", "finish", "due", "to", "ends", "deadline"),
    "assignee": ("assignee", "owner", "resource", "assigned to", "who", "lead"),
    "progress": ("progress", "%", "% complete", "complete", "done", "status"),
    "priority": ("priority", "prio"),
    "dependencies": ("depends", "depends on", "dependencies", "predecessors", "after", "deps"),
}
DEFAULT_COLUMNS = ("name", "start", "end", "assignee", "progress", "priority", "dependencies")
# Date alternation for descriptive task lines; tokens are normalised later.
_DATE = (
    r"\d{4}[-/.]\d{1,2}[-/.]\d{1,2}"
    r"|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}"
    r"|[A-Za-z]{3,9}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
)


class GanttParser(NotationParser):
    """
    Task schedules.

    Three shapes are accepted: pipe-delimited table rows
    (``Name | Start | End | Assignee`` with optional header-mapped
    ``Progress``, ``Priority`` and ``Depends`` columns), descriptive lines
    (``Task: Build from 2024-02-01 to 2024-03-01 depends on Design``) and
    Mermaid gantt task lines (``Build :b1, after a1, 20d``).
    """

    kind = NotationKind.GANTT
    fence_tags = ("gantt", "schedule", "tasks")
    mermaid_keywords = ("gantt",)

    SEPARATOR_ROW = re.compile(r"^\s*\|?\s*:?-{2,}:?\s*(?:\|\s*:?-{2,}:?\s*)*\|?\s*$")
    RANGE = re.compile(
        r"^(?:[-*+]\s+)?(?:task\s*:?\s*)?(?P<name>.+?)\s*:?\s+"
        r"(?:from|starts?|starting|start:|begins?|on)\s*:?\s*(?P<start>" + _DATE + r")\s*,?\s*"
        r"(?:(?:to|until|through|till|-|–|ends?|end:|ending)\s*:?\s*(?P<end>" + _DATE + r")"
        r"|for\s+(?P<amount>\d+)\s*(?P<unit>days?|d|weeks?|w))"
        r"(?P<rest>.*)$",
        re.IGNORECASE,
    )
    LEADING_RANGE = re.compile(
        r"^(?:[-*+]\s+)?(?P<start>" + _DATE + r")\s*(?:to|until|through|-|–)\s*"
        r"(?P<end>" + _DATE + r")\s*[:\-–—]?\s*"
        r"(?P<name>[^:\[(,]+?)(?P<rest>\s*(?:[\[(,].*)?)$",
        re.IGNORECASE,
    )
    DEPENDS = re.compile(
        r"\b(?:depends\s+on|dependent\s+on|after|requires|blocked\s+by)\s+(?P<names>.+?)"
        r"(?=\s*(?:,\s*(?:assigned|owner|priority|progress)|\(|\[|;|\d{1,3}\s*%|$))",
        re.IGNORECASE,
    )
    ASSIGNEE = re.compile(
        r"(?:assigned\s+to|owner\s*:?|assignee\s*:?|@)\s*(?P<who>[A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*)?)"
    )
    PROGRESS = re.compile(r"(?P<value>-?\d{1,3})\s*%")
    PRIORITY = re.compile(r"\bpriority\s*:?\s*(?P<value>low|medium|high|critical)\b", re.IGNORECASE)
    DURATION = re.compile(r"^(?P<amount>\d+)\s*(?P<unit>d|days?|w|weeks?)$", re.IGNORECASE)
    MERMAID_TAGS = ("crit", "done", "active", "milestone")
    MERMAID_IGNORED = re.compile(
        r"^(?:gantt|dateFormat|axisFormat|tickInterval|excludes|includes|todayMarker|weekday)\b",
        re.IGNORECASE,
    )
    SECTION = re.compile(r"^section\s+(?P<name>.+)$", re.IGNORECASE)
    KEYWORDS = re.compile(r"\b(gantt|schedule|plan|tasks|project|milestones|work ?plan)\b", re.IGNORECASE)

    def parse(self, block_text: str) -> ParseOutcome:
        tasks: List[GanttTask] = []
        notes: List[str] = []
        title = None
        columns: Optional[Tuple[str, ...]] = None
        mermaid = first_keyword(block_text).lower() == "gantt" or bool(
            re.search(r"^\s*dateFormat\b", block_text, re.MULTILINE)
        )
        meaningful = 0

        for line_num, line in enumerate(block_text.split("\n"), 1):
            stripped = line.strip()
            if not stripped or stripped.startswith(("%%", "//")):
                continue
            title_match = TITLE_LINE.match(stripped)
            if title_match:
                title = title_match.group("title")
                continue
            if self.MERMAID_IGNORED.match(stripped) or self.SECTION.match(stripped):
                continue
            if self.SEPARATOR_ROW.match(stripped) and "|" in stripped:
                continue

            cells = self.split_row(stripped)
            if len(cells) >= 3:
                header = self.header_columns(cells)
                if header:
                    columns = header
                    continue

            meaningful += 1
            try:
                if len(cells) >= 3:
                    task = self.parse_row(cells, columns or DEFAULT_COLUMNS)
                elif mermaid and ":" in stripped:
                    task = self.parse_mermaid(stripped, tasks)
                else:
                    task = self.parse_description(stripped)
            except ParseError as exc:
                heading = heading_title(stripped)
                if heading and not tasks and title is None:
                    title = heading
                    meaningful -= 1
                    continue
                notes.append(f"Line {line_num}: {exc}")
                continue
            tasks.append(task)

        if not tasks:
            raise ParseError("No tasks found")

        metadata = {"title": title} if title else {}
        return ParseOutcome(GanttData(tasks=tasks, metadata=metadata), len(tasks) / meaningful, notes)

    # -- rows -------------------------------------------------------------

    @staticmethod
    def split_row(line: str) -> List[str]:
        """Split a pipe-delimited row, ignoring leading and trailing pipes."""
        if "|" not in line:
            return []
        text = line.strip()
        if text.startswith("|"):
            text = text[1:]
        if text.endswith("|"):
            text = text[:-1]
        return [cell.strip() for cell in text.split("|")]

    @staticmethod
    def header_columns(cells: List[str]) -> Optional[Tuple[str, ...]]:
        """Map header cells to column roles, or None if this is not a header."""
        if any(is_date_token(cell) for cell in cells):
            return None
        mapped = []
        for cell in cells:
            key = cell.lower().strip(" *_`")
            role = next(
                (name for name, aliases in COLUMN_ALIASES.items() if key in aliases),
                None,
            )
            mapped.append(role or f"extra-{len(mapped)}")
        known = [role for role in mapped if not role.startswith("extra-")]
        if "name" in known and ("start" in known or "end" in known) and len(known) >= 2:
            return tuple(mapped)
        return None

    def parse_row(self, cells: List[str], columns: Tuple[str, ...]) -> GanttTask:
        """Build a task from table cells mapped by column role."""
        values: Dict[str, str] = {}
        for role, cell in zip(columns, cells):
            values[role] = cell
        raw_name = values.get("name", "").strip()
        if not raw_name:
            raise ParseError("Empty task name")
        start_token = values.get("start", "")
        end_token = values.get("end", "")
        if not is_date_token(start_token) or not is_date_token(end_token):
            raise ParseError(f"Row without start and end dates: {' | '.join(cells)}")

        name, tags = extract_tags(raw_name)
        priority = Priority.parse(values.get("priority")) or self._tag_priority(tags)
        progress = 0
        digits = re.search(r"-?\d{1,3}", values.get("progress", ""))
        if digits:
            progress = int(digits.group(0))
        dependencies = [
            slugify(item)
            for item in re.split(r"[,;]|\band\b", values.get("dependencies", ""))
            if item.strip() and item.strip() != "-"
        ]
        assignee = values.get("assignee", "").strip() or None
        if assignee in ("-", "—"):
            assignee = None

        return GanttTask(
            id=slugify(name),
            name=name,
            start=normalize_date(start_token),
            end=normalize_date(end_token),
            progress=progress,
            dependencies=dependencies,
            assignee=assignee,
            priority=priority or Priority.MEDIUM,
            milestone="milestone" in tags,
        )

    # -- descriptive lines --------------------------------------------------

    def parse_description(self, line: str) -> GanttTask:
        """Build a task from a sentence such as ``Build from X to Y``."""
        match = self.RANGE.match(line)
        if match:
            name = match.group("name")
            start = normalize_date(match.group("start"))
            if match.group("end"):
                end = normalize_date(match.group("end"))
            else:
                amount = int(match.group("amount"))
                days = amount * 7 if match.group("unit").lower().startswith("w") else amount
                end = self._offset(start, days, line) if start else None
        else:
            match = self.LEADING_RANGE.match(line)
            if not match:
                raise ParseError(f"Not a task description: {line}")
            name = match.group("name")
            start = normalize_date(match.group("start"))
            end = normalize_date(match.group("end"))

        rest = match.group("rest") or ""
        name, tags = extract_tags(name.strip(" :-–"))
        rest, rest_tags = extract_tags(rest)
        tags += rest_tags
        if not name:
            raise ParseError(f"Task without a name: {line}")

        dependencies = []
        depends = self.DEPENDS.search(rest)
        if depends:
            dependencies = [
                slugify(item)
                for item in re.split(r",|\band\b", depends.group("names"))
                if item.strip()
            ]
        assignee = self.ASSIGNEE.search(rest)
        progress = self.PROGRESS.search(rest)
        priority = self.PRIORITY.search(rest)

        return GanttTask(
            id=slugify(name),
            name=name,
            start=start,
            end=end,
            progress=int(progress.group("value")) if progress else 0,
            dependencies=dependencies,
            assignee=assignee.group("who") if assignee else None,
            priority=(Priority.parse(priority.group("value")) if priority else None)
            or self._tag_priority(tags)
            or Priority.MEDIUM,
            milestone="milestone" in tags,
        )

    # -- mermaid ------------------------------------------------------------

    def parse_mermaid(self, line: str, previous: List[GanttTask]) -> GanttTask:
        """Build a task from a Mermaid ``Name :tags, id, start, end`` line."""
        name, _, meta = line.partition(":")
        name = name.strip()
        if not name:
            raise ParseError(f"Task without a name: {line}")
        parts = [part.strip() for part in meta.split(",") if part.strip()]
        tags = []
        while parts and parts[0].lower() in self.MERMAID_TAGS:
            tags.append(parts.pop(0).lower())

        task_id = None
        if len(parts) >= 3:
            task_id = parts.pop(0)
        elif len(parts) == 2 and not self._is_start(parts[0]):
            task_id = parts.pop(0)
            parts.insert(0, "")

        dependencies: List[str] = []
        if len(parts) >= 2 and parts[0]:
            start, dependencies = self._mermaid_start(parts[0], previous)
        elif previous:
            start = previous[-1].end
        else:
            raise ParseError(f"Task without a start date: {line}")
        end_spec = parts[-1] if parts else ""
        end = self._mermaid_end(end_spec, start, "milestone" in tags)

        return GanttTask(
            id=task_id or slugify(name),
            name=name,
            start=start,
            end=end,
            progress=100 if "done" in tags else 0,
            dependencies=dependencies,
            priority=Priority.CRITICAL if "crit" in tags else Priority.MEDIUM,
            milestone="milestone" in tags,
        )

    @staticmethod
    def _is_start(value: str) -> bool:
        return is_date_token(value) or value.lower().startswith("after ")

    def _mermaid_start(self, spec: str, previous: List[GanttTask]):
        if spec.lower().startswith("after "):
            ids = spec.split()[1:]
            ends = []
            for dep_id in ids:
                dep = next((task for task in previous if task.id == dep_id), None)
                if dep is None or dep.end is None:
                    raise ParseError(f"Unknown dependency '{dep_id}'")
                ends.append(dep.end)
            return max(ends), ids
        if not is_date_token(spec):
            raise ParseError(f"Invalid start '{spec}'")
        return normalize_date(spec), []

    def _mermaid_end(self, spec: str, start, milestone: bool):
        duration = self.DURATION.match(spec)
        if duration and start is not None:
            amount = int(duration.group("amount"))
            days = amount * 7 if duration.group("unit").lower().startswith("w") else amount
            return start if milestone else self._offset(start, days, spec)
        if is_date_token(spec):
            return normalize_date(spec)
        if milestone:
            return start
        raise ParseError(f"Invalid end '{spec}'")

    @staticmethod
    def _offset(start, days: int, source: str):
        try:
            return add_days(start, days)
        except OverflowError:
            raise ParseError(f"Duration runs past the calendar: {source}") from None

    @staticmethod
    def _tag_priority(tags: List[str]) -> Optional[Priority]:
        for tag in tags:
            value = tag.replace("priority", "").strip(" :-")
            priority = Priority.parse(value)
            if priority is not None:
                return priority
        return None

    # -- scanning -----------------------------------------------------------

    def is_table_row(self, line: str, columns: Tuple[str, ...]) -> bool:
        cells = self.split_row(line)
        if len(cells) < 3:
            return False
        values = dict(zip(columns, cells))
        return is_date_token(values.get("start", "")) and is_date_token(values.get("end", ""))

    def scan(self, text: str) -> List[DetectedBlock]:
        lines = list(iter_lines(text))
        return self._scan_tables(text, lines) + self._scan_descriptions(text, lines)

    def _scan_tables(self, text, lines) -> List[DetectedBlock]:
        blocks = []
        index = 0
        while index < len(lines):
            line = lines[index][2]
            cells = self.split_row(line)
            columns = self.header_columns(cells) if len(cells) >= 3 else None
            first = index
            if columns:
                index += 1
                if index < len(lines) and self.SEPARATOR_ROW.match(lines[index][2]):
                    index += 1
            else:
                columns = DEFAULT_COLUMNS

            rows = []
            while index < len(lines) and self.is_table_row(lines[index][2], columns):
                rows.append(self.split_row(lines[index][2]))
                index += 1
            if not rows:
                index = first + 1
                continue

            header = columns is not DEFAULT_COLUMNS
            confidence = 0.6
            if header:
                confidence += 0.1
            if all(len(row) >= 4 for row in rows):
                confidence += 0.1
            if len(rows) >= 2:
                confidence += 0.1
            blocks.append(
                make_block(
                    text, lines, first, index - 1, self.kind, confidence, tier=PriorityTier.TABLE
                )
            )
        return blocks

    def _scan_descriptions(self, text, lines) -> List[DetectedBlock]:
        flags = []
        for _, _, line in lines:
            stripped = line.strip()
            flags.append(
                "|" not in stripped
                and bool(self.RANGE.match(stripped) or self.LEADING_RANGE.match(stripped))
            )
        blocks = []
        for first, last in runs(flags):
            count = last - first + 1
            confidence = 0.6 + 0.1 * min(count - 1, 2)
            heading_at, heading = preceding_heading(lines, first)
            if heading and self.KEYWORDS.search(heading):
                blocks.append(
                    make_block(
                        text, lines, heading_at, last, self.kind, confidence + 0.1, label=heading
                    )
                )
            else:
                blocks.append(make_block(text, lines, first, last, self.kind, confidence))
        return blocks


BUILTIN_PARSERS = (
    FlowchartParser,
    SequenceParser,
    TextFlowParser,
    OrgChartParser,
    TimelineParser,
    GanttParser,
)
