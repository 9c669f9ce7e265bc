"""
Notation detection and segmentation.

The segmenter finds candidate diagram regions in three tiers:

1. Fenced blocks (```` ```mermaid ````, ```` ~~~gantt ````, ...), which carry
   an explicit notation and always win.
2. Pipe-delimited tables shaped like task schedules.
3. Line heuristics contributed by each notation strategy.

Overlapping candidates are resolved greedily: higher tier, then higher
confidence, then longer span, then earlier start.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from .models import (
    ContractError,
    DetectedBlock,
    NotationKind,
    PriorityTier,
)
from .registry import NotationRegistry, default_registry

logger = logging.getLogger(__name__)

FENCE_OPEN = re.compile(
    r"^(?P<indent>[ ]{0,3})(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^\s`{}]*)[^\n]*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class SkippedBlock:
    """A zero-confidence candidate that was not parsed, and why."""

    block: DetectedBlock
    reason: str


@dataclass
class DetectionResult:
    """Surviving candidates in document order, plus skipped regions."""

    blocks: List[DetectedBlock] = field(default_factory=list)
    skipped: List[SkippedBlock] = field(default_factory=list)


def coerce_kinds(allowed_kinds) -> Set[NotationKind]:
    """
    Normalise an ``allowed_kinds`` argument to a set of kinds.

    None means every kind. A single kind or kind name is accepted as well as
    any iterable of them.

    Raises:
        ContractError: If any entry names an unsupported kind.
    """
    if allowed_kinds is None:
        return set(NotationKind)
    if isinstance(allowed_kinds, (str, NotationKind)):
        allowed_kinds = [allowed_kinds]
    try:
        items = list(allowed_kinds)
    except TypeError:
        raise ContractError(
            f"allowed_kinds must be a collection of kinds, got {allowed_kinds!r}"
        ) from None
    return {NotationKind.coerce(item) for item in items}


def resolve_overlaps(candidates: Iterable[DetectedBlock]) -> List[DetectedBlock]:
    """
    Keep the strongest candidate of every overlapping group.

    Returns:
        Non-overlapping blocks sorted by start offset.
    """
    kept: List[DetectedBlock] = []
    for block in sorted(candidates, key=lambda b: b.rank(), reverse=True):
        if block.confidence <= 0:
            continue
        loser = next((other for other in kept if block.overlaps(other)), None)
        if loser is not None:
            logger.debug(
                "Discarding %s candidate at %d-%d, overlaps %s at %d-%d",
                block.kind.value,
                block.start,
                block.end,
                loser.kind.value,
                loser.start,
                loser.end,
            )
            continue
        kept.append(block)
    return sorted(kept, key=lambda b: (b.start, b.end))


class Segmenter:
    """
    Find diagram candidates in document text.

    Example:
        >>> result = Segmenter().detect("2024-01-15: Kickoff\\n2024-03-01: Launch")
        >>> [block.kind.value for block in result.blocks]
        ['timeline']
    """

    def __init__(self, registry: Optional[NotationRegistry] = None):
        self.registry = registry if registry is not None else default_registry()

    def detect(self, text: str, allowed_kinds=None) -> DetectionResult:
        """
        Detect diagram blocks.

        Args:
            text: The document.
            allowed_kinds: Kinds to look for; None for all.

        Returns:
            DetectionResult with non-overlapping blocks in document order.

        Raises:
            ContractError: If text is not a string or allowed_kinds names an
                unsupported kind.
        """
        if not isinstance(text, str):
            raise ContractError(f"Document text must be a str, got {type(text).__name__}")
        allowed = coerce_kinds(allowed_kinds)

        result = DetectionResult()
        candidates: List[DetectedBlock] = []
        opaque: List[DetectedBlock] = []
        self._scan_fences(text, allowed, candidates, opaque, result.skipped)

        for strategy in self.registry:
            if strategy.kind not in allowed:
                continue
            for block in strategy.scan(text):
                if any(block.overlaps(region) for region in opaque):
                    continue
                candidates.append(block)

        result.blocks = resolve_overlaps(candidates)
        logger.debug(
            "Detected %d block(s) from %d candidate(s)", len(result.blocks), len(candidates)
        )
        return result

    def _scan_fences(
        self,
        text: str,
        allowed: Set[NotationKind],
        candidates: List[DetectedBlock],
        opaque: List[DetectedBlock],
        skipped: List[SkippedBlock],
    ) -> None:
        position = 0
        while True:
            opener = FENCE_OPEN.search(text, position)
            if opener is None:
                return

            fence = opener.group("fence")
            info = opener.group("info").lower()
            body_start = min(opener.end() + 1, len(text))
            closer = re.compile(
                rf"^[ ]{{0,3}}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$", re.MULTILINE
            ).search(text, body_start)

            if closer is None:
                body = text[body_start:]
                kind = self.registry.kind_for_fence(info, body)
                if kind is not None and kind in allowed:
                    block = DetectedBlock(
                        kind=kind,
                        raw_text=body,
                        start=opener.start(),
                        end=len(text),
                        confidence=0.0,
                        tier=PriorityTier.FENCE,
                        label=info or None,
                    )
                    reason = f"Unterminated {fence[0] * 3}{info} fence at offset {opener.start()}"
                    skipped.append(SkippedBlock(block, reason))
                    logger.warning(reason)
                position = body_start
                continue

            body = text[body_start:closer.start()]
            if body.endswith("\n"):
                body = body[:-1]
            kind = self.registry.kind_for_fence(info, body)
            block = DetectedBlock(
                kind=kind or NotationKind.FLOWCHART,
                raw_text=body,
                start=opener.start(),
                end=closer.end(),
                confidence=1.0,
                tier=PriorityTier.FENCE,
                label=info or None,
            )
            if kind is not None and kind in allowed:
                candidates.append(block)
            else:
                opaque.append(block)
            position = closer.end()
