"""
Registry of notation strategies keyed by kind.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from .models import ContractError, NotationKind
from .parsers import BUILTIN_PARSERS, NotationParser


class NotationRegistry:
    """
    Holds one parsing strategy per notation kind.

    Iteration follows registration order, which is also the order in which
    strategies are asked to claim fenced blocks.

    Example:
        >>> registry = default_registry()
        >>> registry.get("timeline").try_parse("2024-01-15: Kickoff").data.events[0].title
        'Kickoff'
    """

    def __init__(self, strategies: Iterable[NotationParser] = ()):
        self._strategies: Dict[NotationKind, NotationParser] = {}
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: NotationParser) -> None:
        """
        Add a strategy, replacing any strategy registered for the same kind.

        Raises:
            ContractError: If strategy is not a NotationParser.
        """
        if not isinstance(strategy, NotationParser):
            raise ContractError(
                f"Expected a NotationParser, got {type(strategy).__name__}"
            )
        self._strategies[strategy.kind] = strategy

    def get(self, kind) -> NotationParser:
        """
        Return the strategy for a kind.

        Raises:
            ContractError: If the kind is unsupported or not registered.
        """
        kind = NotationKind.coerce(kind)
        try:
            return self._strategies[kind]
        except KeyError:
            raise ContractError(f"No parser registered for {kind.value}") from None

    def kinds(self) -> List[NotationKind]:
        return list(self._strategies)

    def kind_for_fence(self, info: str, body: str) -> Optional[NotationKind]:
        """Return the kind of the first strategy claiming a fenced block."""
        for strategy in self:
            if strategy.claims_fence(info, body):
                return strategy.kind
        return None

    def __iter__(self) -> Iterator[NotationParser]:
        return iter(list(self._strategies.values()))

    def __len__(self) -> int:
        return len(self._strategies)

    def __contains__(self, kind) -> bool:
        try:
            return NotationKind.coerce(kind) in self._strategies
        except ContractError:
            return False


def default_registry() -> NotationRegistry:
    """Registry with the six built-in notation strategies."""
    return NotationRegistry(parser() for parser in BUILTIN_PARSERS)
