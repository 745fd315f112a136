"""Ordered command classification.

Domains are evaluated in registration order and the first matcher that accepts
the command wins, so an utterance matching two domains always resolves to the
one registered earlier ("call emergency" is EMERGENCY, not COMMUNICATION).
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .keywords import DOMAIN_PRIORITY, DOMAIN_TRIGGERS
from .types import Domain
from ..debug import debug_log


Matcher = Callable[[str], bool]


def contains_any(triggers: Iterable[str]) -> Matcher:
    """Build a matcher that accepts text containing any trigger substring."""
    words = tuple(t.lower() for t in triggers if t)

    def _match(text: str) -> bool:
        return any(word in text for word in words)

    return _match


class CommandClassifier:
    """Maps a cleaned command to exactly one Domain."""

    def __init__(self, matchers: Optional[Sequence[Tuple[Domain, Matcher]]] = None):
        if matchers is None:
            matchers = default_matchers()
        self._matchers: List[Tuple[Domain, Matcher]] = []
        for domain, matcher in matchers:
            self.register(domain, matcher)

    def register(self, domain: Domain, matcher: Matcher) -> None:
        """Append a (domain, matcher) pair at the lowest priority."""
        if domain is Domain.UNCLASSIFIED:
            raise ValueError("UNCLASSIFIED is the fallback and cannot be registered")
        self._matchers.append((domain, matcher))

    @property
    def priority(self) -> List[Domain]:
        return [domain for domain, _ in self._matchers]

    def classify(self, command: str) -> Optional[Domain]:
        """
        Classify a wake-stripped command.

        Args:
            command: Lowercase command text with wake phrases removed

        Returns:
            The first matching Domain, UNCLASSIFIED when nothing matches,
            or None when the command is empty (noise)
        """
        text = (command or "").strip().lower()
        if not text:
            return None

        for domain, matcher in self._matchers:
            if matcher(text):
                debug_log(f"'{text}' -> {domain.value}", "classify")
                return domain

        debug_log(f"'{text}' -> unclassified", "classify")
        return Domain.UNCLASSIFIED


def default_matchers(
    triggers: Mapping[Domain, Sequence[str]] = DOMAIN_TRIGGERS,
    priority: Sequence[Domain] = DOMAIN_PRIORITY,
) -> List[Tuple[Domain, Matcher]]:
    """Build the default ordered matcher list from the keyword tables."""
    return [(domain, contains_any(triggers[domain])) for domain in priority]
