"""Entity extraction by stopword stripping.

Removal works on whole words, so a contact literally named after a stopword
(for example "My") cannot be referenced by voice.
"""

from __future__ import annotations

import re
from typing import Dict, Mapping, Optional, Sequence

from .keywords import DOMAIN_STOPWORDS
from .types import Domain, Entity


EMERGENCY_NUMBERS = ("911", "112", "999", "000")

_PHONE_RE = re.compile(r"^\+?\d+(?:[\s.\-]\d+)*$")
_WS_RE = re.compile(r"\s+")


def looks_like_phone_number(text: Optional[str]) -> bool:
    """
    Check whether text reads as a dialable number.

    Accepts an optional leading '+', digit groups separated by space, dash or
    dot, and 7-15 digits in total. Short emergency numbers also qualify.
    """
    if not text:
        return False
    candidate = text.strip()
    if candidate in EMERGENCY_NUMBERS:
        return True
    if not _PHONE_RE.match(candidate):
        return False
    digits = sum(ch.isdigit() for ch in candidate)
    return 7 <= digits <= 15


def is_emergency_number(text: Optional[str]) -> bool:
    return bool(text) and text.strip() in EMERGENCY_NUMBERS


def _word_pattern(word: str) -> re.Pattern:
    parts = [re.escape(p) for p in word.lower().split()]
    return re.compile(r"\b" + r"\s+".join(parts) + r"\b", re.IGNORECASE)


class EntityExtractor:
    """Strips per-domain stopwords from a command to recover its argument."""

    def __init__(self, stopwords: Mapping[Domain, Sequence[str]] = DOMAIN_STOPWORDS):
        self._patterns: Dict[Domain, tuple] = {
            domain: tuple(_word_pattern(w) for w in words if w.strip())
            for domain, words in stopwords.items()
        }

    def strip(self, command: str, domain: Domain, extra: Sequence[str] = ()) -> Optional[str]:
        """
        Remove the domain's stopwords (plus any extra words) from a command.

        Args:
            command: Command text
            domain: Domain whose stopword list applies
            extra: Additional words to remove, such as the action verb

        Returns:
            Remaining text with collapsed whitespace, or None if nothing is left
        """
        patterns = tuple(_word_pattern(w) for w in extra if w.strip())
        patterns += self._patterns.get(domain, ())

        cleaned = (command or "").lower()
        # Repeat until stable: removing one word can join a multi-word stopword
        while True:
            previous = cleaned
            for pattern in patterns:
                cleaned = pattern.sub(" ", cleaned)
            cleaned = _WS_RE.sub(" ", cleaned).strip()
            if cleaned == previous:
                break

        return cleaned or None

    def extract(self, command: str, domain: Domain, extra: Sequence[str] = ()) -> Optional[Entity]:
        """Strip stopwords and tag the remainder as a phone number or a name."""
        text = self.strip(command, domain, extra)
        if text is None:
            return None
        return Entity(text=text, is_phone_number=looks_like_phone_number(text))
