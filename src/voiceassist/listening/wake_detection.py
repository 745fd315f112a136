"""Wake phrase gating and stripping."""

from __future__ import annotations

import time
from typing import Iterable, List, Optional

from ..commands.types import LastCommand
from ..debug import debug_log


DEFAULT_WAKE_PHRASES = ("hey assistant", "voice assistant", "assistant")


def is_wake_phrase_detected(text_lower: str, wake_phrases: Iterable[str]) -> bool:
    """
    Check if text contains any wake phrase.

    Args:
        text_lower: Lowercase text to check
        wake_phrases: Configured wake phrases

    Returns:
        True if a wake phrase is contained anywhere in the text
    """
    if not text_lower or not text_lower.strip():
        return False
    return any(phrase in text_lower for phrase in wake_phrases if phrase)


def strip_wake_phrases(text_lower: str, wake_phrases: Iterable[str]) -> str:
    """
    Remove the first occurrence of each wake phrase from the text.

    Longer phrases are removed first so "hey assistant" does not leave a
    dangling "hey" behind after "assistant" is removed.

    Args:
        text_lower: Lowercase text
        wake_phrases: Configured wake phrases

    Returns:
        Trimmed command text (may be empty)
    """
    if not text_lower:
        return ""
    fragment = text_lower
    for phrase in sorted((p for p in wake_phrases if p), key=len, reverse=True):
        fragment = fragment.replace(phrase, " ", 1)

    # Punctuation left behind by "hey assistant, take a photo"
    fragment = " ".join(fragment.split())
    fragment = fragment.strip(" ,.!?;:")
    return fragment.strip()


class WakeWordGate:
    """Decides whether an utterance should be treated as a command.

    An utterance passes when it contains a wake phrase, or when a command was
    already classified earlier in the session (an open conversation that
    allows follow-ups without the wake phrase). The conversation never closes
    unless conversation_timeout_sec is set.
    """

    def __init__(self, wake_phrases: Optional[Iterable[str]] = None,
                 conversation_timeout_sec: Optional[float] = None):
        phrases: List[str] = [p.strip().lower() for p in (wake_phrases or DEFAULT_WAKE_PHRASES) if p and p.strip()]
        self.wake_phrases = tuple(phrases)
        self.conversation_timeout_sec = conversation_timeout_sec

    def is_conversation_open(self, last_command: Optional[LastCommand], now: Optional[float] = None) -> bool:
        if last_command is None:
            return False
        if self.conversation_timeout_sec is None:
            return True
        now = time.time() if now is None else now
        return (now - last_command.timestamp) <= self.conversation_timeout_sec

    def passes(self, text_lower: str, last_command: Optional[LastCommand] = None,
               now: Optional[float] = None) -> bool:
        """Return True if the utterance should be classified."""
        if is_wake_phrase_detected(text_lower, self.wake_phrases):
            return True
        if self.is_conversation_open(last_command, now):
            debug_log(f"no wake phrase, follow-up allowed: '{text_lower}'", "wake")
            return True
        debug_log(f"no wake phrase, dropped: '{text_lower}'", "wake")
        return False

    def strip(self, text_lower: str) -> str:
        return strip_wake_phrases(text_lower, self.wake_phrases)
