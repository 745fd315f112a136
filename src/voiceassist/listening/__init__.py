"""Listening module - session lifecycle, speech engines and wake phrase gating."""

from .engine import SpeechEngine, StdinSpeechEngine
from .scheduler import ScheduledTask, Scheduler
from .session import ListeningSessionManager, SessionState
from .wake_detection import WakeWordGate, is_wake_phrase_detected, strip_wake_phrases

__all__ = [
    "SpeechEngine",
    "StdinSpeechEngine",
    "ScheduledTask",
    "Scheduler",
    "ListeningSessionManager",
    "SessionState",
    "WakeWordGate",
    "is_wake_phrase_detected",
    "strip_wake_phrases",
]
