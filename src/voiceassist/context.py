"""Shared context passed to every component of the command pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Optional

from .commands.entity import EntityExtractor
from .commands.types import Domain, LastCommand
from .debug import debug_log
from .listening.scheduler import Scheduler

if TYPE_CHECKING:
    from .config import Settings
    from .handlers.base import DomainHandler
    from .memory.store import KeyValueStore
    from .output.tts import TextToSpeech


class AssistantContext:
    """Context object containing all the resources handlers and the session need."""

    def __init__(
        self,
        settings: "Settings",
        speech_output: Optional["TextToSpeech"],
        store: "KeyValueStore",
        scheduler: Optional[Scheduler] = None,
        extractor: Optional[EntityExtractor] = None,
        user_print: Callable[[str], None] = print,
    ):
        self.settings = settings
        self.speech_output = speech_output
        self.store = store
        self.scheduler = scheduler or Scheduler()
        self.extractor = extractor or EntityExtractor()
        self.user_print = user_print
        self.handlers: Dict[Domain, "DomainHandler"] = {}
        self.last_command: Optional[LastCommand] = None
        self._exit_callback: Optional[Callable[[], None]] = None

    def speak(self, text: str) -> None:
        """Fire-and-forget spoken feedback."""
        if not text or not text.strip():
            return
        debug_log(f"speaking: {text}", "tts")
        try:
            self.user_print(f"🔊 {text}")
        except Exception as e:
            debug_log(f"console print failed: {e}", "tts")
        if self.speech_output is not None:
            self.speech_output.speak(text)

    def register_handler(self, handler: "DomainHandler") -> None:
        self.handlers[handler.domain] = handler

    def handler(self, domain: Domain) -> Optional["DomainHandler"]:
        return self.handlers.get(domain)

    def on_exit(self, callback: Callable[[], None]) -> None:
        self._exit_callback = callback

    def request_exit(self) -> None:
        """Ask the host to shut the assistant down."""
        debug_log("exit requested", "daemon")
        if self._exit_callback is not None:
            self._exit_callback()
