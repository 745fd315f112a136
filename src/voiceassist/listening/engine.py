"""Speech engine adapter interface, lifecycle events and a text-mode engine."""

from __future__ import annotations

import asyncio
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, TextIO

from ..debug import debug_log
from ..errors import EngineStartFailure


@dataclass(frozen=True)
class SpeechStarted:
    pass


@dataclass(frozen=True)
class SpeechRecognized:
    pass


@dataclass(frozen=True)
class SpeechEnded:
    pass


@dataclass(frozen=True)
class SpeechError:
    code: str
    message: str = ""


@dataclass(frozen=True)
class SpeechResult:
    """Final transcripts, best candidate first."""
    transcripts: List[str]
    confidences: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class SpeechPartialResult:
    transcripts: List[str]


SpeechEvent = SpeechStarted | SpeechRecognized | SpeechEnded | SpeechError | SpeechResult | SpeechPartialResult


class EngineListener(Protocol):
    """Receiver of speech engine lifecycle events."""

    async def on_start(self) -> None: ...

    async def on_recognized(self) -> None: ...

    async def on_end(self) -> None: ...

    async def on_error(self, code: str) -> None: ...

    async def on_result(self, transcripts: List[str], confidences: Optional[List[float]] = None) -> None: ...

    async def on_partial_result(self, transcripts: List[str]) -> None: ...


class SpeechEngine(ABC):
    """Base class for speech recognition adapters.

    Implementations run one recognition session per start() call and report
    progress through emit(). Each session finishes with exactly one terminal
    event: SpeechResult, SpeechEnded (nothing heard) or SpeechError.
    """

    def __init__(self) -> None:
        self.listener: Optional[EngineListener] = None

    def set_listener(self, listener: EngineListener) -> None:
        self.listener = listener

    @abstractmethod
    async def start(self, locale: str) -> None:
        """Begin a recognition session. Raises EngineStartFailure on failure."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Abort the current recognition session, if any."""
        pass

    async def emit(self, event: SpeechEvent) -> None:
        """Deliver an event to the listener."""
        listener = self.listener
        if listener is None:
            return
        if isinstance(event, SpeechStarted):
            await listener.on_start()
        elif isinstance(event, SpeechRecognized):
            await listener.on_recognized()
        elif isinstance(event, SpeechEnded):
            await listener.on_end()
        elif isinstance(event, SpeechError):
            await listener.on_error(event.code)
        elif isinstance(event, SpeechResult):
            await listener.on_result(list(event.transcripts), list(event.confidences) or None)
        elif isinstance(event, SpeechPartialResult):
            await listener.on_partial_result(list(event.transcripts))


class StdinSpeechEngine(SpeechEngine):
    """Text-mode engine: each session takes one line typed on stdin.

    A single daemon thread reads the stream and queues lines, so a session
    that is stopped never leaves a reader behind to swallow the next line.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        prompt: Optional[Callable[[], None]] = None,
        on_eof: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self._stream = stream
        self._prompt = prompt
        self.on_eof = on_eof
        self._session: Optional[asyncio.Task] = None
        self._lines: Optional[asyncio.Queue] = None
        self._reader: Optional[threading.Thread] = None
        self.eof = False

    async def start(self, locale: str) -> None:
        if self.eof:
            raise EngineStartFailure("stdin closed")
        if self._session is not None and not self._session.done():
            raise EngineStartFailure("a recognition session is already running")
        self._ensure_reader()
        debug_log(f"stdin session started (locale={locale})", "voice")
        self._session = asyncio.get_running_loop().create_task(self._run_session())

    async def stop(self) -> None:
        task = self._session
        self._session = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _ensure_reader(self) -> None:
        if self._reader is not None:
            return
        loop = asyncio.get_running_loop()
        self._lines = asyncio.Queue()
        lines = self._lines
        stream = self._stream or sys.stdin

        def _read_lines() -> None:
            while True:
                try:
                    line = stream.readline()
                except (OSError, ValueError) as e:
                    debug_log(f"stdin read failed: {e}", "voice")
                    line = ""
                try:
                    loop.call_soon_threadsafe(lines.put_nowait, line)
                except RuntimeError:
                    # Event loop already closed
                    return
                if line == "":
                    return

        self._reader = threading.Thread(target=_read_lines, name="stdin-reader", daemon=True)
        self._reader.start()

    async def _run_session(self) -> None:
        if self._prompt is not None:
            self._prompt()
        await self.emit(SpeechStarted())
        line = await self._lines.get()

        if line == "":
            self.eof = True
            await self.emit(SpeechError("eof", "stdin closed"))
            if self.on_eof is not None:
                self.on_eof()
            return

        text = line.strip()
        if not text:
            await self.emit(SpeechEnded())
            return

        await self.emit(SpeechRecognized())
        await self.emit(SpeechResult([text], [1.0]))
