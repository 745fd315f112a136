"""Continuous-listening session lifecycle (idle, listening, processing, restarting, suspended)."""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional

from .engine import SpeechEngine
from .scheduler import ScheduledTask, Scheduler
from ..commands.types import Utterance
from ..debug import debug_log
from ..errors import IllegalTransition, RecognitionError


class SessionState(Enum):
    """Possible session states."""
    IDLE = "idle"                # Never started
    LISTENING = "listening"      # Engine session running
    PROCESSING = "processing"    # A final result is being classified and dispatched
    RESTARTING = "restarting"    # Waiting to start the next engine session
    SUSPENDED = "suspended"      # Backgrounded or exiting, no engine sessions


_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.LISTENING, SessionState.SUSPENDED}),
    SessionState.LISTENING: frozenset({SessionState.PROCESSING, SessionState.RESTARTING, SessionState.SUSPENDED}),
    SessionState.PROCESSING: frozenset({SessionState.RESTARTING, SessionState.SUSPENDED}),
    SessionState.RESTARTING: frozenset({SessionState.LISTENING, SessionState.RESTARTING, SessionState.SUSPENDED}),
    SessionState.SUSPENDED: frozenset({SessionState.LISTENING, SessionState.SUSPENDED}),
}


def next_state(current: SessionState, target: SessionState) -> SessionState:
    """Return target if the transition is allowed, otherwise raise IllegalTransition."""
    if target not in _TRANSITIONS[current]:
        raise IllegalTransition(current, target)
    return target


Pipeline = Callable[[Utterance], Awaitable[None]]


class ListeningSessionManager:
    """Owns the listening state machine, restart policy and activity gating.

    At most one utterance is in flight: results are only accepted while
    LISTENING, and the engine is only started from IDLE, SUSPENDED or
    RESTARTING. Engine start failures are retried forever at a fixed delay.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        pipeline: Pipeline,
        locale: str = "en-US",
        retry_delay: float = 2.0,
        restart_delay: float = 1.0,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize session manager.

        Args:
            engine: Speech engine adapter; the manager registers itself as listener
            pipeline: Coroutine that classifies and dispatches one utterance
            locale: Locale passed to engine start()
            retry_delay: Delay before retrying a failed engine start
            restart_delay: Delay before restarting after an end, error or dispatch
            scheduler: Scheduler for the restart task
        """
        self.engine = engine
        self.pipeline = pipeline
        self.locale = locale
        self.retry_delay = retry_delay
        self.restart_delay = restart_delay
        self.scheduler = scheduler or Scheduler()

        self._state = SessionState.IDLE
        self._active = True
        self._exit_requested = False
        self._restart_task: Optional[ScheduledTask] = None
        self._last_partial: List[str] = []
        self._start_calls = 0
        self._last_error: Optional[str] = None

        engine.set_listener(self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def exit_requested(self) -> bool:
        return self._exit_requested

    @property
    def start_calls(self) -> int:
        """Number of engine start() calls issued so far."""
        return self._start_calls

    @property
    def last_partial(self) -> List[str]:
        return list(self._last_partial)

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def has_pending_restart(self) -> bool:
        return self._restart_task is not None and self._restart_task.pending

    def _transition(self, target: SessionState) -> None:
        previous = self._state
        self._state = next_state(previous, target)
        if previous != target:
            debug_log(f"{previous.value} -> {target.value}", "state")

    # ------------------------------------------------------------------
    # Restart scheduling
    # ------------------------------------------------------------------

    def _schedule_activate(self, delay: float) -> None:
        if self.has_pending_restart():
            debug_log("restart already pending", "state")
            return
        self._restart_task = self.scheduler.schedule(delay, self.activate, name="activate")
        debug_log(f"activate scheduled in {delay:.2f}s", "state")

    def _cancel_restart(self) -> None:
        if self._restart_task is not None:
            self._restart_task.cancel()
            self._restart_task = None

    def _enter_restart(self, delay: float) -> None:
        """Move to RESTARTING and schedule activate(), or park in SUSPENDED when inactive."""
        if not self._active:
            self._transition(SessionState.SUSPENDED)
            return
        self._transition(SessionState.RESTARTING)
        self._schedule_activate(delay)

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def activate(self) -> bool:
        """
        Start an engine session.

        Returns:
            True if the engine was started, False if skipped or failed
        """
        if self._state in (SessionState.LISTENING, SessionState.PROCESSING):
            debug_log(f"activate skipped, already {self._state.value}", "state")
            return False
        if not self._active:
            debug_log("activate skipped, session inactive", "state")
            return False
        if self.has_pending_restart():
            # Direct activation supersedes the scheduled one
            self._cancel_restart()

        self._transition(SessionState.LISTENING)
        self._start_calls += 1
        try:
            await self.engine.start(self.locale)
        except Exception as e:
            self._last_error = str(e)
            debug_log(f"engine start failed: {e}", "voice")
            if self._state == SessionState.LISTENING:
                self._enter_restart(self.retry_delay)
            return False

        if self._state != SessionState.LISTENING or not self._active:
            # Suspended while start() was pending; the engine must not keep running
            debug_log(f"engine started after suspend ({self._state.value}), stopping it", "state")
            try:
                await self.engine.stop()
            except Exception as e:
                debug_log(f"engine stop failed: {e}", "voice")
            return False

        debug_log(f"listening (locale={self.locale})", "voice")
        return True

    async def suspend(self, user_requested: bool = False) -> None:
        """
        Stop the listening loop (host backgrounded or exit requested).

        An in-flight dispatch is never interrupted; the session parks in
        SUSPENDED once it completes.
        """
        self._active = False
        if user_requested:
            self._exit_requested = True
        self._cancel_restart()

        if self._state == SessionState.PROCESSING:
            debug_log("suspend requested during processing, dispatch continues", "state")
            return

        was_listening = self._state == SessionState.LISTENING
        self._transition(SessionState.SUSPENDED)
        if was_listening:
            try:
                await self.engine.stop()
            except Exception as e:
                debug_log(f"engine stop failed: {e}", "voice")

    async def resume(self) -> bool:
        """Resume the listening loop unless the user asked to exit."""
        if self._exit_requested:
            debug_log("resume ignored, exit requested", "state")
            return False
        self._active = True
        if self._state == SessionState.PROCESSING:
            # Restart is scheduled when the dispatch completes
            return False
        return await self.activate()

    async def shutdown(self) -> None:
        """Stop for good."""
        await self.suspend(user_requested=True)
        self.scheduler.cancel_all()

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    async def on_start(self) -> None:
        debug_log("speech started", "voice")

    async def on_recognized(self) -> None:
        debug_log("speech recognized", "voice")

    async def on_partial_result(self, transcripts: List[str]) -> None:
        if self._state != SessionState.LISTENING:
            return
        self._last_partial = list(transcripts or [])
        if self._last_partial:
            debug_log(f"partial: '{self._last_partial[0]}'", "voice")

    async def on_end(self) -> None:
        if self._state != SessionState.LISTENING:
            debug_log(f"speech end ignored in {self._state.value}", "state")
            return
        debug_log("speech ended", "voice")
        self._enter_restart(self.restart_delay)

    async def on_error(self, code: str) -> None:
        self._last_error = str(code)
        if self._state != SessionState.LISTENING:
            debug_log(f"speech error '{code}' ignored in {self._state.value}", "state")
            return
        debug_log(str(RecognitionError(code)), "voice")
        self._enter_restart(self.restart_delay)

    async def on_result(self, transcripts: List[str], confidences: Optional[List[float]] = None) -> None:
        """Process a final result. Dropped unless LISTENING."""
        if self._state != SessionState.LISTENING:
            debug_log(f"result dropped in {self._state.value}: {transcripts[:1]}", "state")
            return

        candidates = [t for t in (transcripts or []) if t and t.strip()]
        if not candidates:
            self._enter_restart(self.restart_delay)
            return

        self._transition(SessionState.PROCESSING)
        confidence = 1.0
        if confidences:
            try:
                confidence = float(confidences[0])
            except (TypeError, ValueError):
                confidence = 1.0
        utterance = Utterance(text=candidates[0], confidence=confidence, is_final=True, timestamp=time.time())

        try:
            await self.pipeline(utterance)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            debug_log(f"pipeline failed: {e}", "dispatch")
        finally:
            self._last_partial = []
            if self._state == SessionState.PROCESSING:
                self._enter_restart(self.restart_delay)
