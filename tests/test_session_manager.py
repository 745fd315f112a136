"""
Tests for the listening session state machine.

These tests verify state transitions, the restart and retry policy, and that
suspend/resume never interrupt or duplicate work.
"""

import asyncio

import pytest

from voiceassist.errors import EngineStartFailure, IllegalTransition
from voiceassist.listening.engine import SpeechEngine, SpeechEnded, SpeechResult
from voiceassist.listening.session import ListeningSessionManager, SessionState, next_state


RESTART = 0.02
RETRY = 0.03


class FakeEngine(SpeechEngine):
    """Engine that records start/stop calls; events are driven by the test."""

    def __init__(self, failures=0):
        super().__init__()
        self.failures = failures
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self, locale):
        self.start_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise EngineStartFailure("microphone busy")

    async def stop(self):
        self.stop_calls += 1


class SlowStartEngine(FakeEngine):
    """Engine whose start() takes a while, like a first model load."""

    def __init__(self, delay=0.05):
        super().__init__()
        self.delay = delay
        self.running = False

    async def start(self, locale):
        self.start_calls += 1
        await asyncio.sleep(self.delay)
        self.running = True

    async def stop(self):
        self.stop_calls += 1
        self.running = False


class RecordingPipeline:
    def __init__(self, gate=None):
        self.utterances = []
        self.gate = gate

    async def __call__(self, utterance):
        self.utterances.append(utterance)
        if self.gate is not None:
            await self.gate.wait()


def make_session(engine=None, pipeline=None):
    engine = engine or FakeEngine()
    pipeline = pipeline or RecordingPipeline()
    session = ListeningSessionManager(engine, pipeline, retry_delay=RETRY, restart_delay=RESTART)
    return session, engine, pipeline


class TestTransitions:
    """Tests for the transition table."""

    def test_initial_state_is_idle(self):
        session, _, _ = make_session()
        assert session.get_state() == SessionState.IDLE

    def test_illegal_transition_raises(self):
        with pytest.raises(IllegalTransition):
            next_state(SessionState.IDLE, SessionState.PROCESSING)
        with pytest.raises(IllegalTransition):
            next_state(SessionState.PROCESSING, SessionState.LISTENING)

    def test_allowed_transitions(self):
        assert next_state(SessionState.LISTENING, SessionState.PROCESSING) == SessionState.PROCESSING
        assert next_state(SessionState.RESTARTING, SessionState.LISTENING) == SessionState.LISTENING


class TestActivation:
    """Tests for activate() and the engine retry policy."""

    @pytest.mark.asyncio
    async def test_activate_starts_engine(self):
        session, engine, _ = make_session()
        assert await session.activate() is True
        assert session.get_state() == SessionState.LISTENING
        assert engine.start_calls == 1

    @pytest.mark.asyncio
    async def test_activate_while_listening_is_noop(self):
        session, engine, _ = make_session()
        await session.activate()
        assert await session.activate() is False
        assert engine.start_calls == 1

    @pytest.mark.asyncio
    async def test_start_failure_retried_until_success(self):
        """Failed starts are retried at the retry delay until the engine starts."""
        session, engine, _ = make_session(engine=FakeEngine(failures=2))
        assert await session.activate() is False
        assert session.get_state() == SessionState.RESTARTING
        assert session.last_error == "microphone busy"
        await asyncio.sleep(RETRY * 6)
        assert engine.start_calls == 3
        assert session.get_state() == SessionState.LISTENING
        await session.shutdown()


class TestEngineEvents:
    """Tests for engine callbacks."""

    @pytest.mark.asyncio
    async def test_error_restarts_once(self):
        """A second error while waiting to restart does not add another start()."""
        session, engine, _ = make_session()
        await session.activate()
        await session.on_error("network")
        assert session.get_state() == SessionState.RESTARTING
        assert session.last_error == "network"
        await session.on_error("network")
        assert session.get_state() == SessionState.RESTARTING
        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 2
        assert session.get_state() == SessionState.LISTENING
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_end_restarts(self):
        session, engine, _ = make_session()
        await session.activate()
        await engine.emit(SpeechEnded())
        assert session.get_state() == SessionState.RESTARTING
        assert session.has_pending_restart() is True
        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 2
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_result_dispatches_best_candidate(self):
        session, engine, pipeline = make_session()
        await session.activate()
        await engine.emit(SpeechResult(["hey assistant take a photo", "hey assistant take a photon"], [0.9, 0.4]))
        assert [u.text for u in pipeline.utterances] == ["hey assistant take a photo"]
        assert pipeline.utterances[0].confidence == 0.9
        assert session.get_state() == SessionState.RESTARTING
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_result_ignored_when_not_listening(self):
        session, _, pipeline = make_session()
        await session.on_result(["hey assistant take a photo"])
        assert pipeline.utterances == []
        assert session.get_state() == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_empty_result_restarts_without_dispatch(self):
        session, _, pipeline = make_session()
        await session.activate()
        await session.on_result(["", "   "])
        assert pipeline.utterances == []
        assert session.get_state() == SessionState.RESTARTING
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_partial_results_recorded_while_listening(self):
        session, _, _ = make_session()
        await session.on_partial_result(["ignored"])
        assert session.last_partial == []
        await session.activate()
        await session.on_partial_result(["hey assist"])
        assert session.last_partial == ["hey assist"]

    @pytest.mark.asyncio
    async def test_pipeline_failure_still_restarts(self):
        class FailingPipeline:
            async def __call__(self, utterance):
                raise RuntimeError("boom")

        session, engine, _ = make_session(pipeline=FailingPipeline())
        await session.activate()
        await session.on_result(["hey assistant exit"])
        assert session.get_state() == SessionState.RESTARTING
        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 2
        await session.shutdown()


class TestSuspendResume:
    """Tests for activity gating."""

    @pytest.mark.asyncio
    async def test_suspend_while_listening_stops_engine(self):
        session, engine, _ = make_session()
        await session.activate()
        await session.suspend()
        assert session.get_state() == SessionState.SUSPENDED
        assert engine.stop_calls == 1
        assert session.is_active is False

    @pytest.mark.asyncio
    async def test_suspend_while_engine_starting_stops_engine(self):
        """An engine that finishes starting after a suspend is stopped again."""
        session, engine, _ = make_session(engine=SlowStartEngine())
        activation = asyncio.create_task(session.activate())
        await asyncio.sleep(0.01)
        await session.suspend()
        assert await activation is False
        assert session.get_state() == SessionState.SUSPENDED
        assert engine.running is False

    @pytest.mark.asyncio
    async def test_resume_after_interrupted_start(self):
        session, engine, _ = make_session(engine=SlowStartEngine(delay=0.02))
        activation = asyncio.create_task(session.activate())
        await asyncio.sleep(0.005)
        await session.suspend()
        await activation
        assert await session.resume() is True
        assert session.get_state() == SessionState.LISTENING
        assert engine.running is True
        assert engine.start_calls == 2
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_suspend_cancels_pending_restart(self):
        session, engine, _ = make_session()
        await session.activate()
        await session.on_error("network")
        await session.suspend()
        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 1
        assert session.get_state() == SessionState.SUSPENDED

    @pytest.mark.asyncio
    async def test_resume_restarts_listening(self):
        session, engine, _ = make_session()
        await session.activate()
        await session.suspend()
        assert await session.resume() is True
        assert session.get_state() == SessionState.LISTENING
        assert engine.start_calls == 2

    @pytest.mark.asyncio
    async def test_suspend_during_processing_does_not_cancel_dispatch(self):
        """Dispatch completes after suspend; resume mid-dispatch adds no start()."""
        gate = asyncio.Event()
        session, engine, pipeline = make_session(pipeline=RecordingPipeline(gate))
        await session.activate()

        task = asyncio.ensure_future(session.on_result(["hey assistant take a photo"]))
        await asyncio.sleep(0)
        assert session.get_state() == SessionState.PROCESSING

        await session.suspend()
        assert session.get_state() == SessionState.PROCESSING
        assert engine.stop_calls == 0

        assert await session.resume() is False
        assert engine.start_calls == 1

        gate.set()
        await task
        assert task.cancelled() is False
        assert len(pipeline.utterances) == 1
        assert session.get_state() == SessionState.RESTARTING

        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 2
        await session.shutdown()

    @pytest.mark.asyncio
    async def test_suspend_during_processing_parks_when_done(self):
        gate = asyncio.Event()
        session, engine, _ = make_session(pipeline=RecordingPipeline(gate))
        await session.activate()
        task = asyncio.ensure_future(session.on_result(["hey assistant take a photo"]))
        await asyncio.sleep(0)
        await session.suspend()
        gate.set()
        await task
        assert session.get_state() == SessionState.SUSPENDED
        await asyncio.sleep(RESTART * 5)
        assert engine.start_calls == 1

    @pytest.mark.asyncio
    async def test_resume_ignored_after_shutdown(self):
        session, engine, _ = make_session()
        await session.activate()
        await session.shutdown()
        assert session.exit_requested is True
        assert await session.resume() is False
        assert session.get_state() == SessionState.SUSPENDED
        assert engine.start_calls == 1
