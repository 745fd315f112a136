"""
VoiceAssist Daemon

Wires the speech engine, session manager, command pipeline and handlers
together and runs the listening loop until exit.
"""

from __future__ import annotations
import asyncio
import signal
import sys
from typing import Callable, Optional

from .commands.pipeline import CommandPipeline
from .config import Settings, load_settings
from .context import AssistantContext
from .debug import debug_log
from .handlers import register_default_handlers
from .listening.engine import SpeechEngine, StdinSpeechEngine
from .listening.session import ListeningSessionManager
from .memory.store import KeyValueStore
from .output.tts import TextToSpeech


WELCOME_MESSAGE = "Voice Assistant is ready. Say 'Hey Assistant' to give me commands."


def create_speech_engine(cfg: Settings, on_eof: Optional[Callable[[], None]] = None) -> SpeechEngine:
    if cfg.speech_engine == "whisper":
        from .listening.whisper_engine import WhisperSpeechEngine
        return WhisperSpeechEngine(cfg)

    def _prompt() -> None:
        print("⌨️  > ", end="", flush=True)

    return StdinSpeechEngine(prompt=_prompt, on_eof=on_eof)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, session: ListeningSessionManager,
                             stop_event: asyncio.Event) -> None:
    """SIGINT/SIGTERM shut down; SIGUSR1/SIGUSR2 suspend and resume listening."""
    def _spawn(coro_fn) -> None:
        loop.create_task(coro_fn())

    handlers = {
        "SIGINT": stop_event.set,
        "SIGTERM": stop_event.set,
        "SIGUSR1": lambda: _spawn(session.suspend),
        "SIGUSR2": lambda: _spawn(session.resume),
    }
    for sig_name, handler in handlers.items():
        sig = getattr(signal, sig_name, None)
        if sig is None:
            continue
        try:
            loop.add_signal_handler(sig, handler)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows event loops have no add_signal_handler; Ctrl+C still raises KeyboardInterrupt
            pass


async def run_assistant(
    cfg: Settings,
    engine: Optional[SpeechEngine] = None,
    speech_output: Optional[TextToSpeech] = None,
    store: Optional[KeyValueStore] = None,
    install_signals: bool = True,
) -> ListeningSessionManager:
    """Run the assistant until exit is requested. Returns the finished session."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    if speech_output is None:
        speech_output = TextToSpeech(enabled=cfg.tts_enabled, voice=cfg.tts_voice, rate=cfg.tts_rate)
    if speech_output.enabled:
        speech_output.start()
    if store is None:
        store = KeyValueStore(cfg.store_path)

    context = AssistantContext(cfg, speech_output, store)
    context.on_exit(stop_event.set)
    register_default_handlers(context)

    if engine is None:
        engine = create_speech_engine(cfg)
    if isinstance(engine, StdinSpeechEngine) and engine.on_eof is None:
        # Closing stdin ends the assistant
        engine.on_eof = context.request_exit

    session = ListeningSessionManager(
        engine,
        CommandPipeline(context),
        locale=cfg.locale,
        retry_delay=cfg.engine_retry_delay_sec,
        restart_delay=cfg.restart_delay_sec,
        scheduler=context.scheduler,
    )
    if install_signals:
        _install_signal_handlers(loop, session, stop_event)

    debug_log("daemon started", "daemon")
    context.speak(WELCOME_MESSAGE)
    await session.activate()

    try:
        await stop_event.wait()
    finally:
        debug_log("shutting down", "daemon")
        await session.shutdown()
        context.scheduler.cancel_all()
        speech_output.stop()
        store.close()
    return session


def main() -> None:
    """Main daemon entry point."""
    cfg = load_settings()
    try:
        asyncio.run(run_assistant(cfg))
    except KeyboardInterrupt:
        pass
    print("👋 Goodbye", file=sys.stderr)
