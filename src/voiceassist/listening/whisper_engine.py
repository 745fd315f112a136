"""Microphone speech engine: sounddevice capture, WebRTC VAD endpointing, faster-whisper."""

from __future__ import annotations

import asyncio
import queue
import threading
from collections import deque
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..debug import debug_log
from ..errors import EngineStartFailure
from .engine import (
    SpeechEnded,
    SpeechEngine,
    SpeechError,
    SpeechPartialResult,
    SpeechRecognized,
    SpeechResult,
    SpeechStarted,
)

if TYPE_CHECKING:
    from ..config import Settings

# Audio processing imports (optional)
try:
    from faster_whisper import WhisperModel
    import sounddevice as sd
    import webrtcvad
    import numpy as np
except ImportError:
    WhisperModel = None
    sd = None
    webrtcvad = None
    np = None


FRAME_MS = 20
PRE_ROLL_MS = 240
MIN_AUDIO_SEC = 0.3


def segment_confidence(segment) -> float:
    """Map a whisper segment's avg_logprob (or no_speech_prob) to 0..1."""
    if hasattr(segment, "avg_logprob"):
        return min(1.0, max(0.0, segment.avg_logprob + 1.0))
    if hasattr(segment, "no_speech_prob"):
        return 1.0 - segment.no_speech_prob
    return 1.0


def language_for_locale(locale: str) -> Optional[str]:
    """'en-US' -> 'en'; whisper takes bare language codes."""
    lang = (locale or "").replace("_", "-").split("-")[0].strip().lower()
    return lang or None


class UtteranceEndpointer:
    """Frame-by-frame speech detection with a silence endpoint.

    Frames are classified by a webrtcvad.Vad when one is given, otherwise by
    RMS energy against min_energy.

    feed() returns "speech" when speech begins, "utterance" when an utterance
    is complete (take it with take_audio()), "timeout" when nothing was heard
    within the listen timeout, and None otherwise.
    """

    def __init__(self, sample_rate: int, min_energy: float, endpoint_silence_ms: int,
                 max_utterance_ms: int, listen_timeout_ms: int, frame_ms: int = FRAME_MS, vad=None):
        self.sample_rate = int(sample_rate)
        self.vad = vad
        self.frame_samples = max(1, int(sample_rate * frame_ms / 1000))
        self.min_energy = float(min_energy)
        self._endpoint_frames = max(1, int(endpoint_silence_ms / frame_ms))
        self._max_frames = max(1, int(max_utterance_ms / frame_ms))
        self._timeout_frames = max(1, int(listen_timeout_ms / frame_ms))
        self._pre_roll: deque = deque(maxlen=max(1, int(PRE_ROLL_MS / frame_ms)))
        self._frames: list = []
        self._silence = 0
        self._idle = 0
        self.speech_active = False

    @staticmethod
    def rms(frame) -> float:
        return float(np.sqrt(np.mean(np.square(frame))))

    def is_speech(self, frame) -> bool:
        if self.vad is None:
            return self.rms(frame) >= self.min_energy
        try:
            pcm16 = np.clip(frame.flatten() * 32768.0, -32768, 32767).astype(np.int16).tobytes()
            return bool(self.vad.is_speech(pcm16, self.sample_rate))
        except Exception as e:
            debug_log(f"vad failed on frame: {e}", "voice")
            return False

    def feed(self, frame) -> Optional[str]:
        is_voice = self.is_speech(frame)
        if not self.speech_active:
            if is_voice:
                self.speech_active = True
                self._frames = list(self._pre_roll) + [frame.copy()]
                self._pre_roll.clear()
                self._silence = 0
                return "speech"
            self._pre_roll.append(frame.copy())
            self._idle += 1
            return "timeout" if self._idle >= self._timeout_frames else None

        self._frames.append(frame.copy())
        self._silence = 0 if is_voice else self._silence + 1
        if self._silence >= self._endpoint_frames or len(self._frames) >= self._max_frames:
            return "utterance"
        return None

    def take_audio(self):
        audio = np.concatenate(self._frames, axis=0).flatten() if self._frames else np.zeros(0, dtype=np.float32)
        self._frames = []
        self._silence = 0
        self.speech_active = False
        return audio


class WhisperSpeechEngine(SpeechEngine):
    """One microphone recognition session per start().

    Capture and transcription run on a worker thread; events are handed back
    to the event loop with call_soon_threadsafe and delivered in order by a
    pump task.
    """

    def __init__(self, settings: "Settings", model=None):
        super().__init__()
        self.cfg = settings
        self.model = model
        self._model_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._pump: Optional[asyncio.Task] = None
        self._stop_flag = threading.Event()
        self._vad = None
        if webrtcvad is not None and bool(settings.vad_enabled):
            try:
                self._vad = webrtcvad.Vad(int(settings.vad_aggressiveness))
            except Exception as e:
                debug_log(f"webrtcvad unavailable, using energy gate: {e}", "voice")
                self._vad = None

    def _ensure_model(self):
        with self._model_lock:
            if self.model is None:
                model_name = self.cfg.whisper_model
                compute = self.cfg.whisper_compute_type
                self.model = WhisperModel(model_name, device="cpu", compute_type=compute)
                debug_log(f"whisper model initialized: name={model_name}, compute={compute}", "voice")
            return self.model

    def _resolve_device(self) -> Optional[int]:
        device_env = (self.cfg.voice_device or "").strip().lower()
        if not device_env or device_env in ("default", "system"):
            return None
        try:
            return int(device_env)
        except ValueError:
            pass
        try:
            for idx, dev in enumerate(sd.query_devices()):
                name = dev.get("name")
                if isinstance(name, str) and device_env in name.lower() and int(dev.get("max_input_channels", 0)) > 0:
                    return idx
        except Exception as e:
            debug_log(f"could not list input devices: {e}", "voice")
        return None

    async def start(self, locale: str) -> None:
        if WhisperModel is None or sd is None or np is None:
            raise EngineStartFailure("voice dependencies not available (faster-whisper, sounddevice, webrtcvad, numpy)")
        if self._worker is not None and self._worker.is_alive():
            raise EngineStartFailure("a recognition session is already running")

        loop = asyncio.get_running_loop()
        try:
            model = await loop.run_in_executor(None, self._ensure_model)
        except Exception as e:
            raise EngineStartFailure(f"failed to initialize whisper model: {e}") from e

        endpointer = UtteranceEndpointer(
            self.cfg.sample_rate,
            self.cfg.voice_min_energy,
            self.cfg.endpoint_silence_ms,
            self.cfg.max_utterance_ms,
            self.cfg.listen_timeout_ms,
            vad=self._vad,
        )
        audio_q: queue.Queue = queue.Queue(maxsize=64)

        def _on_audio(indata, frames, time_info, status):
            try:
                audio_q.put_nowait(indata.copy())
            except queue.Full:
                pass

        stream_kwargs = {}
        device = self._resolve_device()
        if device is not None:
            stream_kwargs["device"] = device
        try:
            stream = sd.InputStream(
                samplerate=self.cfg.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=endpointer.frame_samples,
                callback=_on_audio,
                **stream_kwargs,
            )
            stream.start()
        except Exception as e:
            raise EngineStartFailure(f"failed to open input stream: {e}") from e

        events: asyncio.Queue = asyncio.Queue()
        self._stop_flag = threading.Event()
        stop_flag = self._stop_flag

        def post(event) -> None:
            loop.call_soon_threadsafe(events.put_nowait, event)

        self._worker = threading.Thread(
            target=self._run_session,
            args=(stream, audio_q, endpointer, model, language_for_locale(locale), post, stop_flag),
            name="whisper-session",
            daemon=True,
        )
        self._pump = loop.create_task(self._pump_events(events))
        self._worker.start()
        debug_log(f"microphone session started (locale={locale})", "voice")

    async def stop(self) -> None:
        self._stop_flag.set()
        pump = self._pump
        self._pump = None
        if pump is not None and not pump.done() and pump is not asyncio.current_task():
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass

    async def _pump_events(self, events: asyncio.Queue) -> None:
        while True:
            event = await events.get()
            if event is None:
                return
            await self.emit(event)
            if isinstance(event, (SpeechResult, SpeechEnded, SpeechError)):
                return

    def _run_session(self, stream, audio_q, endpointer, model, language, post, stop_flag) -> None:
        """Worker thread: read frames until an utterance, a timeout or a stop."""
        post(SpeechStarted())
        try:
            with stream:
                audio = self._capture(audio_q, endpointer, post, stop_flag)
        except Exception as e:
            if not stop_flag.is_set():
                post(SpeechError("audio", str(e)))
            return

        if stop_flag.is_set():
            post(None)
            return
        if audio is None:
            post(SpeechEnded())
            return

        try:
            transcripts, confidences = self.transcribe(model, audio, language, post)
        except Exception as e:
            debug_log(f"transcription failed: {e}", "voice")
            post(SpeechError("transcription", str(e)))
            return

        if stop_flag.is_set():
            post(None)
        elif transcripts:
            post(SpeechResult(transcripts, confidences))
        else:
            post(SpeechEnded())

    def _capture(self, audio_q, endpointer, post, stop_flag):
        """Return the utterance audio, or None when the listen timeout passed."""
        while not stop_flag.is_set():
            try:
                buf = audio_q.get(timeout=0.2)
            except queue.Empty:
                continue
            mono = buf[:, 0] if buf.ndim > 1 else buf.flatten()
            offset = 0
            while offset + endpointer.frame_samples <= mono.shape[0]:
                frame = mono[offset: offset + endpointer.frame_samples]
                offset += endpointer.frame_samples
                outcome = endpointer.feed(frame)
                if outcome == "speech":
                    post(SpeechRecognized())
                elif outcome == "timeout":
                    debug_log("nothing heard before listen timeout", "voice")
                    return None
                elif outcome == "utterance":
                    return endpointer.take_audio()
        return None

    def transcribe(self, model, audio, language: Optional[str], post=None) -> Tuple[List[str], List[float]]:
        """Transcribe audio; returns ([text], [confidence]) or ([], []) for silence."""
        if audio.size == 0 or len(audio) / self.cfg.sample_rate < MIN_AUDIO_SEC:
            debug_log("audio too short, ignoring", "voice")
            return [], []

        segments, _info = model.transcribe(audio, language=language, vad_filter=False)
        texts: List[str] = []
        confidences: List[float] = []
        for seg in segments:
            piece = (seg.text or "").strip()
            if not piece:
                continue
            texts.append(piece)
            confidences.append(segment_confidence(seg))
            if post is not None:
                post(SpeechPartialResult([" ".join(texts)]))

        text = " ".join(texts).strip()
        if not text:
            return [], []
        confidence = sum(confidences) / len(confidences)
        debug_log(f"transcribed: '{text}' (conf: {confidence:.2f})", "voice")
        return [text], [confidence]
