from __future__ import annotations
import platform
import queue
import shutil
import signal
import subprocess
import threading
from typing import List, Optional, Tuple

from ..debug import debug_log


def _sapi_rate(wpm: Optional[int]) -> int:
    """Map words-per-minute onto the SAPI -10..10 scale (200 wpm is 0)."""
    base = 200.0 if wpm is None else float(wpm)
    return int(max(-10, min(10, round((base - 200.0) / 10.0))))


def build_speech_command(
    system: str, text: str, voice: Optional[str] = None, rate: Optional[int] = None
) -> Optional[Tuple[List[str], Optional[bytes]]]:
    """Pick the platform speech command for `text`.

    Returns (argv, stdin_bytes) or None when no speech program is installed.
    """
    system = system.lower()
    if system == "darwin":
        say = shutil.which("say")
        if not say:
            return None
        cmd = [say]
        if voice:
            cmd += ["-v", voice]
        if rate:
            cmd += ["-r", str(int(rate))]
        return cmd + [text], None

    if system == "windows":
        pwsh = shutil.which("powershell") or shutil.which("pwsh")
        if not pwsh:
            return None
        # Text goes through stdin so no quoting is needed
        script = (
            "[Console]::InputEncoding = [System.Text.Encoding]::UTF8; "
            "Add-Type -AssemblyName System.Speech; "
            "$v = New-Object System.Speech.Synthesis.SpeechSynthesizer; "
            f"$v.Volume = 100; $v.Rate = {_sapi_rate(rate)}; "
            "$v.Speak([Console]::In.ReadToEnd());"
        )
        return [pwsh, "-NoProfile", "-Command", script], text.encode("utf-8", errors="replace")

    spd = shutil.which("spd-say")
    if spd:
        return [spd, "--wait", text], None
    espeak = shutil.which("espeak")
    if espeak:
        cmd = [espeak]
        if rate:
            cmd += ["-s", str(int(rate))]
        if voice:
            cmd += ["-v", voice]
        return cmd + [text], None
    return None


class TextToSpeech:
    """Queues phrases and speaks them one at a time on a worker thread."""

    def __init__(self, enabled: bool = True, voice: Optional[str] = None, rate: Optional[int] = None) -> None:
        self.enabled = enabled
        self.voice = voice
        self.rate = rate
        self._q: queue.Queue[str] = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._is_speaking = threading.Event()
        self._current_process: Optional[subprocess.Popen] = None
        self._process_lock = threading.Lock()
        self._warned_missing = False

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="tts", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self.interrupt()
        self._stop.set()
        self._q.put_nowait("")
        self._thread.join(timeout=2.0)
        self._thread = None
        self._stop.clear()

    def speak(self, text: str) -> None:
        """Queue `text`; returns immediately."""
        if not self.enabled or not text.strip():
            return
        if self._thread is None:
            self.start()
        self._q.put_nowait(text)

    def interrupt(self) -> None:
        """Stop the phrase being spoken and drop anything queued."""
        while True:
            try:
                self._q.get_nowait()
            except queue.Empty:
                break
        with self._process_lock:
            proc = self._current_process
        if proc is None:
            return
        try:
            if platform.system().lower() == "windows":
                proc.terminate()
            else:
                proc.send_signal(signal.SIGTERM)
            proc.wait(timeout=0.5)
        except subprocess.TimeoutExpired:
            proc.kill()
        except OSError as e:
            debug_log(f"could not interrupt speech: {e}", "tts")

    def is_speaking(self) -> bool:
        return self._is_speaking.is_set()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                text = self._q.get(timeout=0.5)
            except queue.Empty:
                continue
            if not text:
                continue
            try:
                self._speak_once(text)
            except Exception as e:
                debug_log(f"speech failed: {e}", "tts")

    def _speak_once(self, text: str) -> None:
        built = build_speech_command(platform.system(), text, self.voice, self.rate)
        if built is None:
            if not self._warned_missing:
                debug_log("no speech program found (say, powershell, spd-say, espeak)", "tts")
                self._warned_missing = True
            return
        cmd, stdin_bytes = built
        self._is_speaking.set()
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE if stdin_bytes is not None else subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            with self._process_lock:
                self._current_process = proc
            proc.communicate(input=stdin_bytes)
        finally:
            with self._process_lock:
                self._current_process = None
            self._is_speaking.clear()
