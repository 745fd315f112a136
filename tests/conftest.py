import sys
from pathlib import Path

import pytest

# Robustly locate repository root (directory containing src/voiceassist)
_this_file = Path(__file__).resolve()
ROOT = None
for parent in _this_file.parents:
    if (parent / "src" / "voiceassist").exists():
        ROOT = parent
        break
if ROOT is None:
    # Fallback to two levels up
    ROOT = _this_file.parent.parent

SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


from voiceassist.config import Settings, get_default_config  # noqa: E402
from voiceassist.context import AssistantContext  # noqa: E402
from voiceassist.handlers import register_default_handlers  # noqa: E402
from voiceassist.memory.store import KeyValueStore  # noqa: E402


class FakeSpeechOutput:
    """Records spoken phrases instead of calling a system voice."""

    def __init__(self):
        self.enabled = True
        self.spoken = []
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def speak(self, text):
        self.spoken.append(text)


def make_settings(**overrides) -> Settings:
    values = get_default_config()
    values.update({
        "voice_debug": False,
        "store_path": ":memory:",
        "location_enabled": False,
        "engine_retry_delay_sec": 0.02,
        "restart_delay_sec": 0.01,
        "exit_delay_sec": 0.01,
        "contacts": {"mom": "555 123 4567", "bob smith": "+44 20 7946 0958"},
    })
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep user config out of tests and never open a real browser."""
    monkeypatch.setenv("VOICEASSIST_CONFIG_PATH", str(tmp_path / "missing-config.json"))
    monkeypatch.setenv("VOICEASSIST_VOICE_DEBUG", "0")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def opened_urls(monkeypatch):
    urls = []

    def _open(url, *args, **kwargs):
        urls.append(url)
        return True

    monkeypatch.setattr("webbrowser.open", _open)
    return urls


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def speech_output():
    return FakeSpeechOutput()


@pytest.fixture
def store():
    kv = KeyValueStore(":memory:")
    yield kv
    kv.close()


@pytest.fixture
def context(speech_output, store, opened_urls):
    """Context with every default handler registered and console output silenced."""
    ctx = AssistantContext(make_settings(), speech_output, store, user_print=lambda _msg: None)
    register_default_handlers(ctx)
    return ctx
