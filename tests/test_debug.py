"""
Tests for debug_log and its environment toggle.
"""

import pytest

from voiceassist import debug


@pytest.fixture
def fresh_debug_cache(monkeypatch):
    monkeypatch.setattr(debug, "_cached_voice_debug", None)
    monkeypatch.setattr(debug, "_last_check_time", 0.0)
    monkeypatch.setattr(debug, "_dotenv_loaded", True)


@pytest.mark.usefixtures("fresh_debug_cache")
class TestDebugLog:

    def test_silent_by_default(self, capsys):
        debug.debug_log("hidden", "voice")
        assert capsys.readouterr().err == ""

    def test_enabled_from_env(self, monkeypatch, capsys):
        monkeypatch.setenv("VOICEASSIST_VOICE_DEBUG", "1")
        debug.debug_log("visible", "state")
        err = capsys.readouterr().err
        assert "visible" in err
        assert "state" in err

    def test_toggle_is_cached(self, monkeypatch, capsys):
        debug.debug_log("first", "voice")
        monkeypatch.setenv("VOICEASSIST_VOICE_DEBUG", "1")
        debug.debug_log("second", "voice")
        assert capsys.readouterr().err == ""

    def test_does_not_touch_data_directory(self, monkeypatch, tmp_path):
        """Checking the toggle reads the environment only, never the config or store path."""
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setattr("voiceassist.config.load_settings",
                            lambda: pytest.fail("debug_log must not load settings"))
        debug.debug_log("anything", "voice")
        assert not (tmp_path / ".local").exists()
