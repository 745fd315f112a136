"""
Tests for settings loading in config.py.
"""

import json
from dataclasses import fields

import pytest

from voiceassist.config import Settings, export_example_config, get_default_config, load_settings


def _write_config(tmp_path, monkeypatch, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    monkeypatch.setenv("VOICEASSIST_CONFIG_PATH", str(path))
    return path


class TestDefaults:

    def test_defaults_cover_every_setting(self):
        """Every Settings field except the env-only debug toggle has a default."""
        names = {f.name for f in fields(Settings)} - {"voice_debug"}
        assert names == set(get_default_config())

    def test_listening_loop_defaults(self):
        cfg = load_settings()
        assert cfg.engine_retry_delay_sec == 2.0
        assert cfg.restart_delay_sec == 1.0
        assert cfg.wake_phrases == ["hey assistant", "voice assistant", "assistant"]
        assert cfg.conversation_timeout_sec is None
        assert cfg.speech_engine == "stdin"
        assert cfg.voice_debug is False

    def test_example_config_is_json_serialisable(self):
        example = export_example_config()
        assert example["store_path"].startswith("~")
        json.dumps(example)


class TestLoadSettings:

    def test_json_overrides_defaults(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, {
            "locale": "en-GB",
            "emergency_country": "UK",
            "restart_delay_sec": 0.5,
            "conversation_timeout_sec": 45,
        })
        cfg = load_settings()
        assert cfg.locale == "en-GB"
        assert cfg.emergency_country == "uk"
        assert cfg.restart_delay_sec == 0.5
        assert cfg.conversation_timeout_sec == 45.0

    def test_contacts_normalised(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, {"contacts": {" Mom ": "555 123 4567"}})
        assert load_settings().contacts == {"mom": "555 123 4567"}

    def test_contacts_as_list(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, {"contacts": [{"name": "Bob", "phone": "5550001111"}, {"name": "x"}]})
        assert load_settings().contacts == {"bob": "5550001111"}

    def test_wake_phrases_from_string(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, {"wake_phrases": "Hey Buddy, buddy"})
        assert load_settings().wake_phrases == ["hey buddy", "buddy"]

    def test_vad_settings(self, tmp_path, monkeypatch):
        assert load_settings().vad_enabled is True
        assert load_settings().vad_aggressiveness == 2
        _write_config(tmp_path, monkeypatch, {"vad_enabled": False, "vad_aggressiveness": 9})
        cfg = load_settings()
        assert cfg.vad_enabled is False
        assert cfg.vad_aggressiveness == 3

    def test_unknown_engine_falls_back_to_stdin(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, {"speech_engine": "carrier-pigeon"})
        assert load_settings().speech_engine == "stdin"

    def test_invalid_json_uses_defaults(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        monkeypatch.setenv("VOICEASSIST_CONFIG_PATH", str(path))
        assert load_settings().locale == "en-US"

    def test_debug_toggle_from_env(self, monkeypatch):
        monkeypatch.setenv("VOICEASSIST_VOICE_DEBUG", "1")
        assert load_settings().voice_debug is True
