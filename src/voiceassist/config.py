import os
import json
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
from dotenv import load_dotenv

from .debug import VOICE_DEBUG_ENV


def _default_store_path() -> str:
    base = Path.home() / ".local" / "share" / "voiceassist"
    base.mkdir(parents=True, exist_ok=True)
    return str(base / "voiceassist.db")


@dataclass(frozen=True)
class Settings:
    # Storage
    store_path: str

    # Speech Input
    locale: str
    speech_engine: str  # "stdin" (default) or "whisper"
    voice_debug: bool
    voice_device: str | None  # Audio input device (None = system default)
    whisper_model: str
    whisper_compute_type: str
    sample_rate: int
    voice_min_energy: float
    vad_enabled: bool
    vad_aggressiveness: int  # webrtcvad mode, 0 (least) to 3 (most aggressive)
    endpoint_silence_ms: int
    max_utterance_ms: int
    listen_timeout_ms: int  # End the session when nothing is heard for this long

    # Wake Phrases
    wake_phrases: list[str]
    conversation_timeout_sec: float | None  # None = a conversation never closes

    # Listening Loop
    engine_retry_delay_sec: float
    restart_delay_sec: float
    exit_delay_sec: float

    # Text-to-Speech
    tts_enabled: bool
    tts_voice: str | None
    tts_rate: int | None  # Words per minute (WPM)

    # Communication
    contacts: Dict[str, str]

    # Emergency
    emergency_country: str
    device_name: str

    # Location Services
    location_enabled: bool
    location_lookup_url: str
    location_timeout_sec: float


def _default_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "voiceassist" / "config.json"
    return Path.home() / ".config" / "voiceassist" / "config.json"


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if isinstance(data, dict):
                    return data
    except Exception:
        pass
    return {}


def _ensure_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(value)]


def _ensure_contacts(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(k).strip().lower(): str(v).strip() for k, v in value.items() if str(k).strip()}
    # Accept list of entries like [{"name": "mom", "phone": "555 123 4567"}]
    out: Dict[str, str] = {}
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict) and item.get("name") and item.get("phone"):
                out[str(item["name"]).strip().lower()] = str(item["phone"]).strip()
    return out


def _optional_float(value: Any) -> float | None:
    if value in (None, "", "null"):
        return None
    try:
        return float(value)
    except Exception:
        return None


def get_default_config() -> Dict[str, Any]:
    """Returns the default configuration values."""
    return {
        # Storage
        "store_path": _default_store_path(),

        # Speech Input
        "locale": "en-US",
        "speech_engine": "stdin",  # "stdin" (type commands) or "whisper" (microphone)
        "voice_device": None,
        "whisper_model": "small",
        "whisper_compute_type": "int8",
        "sample_rate": 16000,
        "voice_min_energy": 0.0045,
        "vad_enabled": True,
        "vad_aggressiveness": 2,
        "endpoint_silence_ms": 800,
        "max_utterance_ms": 12000,
        "listen_timeout_ms": 8000,

        # Wake Phrases
        "wake_phrases": ["hey assistant", "voice assistant", "assistant"],
        "conversation_timeout_sec": None,

        # Listening Loop
        "engine_retry_delay_sec": 2.0,
        "restart_delay_sec": 1.0,
        "exit_delay_sec": 2.0,

        # Text-to-Speech
        "tts_enabled": True,
        "tts_voice": None,
        "tts_rate": 175,

        # Communication (name -> phone number). No defaults.
        "contacts": {},

        # Emergency
        "emergency_country": "us",
        "device_name": platform.node() or "unknown-device",

        # Location Services
        "location_enabled": True,
        "location_lookup_url": "https://ipinfo.io/json",
        "location_timeout_sec": 3.0,
    }


def export_example_config(include_store_path: bool = False) -> Dict[str, Any]:
    """Returns example config suitable for JSON export (with adjusted store_path)."""
    config = get_default_config().copy()
    if not include_store_path:
        config["store_path"] = "~/.local/share/voiceassist/voiceassist.db"
    config["device_name"] = "my-phone"
    return config


def load_settings() -> Settings:
    # Load environment for debug toggles and optional config file path only
    load_dotenv(override=False)

    cfg_path_env = os.environ.get("VOICEASSIST_CONFIG_PATH")
    cfg_path = Path(cfg_path_env).expanduser() if cfg_path_env else _default_config_path()

    cfg_json = _load_json(cfg_path)

    # JSON wins over defaults
    defaults = get_default_config()
    merged: Dict[str, Any] = {**defaults, **cfg_json}

    # Debug toggle (env only)
    voice_debug = os.environ.get(VOICE_DEBUG_ENV, "0") == "1"

    store_path = str(Path(str(merged.get("store_path") or _default_store_path())).expanduser())
    locale = str(merged.get("locale") or "en-US")
    speech_engine = str(merged.get("speech_engine", "stdin")).lower()
    if speech_engine not in ("stdin", "whisper"):
        speech_engine = "stdin"
    voice_device_val = merged.get("voice_device")
    voice_device = None if voice_device_val in (None, "", "default", "system") else str(voice_device_val)
    whisper_model = str(merged.get("whisper_model", "small"))
    whisper_compute_type = str(merged.get("whisper_compute_type", "int8"))
    sample_rate = int(merged.get("sample_rate", 16000))
    voice_min_energy = float(merged.get("voice_min_energy", 0.0045))
    vad_enabled = bool(merged.get("vad_enabled", True))
    try:
        vad_aggressiveness = max(0, min(3, int(merged.get("vad_aggressiveness", 2))))
    except Exception:
        vad_aggressiveness = 2
    endpoint_silence_ms = int(merged.get("endpoint_silence_ms", 800))
    max_utterance_ms = int(merged.get("max_utterance_ms", 12000))
    listen_timeout_ms = int(merged.get("listen_timeout_ms", 8000))

    wake_phrases = [p.strip().lower() for p in _ensure_list(merged.get("wake_phrases")) if p.strip()]
    if not wake_phrases:
        wake_phrases = list(defaults["wake_phrases"])
    conversation_timeout_sec = _optional_float(merged.get("conversation_timeout_sec"))

    engine_retry_delay_sec = float(merged.get("engine_retry_delay_sec", 2.0))
    restart_delay_sec = float(merged.get("restart_delay_sec", 1.0))
    exit_delay_sec = float(merged.get("exit_delay_sec", 2.0))

    tts_enabled = bool(merged.get("tts_enabled", True))
    tts_voice_val = merged.get("tts_voice")
    tts_voice = None if tts_voice_val in (None, "", "null") else str(tts_voice_val)
    tts_rate_val = merged.get("tts_rate")
    try:
        tts_rate = None if tts_rate_val in (None, "", "null") else int(tts_rate_val)
    except Exception:
        tts_rate = None

    contacts = _ensure_contacts(merged.get("contacts"))
    emergency_country = str(merged.get("emergency_country", "us")).strip().lower()
    device_name = str(merged.get("device_name") or defaults["device_name"])

    location_enabled = bool(merged.get("location_enabled", True))
    location_lookup_url = str(merged.get("location_lookup_url") or defaults["location_lookup_url"])
    location_timeout_sec = float(merged.get("location_timeout_sec", 3.0))

    return Settings(
        # Storage
        store_path=store_path,

        # Speech Input
        locale=locale,
        speech_engine=speech_engine,
        voice_debug=voice_debug,
        voice_device=voice_device,
        whisper_model=whisper_model,
        whisper_compute_type=whisper_compute_type,
        sample_rate=sample_rate,
        voice_min_energy=voice_min_energy,
        vad_enabled=vad_enabled,
        vad_aggressiveness=vad_aggressiveness,
        endpoint_silence_ms=endpoint_silence_ms,
        max_utterance_ms=max_utterance_ms,
        listen_timeout_ms=listen_timeout_ms,

        # Wake Phrases
        wake_phrases=wake_phrases,
        conversation_timeout_sec=conversation_timeout_sec,

        # Listening Loop
        engine_retry_delay_sec=engine_retry_delay_sec,
        restart_delay_sec=restart_delay_sec,
        exit_delay_sec=exit_delay_sec,

        # Text-to-Speech
        tts_enabled=tts_enabled,
        tts_voice=tts_voice,
        tts_rate=tts_rate,

        # Communication
        contacts=contacts,

        # Emergency
        emergency_country=emergency_country,
        device_name=device_name,

        # Location Services
        location_enabled=location_enabled,
        location_lookup_url=location_lookup_url,
        location_timeout_sec=location_timeout_sec,
    )
