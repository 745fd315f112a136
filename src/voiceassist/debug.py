"""Debug logging utilities for VoiceAssist."""
import os
import sys
import time
from typing import Optional

from dotenv import load_dotenv


VOICE_DEBUG_ENV = "VOICEASSIST_VOICE_DEBUG"

_last_check_time: float = 0.0
_cached_voice_debug: Optional[bool] = None
_CACHE_TTL_SECONDS: float = 2.0
_dotenv_loaded = False


def _is_debug_enabled() -> bool:
    global _last_check_time, _cached_voice_debug, _dotenv_loaded
    now = time.time()
    if _cached_voice_debug is None or (now - _last_check_time) > _CACHE_TTL_SECONDS:
        if not _dotenv_loaded:
            load_dotenv(override=False)
            _dotenv_loaded = True
        _cached_voice_debug = os.environ.get(VOICE_DEBUG_ENV, "0") == "1"
        _last_check_time = now
    return bool(_cached_voice_debug)


def debug_log(message: str, category: str = "debug") -> None:
    """Unified debug logging function for VoiceAssist.

    Args:
        message: The debug message to log
        category: The log category (e.g., "voice", "state", "wake", "dispatch")
    """
    if not _is_debug_enabled():
        return
    try:
        print(f"[{category:^10}] {message}", file=sys.stderr)
    except Exception:
        pass
