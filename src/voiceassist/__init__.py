"""
VoiceAssist

A hands-free voice command interface: continuous listening, wake phrase
gating, keyword classification and dispatch to domain handlers.
"""

from .config import load_settings

def main() -> None:
    """Lazy entrypoint to avoid importing the daemon at package import time.

    Importing `voiceassist.daemon` here prevents it from being added to
    sys.modules during package import, which avoids runpy warnings when
    executing `python -m voiceassist.daemon`.
    """
    from .daemon import main as _main
    _main()

__all__ = ["main", "load_settings"]
