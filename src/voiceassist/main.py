"""
VoiceAssist - Main Entry Point

Hands-free voice command interface: wake phrase, classification and
dispatch to domain handlers.
"""

from .daemon import main

if __name__ == "__main__":
    main()
