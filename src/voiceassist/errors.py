"""Exception types raised at the seams of the listening loop."""

from typing import Optional


class VoiceAssistError(Exception):
    """Base class for VoiceAssist errors."""


class EngineStartFailure(VoiceAssistError):
    """The speech engine could not be started. Retried at a fixed interval."""


class RecognitionError(VoiceAssistError):
    """The speech engine reported a recognition error. Triggers a restart."""

    def __init__(self, code: Optional[str] = None, message: str = ""):
        self.code = code
        super().__init__(message or f"recognition error: {code}")


class HandlerFailure(VoiceAssistError):
    """A domain handler raised while handling a command."""

    def __init__(self, domain, command: str, cause: BaseException):
        self.domain = domain
        self.command = command
        self.cause = cause
        super().__init__(f"{domain} handler failed on '{command}': {cause}")


class IllegalTransition(VoiceAssistError):
    """A session state transition that the transition table does not allow."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"illegal session transition: {current} -> {target}")
