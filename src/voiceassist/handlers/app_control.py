"""Application control: exit the assistant or launch another app."""

from ..commands.types import Domain
from ..debug import debug_log
from .base import DomainHandler


GOODBYE = "Goodbye! Voice Assistant is closing."
EXIT_WORDS = ("exit", "close", "quit")


class AppControlHandler(DomainHandler):

    @property
    def domain(self) -> Domain:
        return Domain.APP_CONTROL

    async def handle(self, command: str) -> None:
        if any(word in command for word in EXIT_WORDS):
            await self.exit_app()
        elif "open app" in command or "launch" in command:
            navigation = self.sibling(Domain.NAVIGATION)
            if navigation is None:
                self.speak("Opening apps is not available")
                return
            await navigation.open_app(command)

    async def exit_app(self) -> None:
        """Speak the exit confirmation once and close after a short delay."""
        self.speak(GOODBYE)
        delay = self.context.settings.exit_delay_sec
        debug_log(f"exiting in {delay:.1f}s", "handler")
        self.context.scheduler.schedule(delay, self.context.request_exit, name="exit")
