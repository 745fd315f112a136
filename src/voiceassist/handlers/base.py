"""Base handler interface for VoiceAssist command domains.

Each domain (emergency, camera, device, ...) implements DomainHandler. The
router calls handle() with the wake-stripped command; handlers pick the
sub-command themselves and speak their feedback through the context.
"""

from __future__ import annotations

import webbrowser
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from ..commands.types import Domain, Entity
from ..debug import debug_log

if TYPE_CHECKING:
    from ..context import AssistantContext


class DomainHandler(ABC):
    """Base class for all domain handlers.

    Implementation guideline:
    - Put sub-command routing in `handle` and keep each action a coroutine
      method other handlers can call directly (Emergency uses Device's
      flashlight and volume actions this way).
    - Catch failures inside an action only when the action has a fallback;
      otherwise let them reach the router, which apologises for you.
    """

    def __init__(self, context: "AssistantContext"):
        self.context = context

    @property
    @abstractmethod
    def domain(self) -> Domain:
        """The Domain this handler serves."""
        pass

    @abstractmethod
    async def handle(self, command: str) -> None:
        """Handle a classified command.

        Args:
            command: Lowercase command with wake phrases removed
        """
        pass

    def speak(self, text: str) -> None:
        self.context.speak(text)

    def extract(self, command: str, *extra: str) -> Optional[Entity]:
        """Extract this domain's entity, also removing the given action words."""
        return self.context.extractor.extract(command, self.domain, extra)

    def sibling(self, domain: Domain) -> Optional["DomainHandler"]:
        return self.context.handler(domain)

    def open_url(self, url: str) -> bool:
        """Hand a URL (tel:, sms:, https:) to the platform. Returns False if nothing opened it."""
        debug_log(f"opening {url}", "handler")
        try:
            return bool(webbrowser.open(url))
        except Exception as e:
            debug_log(f"failed to open {url}: {e}", "handler")
            return False
