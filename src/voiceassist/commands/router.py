"""Routes classified commands to their domain handlers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from .types import Domain, DispatchResult
from ..debug import debug_log
from ..errors import HandlerFailure

if TYPE_CHECKING:
    from ..context import AssistantContext


NOT_UNDERSTOOD_TEMPLATE = "I didn't understand the command: {command}. Please try again."
APOLOGY_TEMPLATE = "Sorry, there was an error with the {name} function. Please try again."


class DispatchRouter:
    """Invokes the DomainHandler registered for a domain.

    Handler failures are caught here, logged, and turned into a spoken
    apology so they never reach the session manager.
    """

    def __init__(self, context: "AssistantContext"):
        self.context = context

    async def dispatch(self, domain: Domain, command: str) -> DispatchResult:
        handler = self.context.handler(domain) if domain is not Domain.UNCLASSIFIED else None
        if handler is None:
            debug_log(f"no handler for {domain.value}: '{command}'", "dispatch")
            self.context.speak(NOT_UNDERSTOOD_TEMPLATE.format(command=command))
            return DispatchResult(domain=domain, handled=False)

        debug_log(f"{domain.value} <- '{command}'", "dispatch")
        try:
            await handler.handle(command)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            failure = HandlerFailure(domain, command, e)
            debug_log(str(failure), "dispatch")
            self.context.speak(APOLOGY_TEMPLATE.format(name=domain.value.replace("_", " ")))
            return DispatchResult(domain=domain, handled=False, error_message=str(e))

        return DispatchResult(domain=domain, handled=True)
