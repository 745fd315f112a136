"""Wake gate -> classifier -> entity extraction -> dispatch for one utterance."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

from .classifier import CommandClassifier
from .router import DispatchRouter
from .types import DispatchResult, Domain, LastCommand, Utterance
from ..debug import debug_log
from ..listening.wake_detection import WakeWordGate

if TYPE_CHECKING:
    from ..context import AssistantContext


class CommandPipeline:
    """Turns a final utterance into at most one handler call."""

    def __init__(
        self,
        context: "AssistantContext",
        gate: Optional[WakeWordGate] = None,
        classifier: Optional[CommandClassifier] = None,
        router: Optional[DispatchRouter] = None,
    ):
        settings = context.settings
        self.context = context
        self.gate = gate or WakeWordGate(settings.wake_phrases, settings.conversation_timeout_sec)
        self.classifier = classifier or CommandClassifier()
        self.router = router or DispatchRouter(context)

    async def __call__(self, utterance: Utterance) -> Optional[DispatchResult]:
        return await self.process(utterance)

    async def process(self, utterance: Utterance) -> Optional[DispatchResult]:
        """
        Process one utterance.

        Returns:
            DispatchResult, or None when the utterance was gated out or empty
        """
        text_lower = " ".join((utterance.text or "").lower().split())
        debug_log(f"processing: '{text_lower}' (conf: {utterance.confidence:.2f})", "voice")

        if not self.gate.passes(text_lower, self.context.last_command):
            return None

        command = self.gate.strip(text_lower)
        domain = self.classifier.classify(command)
        if domain is None:
            debug_log("empty command after wake phrase, ignored", "classify")
            return None

        entity = self.context.extractor.extract(command, domain)
        if domain is not Domain.UNCLASSIFIED:
            self.context.last_command = LastCommand(
                raw_text=command,
                domain=domain,
                entity=entity.text if entity else None,
                timestamp=time.time(),
            )
        if entity is not None:
            kind = "number" if entity.is_phone_number else "name"
            debug_log(f"entity ({kind}): '{entity.text}'", "classify")

        return await self.router.dispatch(domain, command)
