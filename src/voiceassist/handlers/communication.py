"""Calls and messages: contacts, raw numbers, redial, voicemail and call history."""

from __future__ import annotations

import re
import time
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from ..commands.entity import is_emergency_number
from ..commands.types import Domain
from ..debug import debug_log
from .base import DomainHandler


VOICEMAIL_NUMBER = "*86"
EMERGENCY_CALLS_KEY = "emergency_calls"
MAX_RECENT_CALLS = 20


def dial_string(number: str) -> str:
    """Strip spoken separators so the number can go into a tel: URL."""
    return re.sub(r"[^\d+*#]", "", number)


class CommunicationHandler(DomainHandler):

    def __init__(self, context):
        super().__init__(context)
        self.last_dialed_number: Optional[str] = None
        self.recent_calls: List[Dict[str, object]] = []

    @property
    def domain(self) -> Domain:
        return Domain.COMMUNICATION

    async def handle(self, command: str) -> None:
        if "voicemail" in command:
            await self.call_voicemail()
        elif "redial" in command or "call back" in command:
            await self.redial()
        elif "recent calls" in command or "call history" in command:
            self.read_recent_calls()
        elif "find contact" in command or "search contact" in command:
            self.find_contact_command(command)
        elif "message" in command or "text" in command or "sms" in command:
            await self.send_message(command)
        elif "call" in command or "dial" in command or "phone" in command:
            await self.make_call(command)
        else:
            self.speak("I didn't understand the communication command. Try saying 'call' followed by a name or number")

    # Contacts

    @property
    def contacts(self) -> Dict[str, str]:
        return self.context.settings.contacts

    def find_contact(self, name: str) -> Optional[Tuple[str, str]]:
        """Find a configured contact by exact or partial name (case-insensitive)."""
        needle = name.lower().strip()
        if not needle:
            return None
        if needle in self.contacts:
            return needle, self.contacts[needle]
        for contact_name, number in self.contacts.items():
            if needle in contact_name or contact_name in needle:
                return contact_name, number
        return None

    def find_contact_command(self, command: str) -> None:
        entity = self.extract(command, "find", "search", "contact", "for")
        if entity is None:
            self.speak("Which contact should I look for?")
            return
        found = self.find_contact(entity.text)
        if found is None:
            self.speak(f"I couldn't find a contact named {entity.text}")
        else:
            self.speak(f"Found {found[0]} at {found[1]}")

    # Calls

    async def make_call(self, command: str) -> None:
        entity = self.extract(command, "call")
        if entity is None:
            self.speak("Who would you like to call?")
            return

        if entity.is_phone_number and is_emergency_number(dial_string(entity.text)):
            await self.make_emergency_call(dial_string(entity.text))
            return

        if entity.is_phone_number:
            number = dial_string(entity.text)
            self.speak(f"Calling {entity.text}")
            self._dial(number, entity.text)
            return

        found = self.find_contact(entity.text)
        if found is None:
            self.speak(f"I couldn't find a contact named {entity.text}. Please try again or say the phone number.")
            return
        name, number = found
        self.speak(f"Calling {name}")
        self._dial(dial_string(number), name)

    async def make_emergency_call(self, number: str) -> None:
        self.speak(f"Making emergency call to {number}")
        self.context.store.append_json_list(
            EMERGENCY_CALLS_KEY,
            {"number": number, "timestamp": time.time(), "type": "emergency"},
        )
        self._dial(number, "emergency services")

    async def redial(self) -> None:
        if self.last_dialed_number is None:
            self.speak("No recent calls to redial")
            return
        self.speak(f"Redialing {self.last_dialed_number}")
        self._dial(self.last_dialed_number, self.last_dialed_number)

    async def call_voicemail(self) -> None:
        self.speak("Calling voicemail")
        self._dial(VOICEMAIL_NUMBER, "voicemail", remember=False)

    def read_recent_calls(self) -> None:
        if not self.recent_calls:
            self.speak("No recent calls")
            return
        latest = [str(call["name"]) for call in self.recent_calls[-3:]][::-1]
        self.speak(f"Recent calls: {', '.join(latest)}")

    def _dial(self, number: str, name: str, remember: bool = True) -> bool:
        opened = self.open_url(f"tel:{quote(number, safe='+*#')}")
        if remember:
            self.last_dialed_number = number
            self.recent_calls.append({"number": number, "name": name, "timestamp": time.time()})
            del self.recent_calls[:-MAX_RECENT_CALLS]
        if not opened:
            debug_log(f"no dialer handled tel:{number}", "handler")
        return opened

    # Messages

    async def send_message(self, command: str) -> None:
        body = ""
        target_part = command
        # "text mom saying i'm late" / "message bob that ..."
        split = re.split(r"\b(?:saying|that says|that)\b", command, maxsplit=1)
        if len(split) == 2:
            target_part, body = split[0], split[1].strip()

        entity = self.extract(target_part, "to")
        if entity is None:
            self.speak("Who would you like to message?")
            return

        if entity.is_phone_number:
            number, name = dial_string(entity.text), entity.text
        else:
            found = self.find_contact(entity.text)
            if found is None:
                self.speak(f"I couldn't find a contact named {entity.text}. Please try again or say the phone number.")
                return
            name, number = found[0], dial_string(found[1])

        url = f"sms:{quote(number, safe='+')}"
        if body:
            url += f"?body={quote(body)}"
        self.speak(f"Opening message to {name}")
        self.open_url(url)
