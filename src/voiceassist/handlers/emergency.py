"""Emergency handling: service calls, emergency contacts, SOS mode and guidance.

Every action here has a fallback. Whatever goes wrong while routing an
emergency command, the handler still tries to call emergency services, so
failures stay inside this module instead of reaching the router's apology.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..commands.types import Domain
from ..debug import debug_log
from ..utils.location import get_location_context
from .base import DomainHandler
from .device import read_battery_status


EMERGENCY_SERVICES = {"us": "911", "uk": "999", "eu": "112", "au": "000", "in": "112"}
DEFAULT_EMERGENCY_NUMBER = "911"

EMERGENCY_LOGS_KEY = "emergency_logs"
SOS_LOGS_KEY = "sos_logs"
EMERGENCY_CONTACTS_KEY = "emergency_contacts"

FALLBACK_MESSAGE = "Emergency system error. Calling emergency services directly."
SOS_FAILURE_MESSAGE = "SOS system error. Please call for help manually."

PROCEDURES_DELAY_SEC = 5.0
GUIDANCE_DELAY_SEC = 3.0

MEDICAL_GUIDANCE = (
    "If you're conscious and able to speak, stay on the line with emergency services.",
    "Don't move if you suspect spinal injury unless you're in immediate danger.",
    "If bleeding, apply pressure to the wound with clean cloth.",
    "Try to stay calm and breathe normally.",
)
FIRE_GUIDANCE = (
    "Get out of the building immediately if safe to do so.",
    "Stay low if there's smoke - crawl if necessary.",
    "Feel doors before opening - if hot, find another way out.",
    "Once outside, stay out and don't go back inside.",
)
POLICE_GUIDANCE = (
    "Try to get to a safe, well-lit area if possible.",
    "Stay on the line with police and describe your situation.",
    "If you must run, head toward other people or a public place.",
    "Keep this phone with you for emergency services to contact you.",
)


def emergency_number_for(country: Optional[str]) -> str:
    return EMERGENCY_SERVICES.get((country or "").lower().strip(), DEFAULT_EMERGENCY_NUMBER)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EmergencyHandler(DomainHandler):

    @property
    def domain(self) -> Domain:
        return Domain.EMERGENCY

    @property
    def emergency_number(self) -> str:
        return emergency_number_for(self.context.settings.emergency_country)

    async def handle(self, command: str) -> None:
        try:
            if "call 911" in command or "call emergency" in command:
                await self.call_emergency_services()
            elif "emergency" in command and "contact" in command:
                await self.call_emergency_contact()
            elif "sos" in command or "help" in command:
                await self.activate_sos()
            elif "location" in command or "where am i" in command:
                await self.share_location()
            elif "medical" in command or "health" in command:
                await self.guided_emergency(
                    "Medical emergency detected. Calling emergency medical services. Stay calm and don't move unless safe to do so.",
                    MEDICAL_GUIDANCE,
                    interval_sec=5.0,
                )
            elif "fire" in command:
                await self.guided_emergency(
                    "Fire emergency detected. Calling fire department. Get to safety immediately and stay low if there's smoke.",
                    FIRE_GUIDANCE,
                    interval_sec=4.0,
                )
            elif "police" in command:
                await self.guided_emergency(
                    "Police emergency detected. Calling police. Try to get to a safe location if possible.",
                    POLICE_GUIDANCE,
                    interval_sec=4.0,
                )
            else:
                await self.general_emergency()
        except Exception as e:
            debug_log(f"emergency command failed: {e}", "handler")
            self.speak(FALLBACK_MESSAGE)
            await self.call_emergency_services()

    # Calls

    async def call_emergency_services(self, number: Optional[str] = None) -> None:
        number = number or self.emergency_number
        self.speak(f"Calling emergency services at {number}. Stay calm, help is on the way.")
        try:
            self.open_url(f"tel:{number}")
            self.log_emergency_call(number, "services")
        except Exception as e:
            debug_log(f"emergency call failed: {e}", "handler")
            self.speak("Error calling emergency services. Please dial manually or ask someone nearby for help.")
            return
        self.context.scheduler.schedule(PROCEDURES_DELAY_SEC, self._announce_emergency_mode, name="emergency-procedures")

    async def call_emergency_contact(self) -> None:
        contacts = self.get_emergency_contacts()
        if not contacts:
            self.speak("No emergency contacts configured. Calling emergency services instead.")
            await self.call_emergency_services()
            return
        contact = contacts[0]
        self.speak(f"Calling emergency contact {contact['name']}")
        self.open_url(f"tel:{contact['phone']}")
        self.log_emergency_call(contact["phone"], "emergency_contact")

    async def _announce_emergency_mode(self) -> None:
        self.speak("Emergency mode active. Screen will stay on and volume is maximized.")

    # SOS

    async def activate_sos(self) -> None:
        try:
            self.speak("Activating SOS emergency mode. Calling emergency services and notifying contacts.")
            await self.call_emergency_services()
            await self.start_sos_procedures()
        except Exception as e:
            debug_log(f"SOS activation failed: {e}", "handler")
            self.speak(SOS_FAILURE_MESSAGE)

    async def general_emergency(self) -> None:
        self.speak("Emergency detected. Activating all emergency procedures.")
        await self.call_emergency_services()
        await self.start_sos_procedures()

    async def start_sos_procedures(self) -> None:
        """Flash SOS, max the volume, notify contacts and log; each step is best effort."""
        device = self.sibling(Domain.DEVICE)
        if device is not None:
            try:
                await device.emergency_flashlight()
                await device.set_volume_max()
            except Exception as e:
                debug_log(f"device SOS steps failed: {e}", "handler")
        try:
            self.send_location_to_contacts()
            self.log_sos_activation()
        except Exception as e:
            debug_log(f"SOS procedures failed: {e}", "handler")

    # Location

    def current_location(self) -> Optional[str]:
        settings = self.context.settings
        if not settings.location_enabled:
            return None
        return get_location_context(settings.location_lookup_url, timeout_sec=settings.location_timeout_sec)

    async def share_location(self) -> None:
        self.speak("Getting your location information")
        location = self.current_location()
        if location:
            self.speak(f"Your approximate location is {location}")
            self.open_url("https://maps.google.com/?q=current+location")
        else:
            self.speak("Unable to get precise location. Please describe your location to emergency services.")

    def send_location_to_contacts(self) -> None:
        if self.get_emergency_contacts() and self.current_location():
            self.speak("Sending location information to emergency contacts")

    # Guidance

    async def guided_emergency(self, announcement: str, guidance: Sequence[str], interval_sec: float) -> None:
        self.speak(announcement)
        await self.call_emergency_services()
        self.schedule_guidance(guidance, interval_sec)

    def schedule_guidance(self, guidance: Sequence[str], interval_sec: float, start_delay_sec: float = GUIDANCE_DELAY_SEC) -> None:
        for index, instruction in enumerate(guidance):
            self.context.scheduler.schedule(
                start_delay_sec + index * interval_sec,
                lambda text=instruction: self.speak(text),
                name="emergency-guidance",
            )

    # Records

    def get_emergency_contacts(self) -> List[Dict[str, Any]]:
        return [
            c for c in self.context.store.get_json_list(EMERGENCY_CONTACTS_KEY)
            if isinstance(c, dict) and c.get("phone")
        ]

    def add_emergency_contact(self, name: str, phone: str) -> None:
        self.context.store.append_json_list(
            EMERGENCY_CONTACTS_KEY, {"name": name, "phone": phone, "dateAdded": _now_iso()}
        )
        self.speak(f"Added {name} as emergency contact")

    def log_emergency_call(self, number: str, call_type: str) -> None:
        self.context.store.append_json_list(
            EMERGENCY_LOGS_KEY,
            {
                "number": number,
                "type": call_type,
                "timestamp": _now_iso(),
                "deviceInfo": self.context.settings.device_name,
            },
        )

    def log_sos_activation(self) -> None:
        battery = read_battery_status()
        self.context.store.append_json_list(
            SOS_LOGS_KEY,
            {
                "type": "SOS_ACTIVATION",
                "timestamp": _now_iso(),
                "deviceInfo": self.context.settings.device_name,
                "batteryLevel": battery[0] if battery else None,
            },
        )
