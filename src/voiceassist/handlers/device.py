"""Device settings: flashlight, volume, connectivity toggles, battery and device info.

Hardware control needs platform modules the assistant does not ship, so the
flashlight and volume are tracked as state and settings toggles point the
user at the system settings.
"""

from __future__ import annotations

import asyncio
import platform
import re
from pathlib import Path
from typing import Optional, Tuple

from ..commands.types import Domain
from ..debug import debug_log
from .base import DomainHandler


VOLUME_STEP = 10
SILENT_RESTORE_VOLUME = 50

# SOS in morse: 3 short, 3 long, 3 short (on/off durations in ms)
_SHORT, _LONG, _GAP = 200, 600, 200
SOS_PATTERN_MS = (
    _SHORT, _GAP, _SHORT, _GAP, _SHORT, _GAP * 3,
    _LONG, _GAP, _LONG, _GAP, _LONG, _GAP * 3,
    _SHORT, _GAP, _SHORT, _GAP, _SHORT,
)

_POWER_SUPPLY_DIR = Path("/sys/class/power_supply")


def _has_word(command: str, *words: str) -> bool:
    tokens = set(re.findall(r"[a-z0-9\-]+", command))
    return any(w in tokens for w in words)


def read_battery_status() -> Optional[Tuple[int, bool]]:
    """Return (percentage, charging) from the Linux power supply class, if present."""
    try:
        for supply in sorted(_POWER_SUPPLY_DIR.glob("BAT*")):
            capacity = int((supply / "capacity").read_text().strip())
            status = (supply / "status").read_text().strip().lower() if (supply / "status").exists() else ""
            return capacity, status == "charging"
    except Exception as e:
        debug_log(f"battery status unavailable: {e}", "handler")
    return None


class DeviceHandler(DomainHandler):

    def __init__(self, context):
        super().__init__(context)
        self.flashlight_on = False
        self.volume = 50
        self.sos_signal_active = False

    @property
    def domain(self) -> Domain:
        return Domain.DEVICE

    async def handle(self, command: str) -> None:
        if "flashlight" in command or "torch" in command:
            await self.handle_flashlight(command)
        elif "volume" in command:
            await self.handle_volume(command)
        elif "brightness" in command:
            self.handle_brightness(command)
        elif "wifi" in command or "wi-fi" in command:
            self.open_settings("WiFi", command)
        elif "bluetooth" in command:
            self.open_settings("Bluetooth", command)
        elif "airplane" in command or "flight mode" in command:
            self.speak("Opening device settings. Please toggle airplane mode manually")
        elif "do not disturb" in command or "silent mode" in command:
            await self.handle_silent_mode(command)
        elif "battery" in command:
            self.battery_info()
        elif "device info" in command:
            self.device_info()
        else:
            self.speak("I didn't understand the device command. Try saying 'turn on flashlight', 'volume up', or 'battery status'")

    # Flashlight

    async def handle_flashlight(self, command: str) -> None:
        if "toggle" in command:
            await (self.turn_off_flashlight() if self.flashlight_on else self.turn_on_flashlight())
        elif _has_word(command, "on"):
            await self.turn_on_flashlight()
        elif _has_word(command, "off"):
            await self.turn_off_flashlight()
        else:
            self.speak("Say 'turn on flashlight' or 'turn off flashlight'")

    async def turn_on_flashlight(self) -> None:
        self.flashlight_on = True
        self.speak("Flashlight turned on")

    async def turn_off_flashlight(self) -> None:
        self.flashlight_on = False
        self.speak("Flashlight turned off")

    async def emergency_flashlight(self) -> None:
        """Start the SOS flash pattern on a cancellable schedule."""
        if self.sos_signal_active:
            return
        self.speak("Starting emergency SOS flashlight signal")
        self.sos_signal_active = True
        self.context.scheduler.schedule(0, self._run_sos_pattern, name="sos-flashlight")

    async def _run_sos_pattern(self) -> None:
        try:
            for index, duration_ms in enumerate(SOS_PATTERN_MS):
                self.flashlight_on = index % 2 == 0
                await asyncio.sleep(duration_ms / 1000.0)
        finally:
            self.flashlight_on = False
            self.sos_signal_active = False
        self.speak("SOS signal complete")

    # Volume

    async def handle_volume(self, command: str) -> None:
        if _has_word(command, "up", "increase", "higher"):
            await self.set_volume(self.volume + VOLUME_STEP, announce="increased")
        elif _has_word(command, "down", "decrease", "lower"):
            await self.set_volume(self.volume - VOLUME_STEP, announce="decreased")
        elif _has_word(command, "max", "maximum"):
            await self.set_volume_max()
        elif _has_word(command, "min", "minimum", "mute"):
            await self.set_volume_min()
        elif (match := re.search(r"\d+", command)) is not None:
            await self.set_volume(int(match.group(0)))
        else:
            self.speak(f"Current volume is {self.volume}%")

    async def set_volume(self, level: int, announce: str = "set") -> None:
        self.volume = max(0, min(100, int(level)))
        if announce == "set":
            self.speak(f"Volume set to {self.volume}%")
        else:
            self.speak(f"Volume {announce} to {self.volume}%")

    async def set_volume_max(self) -> None:
        self.volume = 100
        self.speak("Volume set to maximum")

    async def set_volume_min(self) -> None:
        self.volume = 0
        self.speak("Volume muted")

    async def handle_silent_mode(self, command: str) -> None:
        if _has_word(command, "on", "enable"):
            await self.set_volume_min()
            self.speak("Device is now in silent mode")
        elif _has_word(command, "off", "disable"):
            self.volume = SILENT_RESTORE_VOLUME
            self.speak("Silent mode disabled, volume restored")
        else:
            self.speak("Say 'enable silent mode' or 'disable silent mode'")

    # Settings and info

    def handle_brightness(self, command: str) -> None:
        if _has_word(command, "up", "increase"):
            self.speak("Please increase brightness manually in settings")
        elif _has_word(command, "down", "decrease"):
            self.speak("Please decrease brightness manually in settings")
        else:
            self.speak("Brightness control requires manual adjustment in device settings")

    def open_settings(self, name: str, command: str) -> None:
        if _has_word(command, "on", "enable"):
            self.speak(f"Opening {name} settings. Please enable {name} manually")
        elif _has_word(command, "off", "disable"):
            self.speak(f"Opening {name} settings. Please disable {name} manually")
        else:
            self.speak(f"Opening {name} settings")

    def battery_info(self) -> None:
        status = read_battery_status()
        if status is None:
            self.speak("Battery information is not available on this device")
            return
        percentage, charging = status
        self.speak(f"Battery is at {percentage}% {'and charging' if charging else 'and not charging'}")

    def device_info(self) -> None:
        name = self.context.settings.device_name
        self.speak(f"Device: {name}, System version: {platform.system()} {platform.release()}")

    def status(self) -> dict:
        return {"flashlight_on": self.flashlight_on, "volume": self.volume}
