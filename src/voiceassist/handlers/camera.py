"""Camera commands: photos, selfies, countdown photos and video recording."""

from __future__ import annotations

import asyncio
import re
from typing import Optional

from ..commands.types import Domain
from ..debug import debug_log
from ..listening.scheduler import ScheduledTask
from .base import DomainHandler


MAX_RECORDING_SECONDS = 300.0


class CameraHandler(DomainHandler):

    def __init__(self, context):
        super().__init__(context)
        self.is_recording = False
        self.photos_taken = 0
        self._recording_timer: Optional[ScheduledTask] = None

    @property
    def domain(self) -> Domain:
        return Domain.CAMERA

    async def handle(self, command: str) -> None:
        countdown = re.search(r"in (\d+) seconds?", command)
        if countdown and ("photo" in command or "picture" in command):
            await self.take_photo_with_countdown(int(countdown.group(1)))
        elif any(p in command for p in ("take photo", "take a photo", "take picture", "take a picture", "capture", "snap")):
            await self.take_photo()
        elif "selfie" in command or "front camera" in command:
            await self.take_selfie()
        elif "start recording" in command or "record video" in command or "record a video" in command:
            await self.start_video_recording()
        elif "stop recording" in command or "stop video" in command:
            await self.stop_video_recording()
        elif "open camera" in command:
            self.speak("Opening camera app")
        elif "close camera" in command:
            self.close_camera()
        else:
            self.speak("I didn't understand the camera command. Try saying 'take photo', 'start recording', or 'open camera'")

    async def take_photo(self) -> None:
        self.speak("Taking photo now")
        self.photos_taken += 1
        debug_log(f"photo {self.photos_taken} captured", "handler")
        self.speak("Photo taken successfully")

    async def take_selfie(self) -> None:
        self.speak("Taking selfie with front camera")
        self.photos_taken += 1
        self.speak("Selfie taken successfully")

    async def take_photo_with_countdown(self, seconds: int = 3) -> None:
        seconds = max(1, min(10, seconds))
        self.speak(f"Taking photo in {seconds} seconds")

        async def _countdown():
            for count in range(seconds, 0, -1):
                self.speak(str(count))
                await asyncio.sleep(1.0)
            await self.take_photo()

        self.context.scheduler.schedule(1.0, _countdown, name="photo-countdown")

    async def start_video_recording(self) -> None:
        if self.is_recording:
            self.speak("Already recording video")
            return
        self.speak("Starting video recording")
        self.is_recording = True
        self._recording_timer = self.context.scheduler.schedule(
            MAX_RECORDING_SECONDS, self.stop_video_recording, name="recording-limit"
        )

    async def stop_video_recording(self) -> None:
        if not self.is_recording:
            self.speak("Not currently recording")
            return
        self.speak("Stopping video recording")
        self._stop_recording()

    def close_camera(self) -> None:
        self.speak("Closing camera")
        self._stop_recording()

    def _stop_recording(self) -> None:
        self.is_recording = False
        if self._recording_timer is not None:
            self._recording_timer.cancel()
            self._recording_timer = None
