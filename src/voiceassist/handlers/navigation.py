"""Navigation: open apps by URL scheme, directions, and system screens."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote_plus

from ..commands.types import Domain
from .base import DomainHandler


APP_SCHEMES = {
    "whatsapp": "whatsapp://",
    "facebook": "fb://",
    "instagram": "instagram://",
    "twitter": "twitter://",
    "youtube": "youtube://",
    "gmail": "googlegmail://",
    "google maps": "comgooglemaps://",
    "maps": "maps://",
    "spotify": "spotify://",
    "netflix": "nflx://",
    "uber": "uber://",
    "messenger": "fb-messenger://",
    "telegram": "tg://",
    "calculator": "calculator://",
    "calendar": "calshow://",
    "notes": "mobilenotes://",
    "clock": "clock://",
    "weather": "weather://",
}

MAPS_URL = "https://maps.google.com/maps?q={query}"
SEARCH_URL = "https://www.google.com/search?q={query}"

_APP_WORDS = ("launch", "start", "run")
_DESTINATION_WORDS = ("take me", "drive", "map", "maps", "get", "how do i get")


def resolve_app_scheme(app_name: str) -> Optional[str]:
    """Exact app name first, then the first partial match either way round."""
    name = app_name.lower().strip()
    if name in APP_SCHEMES:
        return APP_SCHEMES[name]
    for key, scheme in APP_SCHEMES.items():
        if key in name or name in key:
            return scheme
    return None


class NavigationHandler(DomainHandler):

    @property
    def domain(self) -> Domain:
        return Domain.NAVIGATION

    async def handle(self, command: str) -> None:
        if "open" in command and ("app" in command or "application" in command):
            await self.open_app(command)
        elif "navigate" in command or "directions" in command or "map" in command:
            await self.navigate(command)
        elif "go to" in command and "website" not in command and "settings" not in command:
            await self.navigate(command)
        elif "settings" in command:
            self.open_settings(command)
        elif "home screen" in command or "launcher" in command:
            self.speak("Please press the home button to go to home screen")
        elif "back" in command or "previous" in command:
            self.speak("Please use the back button or back gesture")
        elif "recent apps" in command or "task switcher" in command:
            self.speak("Please use the recent apps button or gesture")
        elif "notifications" in command:
            self.speak("Please swipe down from the top to see notifications")
        elif "search for" in command:
            await self.search_web(command.split("search for", 1)[1].strip())
        else:
            self.speak("I didn't understand the navigation command. Try saying 'open app', 'navigate to', or 'go to settings'")

    async def open_app(self, command: str) -> bool:
        entity = self.extract(command, *_APP_WORDS)
        if entity is None:
            self.speak("Which app would you like to open?")
            return False

        app_name = entity.text
        self.speak(f"Opening {app_name}")
        scheme = resolve_app_scheme(app_name)
        if scheme is None or not self.open_url(scheme):
            self.speak(f"I couldn't find an app called {app_name}. Please make sure it's installed.")
            return False
        return True

    async def navigate(self, command: str) -> bool:
        entity = self.extract(command, *_DESTINATION_WORDS)
        if entity is None:
            self.speak("Where would you like to navigate to?")
            return False

        destination = entity.text
        self.speak(f"Getting directions to {destination}")
        if not self.open_url(MAPS_URL.format(query=quote_plus(destination))):
            self.speak("Unable to open navigation. Please install a maps app.")
            return False
        return True

    def open_settings(self, command: str) -> None:
        for keyword, label in (("wifi", "WiFi"), ("bluetooth", "Bluetooth"), ("display", "display"), ("sound", "sound")):
            if keyword in command:
                self.speak(f"Opening {label} settings")
                return
        self.speak("Opening device settings")

    async def search_web(self, query: str) -> None:
        if not query:
            self.speak("What would you like to search for?")
            return
        self.speak(f"Searching for {query}")
        self.open_url(SEARCH_URL.format(query=quote_plus(query)))
