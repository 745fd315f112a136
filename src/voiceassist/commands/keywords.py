"""Static keyword tables for classification and entity extraction.

Trigger tables are ordered: the classifier checks domains in the order of
DOMAIN_PRIORITY and returns the first whose triggers appear in the command.
Stopword tables list filler words removed when recovering a command's entity.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from .types import Domain


DOMAIN_PRIORITY: Tuple[Domain, ...] = (
    Domain.EMERGENCY,
    Domain.CAMERA,
    Domain.DEVICE,
    Domain.COMMUNICATION,
    Domain.NAVIGATION,
    Domain.APP_CONTROL,
)


DOMAIN_TRIGGERS: Mapping[Domain, Tuple[str, ...]] = MappingProxyType({
    Domain.EMERGENCY: ("emergency", "help", "call 911", "call emergency", "urgent"),
    Domain.CAMERA: ("camera", "photo", "picture", "record", "video", "selfie"),
    Domain.DEVICE: ("flashlight", "torch", "volume", "brightness", "wifi", "airplane"),
    Domain.COMMUNICATION: ("call", "text", "message", "sms", "phone", "contact"),
    Domain.NAVIGATION: ("navigate", "directions", "map", "location", "gps"),
    Domain.APP_CONTROL: ("exit", "close", "quit", "open app", "launch"),
})


# Shared politeness and article fillers
COMMON_STOPWORDS: Tuple[str, ...] = (
    "can you", "could you", "would you", "i want to", "i need to",
    "please", "to", "the", "a", "an", "my",
)


DOMAIN_STOPWORDS: Mapping[Domain, Tuple[str, ...]] = MappingProxyType({
    Domain.EMERGENCY: ("call", "emergency", "services", "help", "urgent", "now") + COMMON_STOPWORDS,
    Domain.CAMERA: ("take", "open", "close", "start", "stop", "camera") + COMMON_STOPWORDS,
    Domain.DEVICE: ("turn", "set", "switch", "on", "off") + COMMON_STOPWORDS,
    Domain.COMMUNICATION: ("call", "text", "message", "sms", "send", "phone", "dial") + COMMON_STOPWORDS,
    Domain.NAVIGATION: ("navigate", "directions", "go", "open", "show", "me", "app", "application") + COMMON_STOPWORDS,
    Domain.APP_CONTROL: ("open", "launch", "app", "application") + COMMON_STOPWORDS,
    Domain.UNCLASSIFIED: COMMON_STOPWORDS,
})
