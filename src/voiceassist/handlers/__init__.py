"""Domain handlers and the default registration used by the daemon."""

from .app_control import AppControlHandler
from .base import DomainHandler
from .camera import CameraHandler
from .communication import CommunicationHandler
from .device import DeviceHandler
from .emergency import EmergencyHandler
from .navigation import NavigationHandler


DEFAULT_HANDLERS = (
    EmergencyHandler,
    CameraHandler,
    DeviceHandler,
    CommunicationHandler,
    NavigationHandler,
    AppControlHandler,
)


def register_default_handlers(context) -> None:
    """Register one handler per classified domain on the context."""
    for handler_cls in DEFAULT_HANDLERS:
        context.register_handler(handler_cls(context))


__all__ = [
    "DomainHandler",
    "AppControlHandler",
    "CameraHandler",
    "CommunicationHandler",
    "DeviceHandler",
    "EmergencyHandler",
    "NavigationHandler",
    "register_default_handlers",
]
