"""Common types for command classification and dispatch."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Domain(Enum):
    """Top-level command categories, declared in classification priority order."""
    EMERGENCY = "emergency"
    CAMERA = "camera"
    DEVICE = "device"
    COMMUNICATION = "communication"
    NAVIGATION = "navigation"
    APP_CONTROL = "app_control"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class Utterance:
    """One finalized transcript candidate from the speech engine."""
    text: str
    confidence: float = 1.0
    is_final: bool = True
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class LastCommand:
    """Most recent classified command, kept for display and wake gating."""
    raw_text: str
    domain: Domain
    entity: Optional[str]
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Entity:
    """Residual argument text left after keyword stripping."""
    text: str
    is_phone_number: bool = False


@dataclass
class DispatchResult:
    """Result object for a routed command."""
    domain: Domain
    handled: bool
    error_message: Optional[str] = None
