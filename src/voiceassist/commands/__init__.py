"""Command understanding - classification, entity extraction and dispatch."""

from .classifier import CommandClassifier
from .entity import EntityExtractor, looks_like_phone_number
from .pipeline import CommandPipeline
from .router import DispatchRouter
from .types import DispatchResult, Domain, Entity, LastCommand, Utterance

__all__ = [
    "CommandClassifier",
    "CommandPipeline",
    "DispatchRouter",
    "DispatchResult",
    "Domain",
    "Entity",
    "EntityExtractor",
    "LastCommand",
    "Utterance",
    "looks_like_phone_number",
]
