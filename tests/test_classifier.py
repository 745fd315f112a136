"""
Tests for ordered command classification.
"""

import pytest

from voiceassist.commands.classifier import CommandClassifier, contains_any, default_matchers
from voiceassist.commands.keywords import DOMAIN_PRIORITY
from voiceassist.commands.types import Domain


class TestDefaultClassification:
    """Tests for the default keyword tables."""

    @pytest.mark.parametrize("command,expected", [
        ("call 911", Domain.EMERGENCY),
        ("i need help", Domain.EMERGENCY),
        ("take a photo", Domain.CAMERA),
        ("start recording video", Domain.CAMERA),
        ("turn on flashlight", Domain.DEVICE),
        ("volume up", Domain.DEVICE),
        ("call mom", Domain.COMMUNICATION),
        ("send a message to bob", Domain.COMMUNICATION),
        ("navigate to the airport", Domain.NAVIGATION),
        ("get directions home", Domain.NAVIGATION),
        ("exit", Domain.APP_CONTROL),
        ("launch spotify", Domain.APP_CONTROL),
    ])
    def test_domains(self, command, expected):
        assert CommandClassifier().classify(command) == expected

    def test_emergency_beats_communication(self):
        """A command matching Emergency and Communication resolves to Emergency."""
        assert CommandClassifier().classify("call emergency services") == Domain.EMERGENCY

    def test_camera_beats_app_control(self):
        """'close camera' matches Camera before AppControl's 'close'."""
        assert CommandClassifier().classify("close camera") == Domain.CAMERA

    def test_unmatched_is_unclassified(self):
        assert CommandClassifier().classify("what is the meaning of life") == Domain.UNCLASSIFIED

    def test_empty_is_none(self):
        """Empty command text is noise, not a classification miss."""
        classifier = CommandClassifier()
        assert classifier.classify("") is None
        assert classifier.classify("   ") is None

    def test_input_is_lowercased(self):
        assert CommandClassifier().classify("Take A PHOTO") == Domain.CAMERA

    def test_default_priority_order(self):
        assert CommandClassifier().priority == list(DOMAIN_PRIORITY)


class TestRegistration:
    """Tests for registering custom matchers."""

    def test_custom_matchers_in_registration_order(self):
        classifier = CommandClassifier(matchers=[
            (Domain.NAVIGATION, contains_any(["go"])),
            (Domain.DEVICE, contains_any(["go"])),
        ])
        assert classifier.classify("go home") == Domain.NAVIGATION

    def test_register_appends_at_lowest_priority(self):
        classifier = CommandClassifier(matchers=[])
        classifier.register(Domain.CAMERA, lambda text: "snap" in text)
        classifier.register(Domain.DEVICE, lambda text: True)
        assert classifier.priority == [Domain.CAMERA, Domain.DEVICE]
        assert classifier.classify("snap it") == Domain.CAMERA
        assert classifier.classify("anything") == Domain.DEVICE

    def test_unclassified_cannot_be_registered(self):
        with pytest.raises(ValueError):
            CommandClassifier(matchers=[]).register(Domain.UNCLASSIFIED, lambda text: True)

    def test_default_matchers_cover_every_domain(self):
        domains = [domain for domain, _ in default_matchers()]
        assert Domain.UNCLASSIFIED not in domains
        assert len(domains) == 6
