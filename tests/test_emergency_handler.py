"""
Tests for the emergency handler: calls, SOS procedures, logs and fallbacks.
"""

import pytest
from unittest.mock import patch

from voiceassist.commands.types import Domain
from voiceassist.handlers.emergency import (
    EMERGENCY_CONTACTS_KEY,
    EMERGENCY_LOGS_KEY,
    FALLBACK_MESSAGE,
    FIRE_GUIDANCE,
    SOS_LOGS_KEY,
    SOS_FAILURE_MESSAGE,
    emergency_number_for,
)


@pytest.fixture
def emergency(context):
    handler = context.handler(Domain.EMERGENCY)
    yield handler
    context.scheduler.cancel_all()


class TestEmergencyNumbers:

    @pytest.mark.parametrize("country,number", [
        ("us", "911"), ("UK", "999"), ("eu", "112"), ("au", "000"), ("in", "112"),
        ("zz", "911"), (None, "911"),
    ])
    def test_by_country(self, country, number):
        assert emergency_number_for(country) == number


class TestEmergencyCalls:

    @pytest.mark.asyncio
    async def test_call_services_logs_call(self, emergency, speech_output, store, opened_urls):
        await emergency.handle("call 911")
        assert opened_urls == ["tel:911"]
        assert speech_output.spoken[0] == "Calling emergency services at 911. Stay calm, help is on the way."
        logs = store.get_json_list(EMERGENCY_LOGS_KEY)
        assert len(logs) == 1
        assert logs[0]["number"] == "911"
        assert logs[0]["type"] == "services"
        assert logs[0]["deviceInfo"]

    @pytest.mark.asyncio
    async def test_emergency_contact_falls_back_to_services(self, emergency, speech_output, opened_urls):
        await emergency.handle("emergency contact")
        assert speech_output.spoken[0] == "No emergency contacts configured. Calling emergency services instead."
        assert opened_urls == ["tel:911"]

    @pytest.mark.asyncio
    async def test_calls_first_emergency_contact(self, emergency, speech_output, store, opened_urls):
        emergency.add_emergency_contact("alice", "5550001111")
        emergency.add_emergency_contact("carol", "5550002222")
        await emergency.handle("call my emergency contact")
        assert speech_output.spoken[-1] == "Calling emergency contact alice"
        assert opened_urls == ["tel:5550001111"]
        assert store.get_json_list(EMERGENCY_LOGS_KEY)[0]["type"] == "emergency_contact"
        assert store.get_json_list(EMERGENCY_CONTACTS_KEY)[0]["dateAdded"]


class TestSOS:

    @pytest.mark.asyncio
    async def test_sos_runs_device_procedures_and_logs(self, context, emergency, speech_output, store):
        device = context.handler(Domain.DEVICE)
        await emergency.handle("sos")
        assert speech_output.spoken[0].startswith("Activating SOS emergency mode")
        assert device.sos_signal_active is True
        assert device.volume == 100
        sos_logs = store.get_json_list(SOS_LOGS_KEY)
        assert len(sos_logs) == 1
        assert sos_logs[0]["type"] == "SOS_ACTIVATION"

    @pytest.mark.asyncio
    async def test_general_emergency(self, emergency, speech_output, store):
        await emergency.handle("emergency")
        assert speech_output.spoken[0] == "Emergency detected. Activating all emergency procedures."
        assert len(store.get_json_list(SOS_LOGS_KEY)) == 1

    @pytest.mark.asyncio
    async def test_fire_guidance_is_scheduled(self, context, emergency):
        await emergency.handle("there is a fire emergency")
        assert len(context.scheduler.pending("emergency-guidance")) == len(FIRE_GUIDANCE)


class TestFallbacks:

    @pytest.mark.asyncio
    async def test_internal_failure_calls_services(self, emergency, speech_output, opened_urls):
        with patch.object(emergency, "activate_sos", side_effect=RuntimeError("broken")):
            await emergency.handle("sos")
        assert FALLBACK_MESSAGE in speech_output.spoken
        assert opened_urls == ["tel:911"]

    @pytest.mark.asyncio
    async def test_sos_failure_does_not_dial_twice(self, emergency, speech_output, opened_urls):
        """A failing SOS step asks the user to call manually instead of redialling."""
        with patch.object(emergency, "start_sos_procedures", side_effect=RuntimeError("broken")):
            await emergency.handle("sos")
        assert speech_output.spoken[-1] == SOS_FAILURE_MESSAGE
        assert FALLBACK_MESSAGE not in speech_output.spoken
        assert opened_urls == ["tel:911"]

    @pytest.mark.asyncio
    async def test_store_failure_is_spoken(self, emergency, speech_output):
        with patch.object(emergency, "log_emergency_call", side_effect=RuntimeError("disk full")):
            await emergency.call_emergency_services()
        assert speech_output.spoken[-1].startswith("Error calling emergency services")


class TestLocation:

    @pytest.mark.asyncio
    async def test_location_disabled(self, emergency, speech_output):
        await emergency.handle("emergency where am i")
        assert speech_output.spoken[-1] == (
            "Unable to get precise location. Please describe your location to emergency services."
        )

    @pytest.mark.asyncio
    async def test_location_spoken(self, emergency, speech_output, opened_urls):
        with patch.object(emergency, "current_location", return_value="Lisbon, Portugal"):
            await emergency.share_location()
        assert speech_output.spoken[-1] == "Your approximate location is Lisbon, Portugal"
        assert opened_urls == ["https://maps.google.com/?q=current+location"]
