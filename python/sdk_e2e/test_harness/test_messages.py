# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import datetime
from azure.iot.device import Message
from transport_e2e import messages
from transport_e2e.e2e_constants import Fields, FaultInjectionTypes


@pytest.mark.describe("make_telemetry_message")
class TestMakeTelemetryMessage(object):
    @pytest.mark.it("Carries the message index and the generated key/value pairs")
    def test_properties(self, random_string):
        message = messages.make_telemetry_message(random_string, 3, 10)

        assert message.data == random_string
        assert message.custom_properties[Fields.MESSAGE_COUNT] == "3"
        for j in range(10):
            assert message.custom_properties["key{}".format(j)] == "value{}".format(j)
        assert len(message.custom_properties) == 11

    @pytest.mark.it("Gives every message a different messageId")
    def test_message_id(self):
        ids = set(messages.make_telemetry_message("text", i).message_id for i in range(5))
        assert len(ids) == 5


@pytest.mark.describe("Fault injection messages")
class TestFaultInjectionMessages(object):
    @pytest.mark.it("Carries the fault type, close reason and delay")
    @pytest.mark.parametrize(
        "fault_type", [FaultInjectionTypes.KILL_TCP, FaultInjectionTypes.SHUTDOWN_MQTT]
    )
    def test_properties(self, fault_type):
        message = messages.make_fault_injection_message(fault_type, 3)

        assert message.custom_properties[Fields.FAULT_OPERATION_TYPE] == fault_type
        assert (
            message.custom_properties[Fields.FAULT_OPERATION_CLOSE_REASON]
            == FaultInjectionTypes.CLOSE_REASONS[fault_type]
        )
        assert message.custom_properties[Fields.FAULT_OPERATION_DELAY_IN_SECS] == 3
        assert messages.is_fault_injection_message(message)

    @pytest.mark.it("Is not confused with a telemetry message")
    def test_telemetry_is_not_fault(self):
        message = messages.make_telemetry_message("text", 0, 10)
        assert not messages.is_fault_injection_message(message)


@pytest.mark.describe("set_message_expiry")
class TestSetMessageExpiry(object):
    @pytest.mark.it("Sets an expiry time in the near future")
    def test_expiry(self):
        message = Message("text")
        before = datetime.datetime.now(datetime.timezone.utc)
        messages.set_message_expiry(message, 5)

        expiry = datetime.datetime.fromisoformat(message.expiry_time_utc)
        assert before < expiry <= before + datetime.timedelta(seconds=10)


@pytest.mark.describe("Received message checks")
class TestReceivedMessageChecks(object):
    @pytest.mark.it("Accepts a message with all of the expected properties")
    def test_expected_properties(self, random_properties):
        message = Message("text")
        message.custom_properties.update(random_properties)
        message.custom_properties["extra"] = "fine"
        assert messages.has_expected_properties(message, random_properties)

    @pytest.mark.it("Rejects a message with a missing or different property")
    def test_unexpected_properties(self, random_properties):
        message = Message("text")
        message.custom_properties.update(random_properties)
        message.custom_properties["name1"] = "something else"
        assert not messages.has_expected_properties(message, random_properties)

        del message.custom_properties["name1"]
        assert not messages.has_expected_properties(message, random_properties)

    @pytest.mark.it("Checks the correlationId and messageId")
    def test_system_properties(self):
        message = Message("text")
        message.correlation_id = "1234"
        message.message_id = "5678"
        assert messages.has_expected_system_properties(message, "1234", "5678")
        assert not messages.has_expected_system_properties(message, "1234", "0000")
        assert not messages.has_expected_system_properties(message, "0000", "5678")
