# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import datetime
import uuid
from azure.iot.device import Message
from .e2e_constants import Fields, FaultInjectionTypes


def make_telemetry_message(message_text, message_index, keys_per_message=0):
    """
    Build one telemetry message for a multiplex send.  Each message carries its index and
    `keys_per_message` generated key/value properties.
    """
    message = Message(message_text)
    message.message_id = str(uuid.uuid4())
    message.custom_properties[Fields.MESSAGE_COUNT] = str(message_index)
    for j in range(keys_per_message):
        message.custom_properties[Fields.KEY_PREFIX + str(j)] = Fields.VALUE_PREFIX + str(j)
    return message


def make_fault_injection_message(fault_injection_type, delay_in_seconds=5):
    """
    Build a message that asks the hub to break the connection it arrives on.
    """
    message = Message(" ")
    message.custom_properties[Fields.FAULT_OPERATION_TYPE] = fault_injection_type
    message.custom_properties[
        Fields.FAULT_OPERATION_CLOSE_REASON
    ] = FaultInjectionTypes.CLOSE_REASONS[fault_injection_type]
    message.custom_properties[Fields.FAULT_OPERATION_DELAY_IN_SECS] = delay_in_seconds
    return message


def is_fault_injection_message(message):
    return Fields.FAULT_OPERATION_TYPE in message.custom_properties


def set_message_expiry(message, seconds_from_now):
    message.expiry_time_utc = (
        datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=seconds_from_now)
    ).isoformat()


def has_expected_properties(message, expected_properties):
    """
    Return True if every expected custom property is on the message with the expected value.
    """
    for key, value in expected_properties.items():
        if message.custom_properties.get(key) != value:
            return False
    return True


def has_expected_system_properties(message, correlation_id, message_id):
    if message.correlation_id != correlation_id:
        return False
    if message.message_id != message_id:
        return False
    return True
