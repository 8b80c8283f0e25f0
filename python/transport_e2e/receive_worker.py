# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import logging
from .completion_gate import GateList
from .e2e_constants import Fields
from .errors import GateAlreadyFiredError
from .messages import has_expected_properties

logger = logging.getLogger("e2e.{}".format(__name__))

DEFAULT_EXPECTED_CORRELATION_ID = "1234"

DEFAULT_EXPECTED_PROPERTIES = {"name1": "value1", "name2": "value2", "name3": "value3"}


class C2dReceiveWorker(object):
    """
    Verifies that cloud-to-device messages arrive at a session with all of their properties.

    Each verification makes a gate and uses the gate's id as the messageId of the c2d message.
    When the message arrives, the handler finds the gate by that id and fires it with True if
    the correlationId and custom properties came through intact, or False if they didn't.
    """

    def __init__(
        self,
        send_c2d_message,
        gate_list=None,
        expected_properties=None,
        expected_correlation_id=DEFAULT_EXPECTED_CORRELATION_ID,
    ):
        self.send_c2d_message = send_c2d_message
        self.gate_list = gate_list or GateList()
        self.expected_properties = expected_properties or dict(DEFAULT_EXPECTED_PROPERTIES)
        self.expected_correlation_id = expected_correlation_id

    def attach(self, session):
        session.set_message_received_handler(self.handle_message_received)

    def handle_message_received(self, message):
        gate = self.gate_list.get(message.message_id)
        if not gate:
            logger.warning("Received unknown messageId: {}".format(message.message_id))
            return

        passed = message.correlation_id == self.expected_correlation_id and has_expected_properties(
            message, self.expected_properties
        )
        if not passed:
            logger.warning(
                "Message {} arrived with correlationId={} and properties={}".format(
                    message.message_id, message.correlation_id, message.custom_properties
                )
            )

        try:
            gate.fire(passed, result_message=message)
        except GateAlreadyFiredError:
            # c2d delivery is at-least-once, so the same message can show up again.
            logger.warning("Message {} received more than once".format(message.message_id))

    def send_and_verify(self, device_id, timeout, poll_interval=0.1, message_text=None):
        """
        Send one c2d message to `device_id` and wait for it to arrive.  Returns True if it
        arrived with the expected properties.  Raises `SendTimeout` if it never arrived.
        """
        gate = self.gate_list.make_gate()
        try:
            properties = dict(self.expected_properties)
            properties[Fields.CORRELATION_ID] = self.expected_correlation_id
            properties[Fields.MESSAGE_ID] = gate.id

            if message_text is None:
                message_text = "Python service e2e test message to {}".format(device_id)
            self.send_c2d_message(device_id, message_text, properties)

            return gate.wait_until_fired(poll_interval, timeout)
        finally:
            gate.remove_from_owning_list()
