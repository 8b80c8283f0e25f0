# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import threading
import time
import logging
from transport_e2e.e2e_constants import StatusCode, ConnectionStatus
from transport_e2e.errors import TransientOpenFailure, GateAlreadyFiredError
from transport_e2e.measurement import ThreadSafeCounter, ThreadSafeList

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.INFO)


class FakeDeviceSession(object):
    """
    Stand-in for `IoTHubDeviceSession` that never touches the network.  Each send completes on
    its own thread, the way a client library delivers callbacks.
    """

    def __init__(
        self,
        session_id,
        status_codes=None,
        default_status_code=StatusCode.OK_EMPTY,
        transient_open_failures=0,
        open_always_fails=False,
        open_error=None,
        unanswered_messages=(),
        completion_delay=0,
        message_delays=None,
        fire_twice=False,
        send_error=None,
        close_error=None,
        connection_statuses=(ConnectionStatus.CONNECTED,),
    ):
        self.session_id = session_id
        self.status_codes = list(status_codes or [])
        self.default_status_code = default_status_code
        self.transient_open_failures = transient_open_failures
        self.open_always_fails = open_always_fails
        self.open_error = open_error
        self.unanswered_messages = set(unanswered_messages)
        self.completion_delay = completion_delay
        self.message_delays = dict(message_delays or {})
        self.fire_twice = fire_twice
        self.send_error = send_error
        self.close_error = close_error
        self.connection_statuses = connection_statuses

        self.connection_status_updates = ThreadSafeList()
        self.open_count = ThreadSafeCounter()
        self.close_count = ThreadSafeCounter()
        self.sent_messages = ThreadSafeList()
        self.double_fire_errors = ThreadSafeList()
        self.completion_errors = ThreadSafeList()
        self.in_flight = ThreadSafeCounter()
        self.max_in_flight = 0
        self.is_open = False
        self.completion_threads = []

    def open(self):
        self.open_count.increment()
        if self.open_error:
            raise self.open_error
        if self.open_always_fails or self.open_count.get_count() <= self.transient_open_failures:
            raise TransientOpenFailure("fake open failure for {}".format(self.session_id))

        self.is_open = True
        for status in self.connection_statuses:
            self.connection_status_updates.append(status)

    def send_async(self, message, on_complete):
        assert self.is_open
        if self.send_error:
            raise self.send_error

        index = len(self.sent_messages)
        self.sent_messages.append(message)

        self.in_flight.increment()
        self.max_in_flight = max(self.max_in_flight, self.in_flight.get_count())

        if index in self.unanswered_messages:
            logger.info("{}: never completing message {}".format(self.session_id, index))
            return

        if index < len(self.status_codes):
            status = self.status_codes[index]
        else:
            status = self.default_status_code

        def complete():
            delay = self.message_delays.get(index, self.completion_delay)
            if delay:
                time.sleep(delay)
            self.in_flight.decrement()
            try:
                on_complete(status)
                if self.fire_twice:
                    try:
                        on_complete(status)
                    except GateAlreadyFiredError as e:
                        self.double_fire_errors.append(e)
            except Exception as e:
                logger.error(
                    "{}: completion for message {} raised {}".format(
                        self.session_id, index, repr(e)
                    )
                )
                self.completion_errors.append(e)

        thread = threading.Thread(target=complete, daemon=True)
        thread.start()
        self.completion_threads.append(thread)

    def close(self):
        self.close_count.increment()
        self.is_open = False
        if self.close_error:
            raise self.close_error
