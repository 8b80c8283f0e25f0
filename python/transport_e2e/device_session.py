# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from azure.iot.device import IoTHubDeviceClient
from azure.iot.device.exceptions import (
    ConnectionFailedError,
    ConnectionDroppedError,
    CredentialError,
    NoConnectionError,
    OperationCancelled,
    OperationTimeout,
    ServiceError,
)
from .e2e_constants import StatusCode, ConnectionStatus, Transports
from .errors import TransientOpenFailure, OpenRetryTimeout
from .measurement import ThreadSafeList

logger = logging.getLogger("e2e.{}".format(__name__))

# Exceptions from `connect` that are worth another try
TRANSIENT_OPEN_ERRORS = (
    ConnectionFailedError,
    ConnectionDroppedError,
    NoConnectionError,
    OperationTimeout,
    OperationCancelled,
)


def status_code_from_exception(e):
    """
    Translate an exception raised by `send_message` into the status code that we hand to the
    completion callback.
    """
    if isinstance(e, CredentialError):
        return StatusCode.UNAUTHORIZED
    elif isinstance(e, OperationCancelled):
        return StatusCode.MESSAGE_CANCELLED_ONCLOSE
    elif isinstance(e, ValueError):
        # The client raises ValueError for messages over the size limit
        return StatusCode.REQUEST_ENTITY_TOO_LARGE
    elif isinstance(e, ServiceError):
        return StatusCode.INTERNAL_SERVER_ERROR
    else:
        return StatusCode.ERROR


class IoTHubDeviceSession(object):
    """
    One device session.  Adapts the blocking `IoTHubDeviceClient` API to the
    open / send_async / close shape that the harness drives.

    `send_async` runs `send_message` on a single-threaded executor, so messages sent through
    one session stay in order.  When the send finishes, the outcome is turned into a status
    code and passed to `on_complete`.
    """

    def __init__(self, session_id, connection_string, transport=Transports.MQTT, **client_kwargs):
        self.session_id = session_id
        self.connection_string = connection_string
        self.transport = transport
        self.client_kwargs = client_kwargs
        self.client = None
        self.send_executor = None
        self.connection_status_updates = ThreadSafeList()
        self.connection_state_callbacks = []
        self.message_received_handler = None

    def _create_client(self):
        kwargs = dict(self.client_kwargs)
        if self.transport == Transports.MQTT_WS:
            kwargs["websockets"] = True
        logger.info(
            "Creating client for session {} with kwargs={}".format(self.session_id, kwargs)
        )
        client = IoTHubDeviceClient.create_from_connection_string(
            self.connection_string, **kwargs
        )
        client.on_connection_state_change = self._handle_connection_state_change
        if self.message_received_handler:
            client.on_message_received = self.message_received_handler
        return client

    def _handle_connection_state_change(self):
        if self.client and self.client.connected:
            status = ConnectionStatus.CONNECTED
        else:
            status = ConnectionStatus.DISCONNECTED
        logger.info("Session {} connection status: {}".format(self.session_id, status))
        self.connection_status_updates.append(status)
        for callback in list(self.connection_state_callbacks):
            callback(status)

    def register_connection_state_callback(self, callback):
        self.connection_state_callbacks.append(callback)

    def set_message_received_handler(self, handler):
        self.message_received_handler = handler
        if self.client:
            self.client.on_message_received = handler

    def open(self):
        if not self.client:
            self.client = self._create_client()

        try:
            self.client.connect()
        except TRANSIENT_OPEN_ERRORS as e:
            raise TransientOpenFailure(
                "Session {} failed to open: {}".format(self.session_id, repr(e))
            ) from e

        if not self.send_executor:
            self.send_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="send-{}".format(self.session_id)
            )

    def send_async(self, message, on_complete):
        def send_and_complete():
            try:
                self.client.send_message(message)
            except Exception as e:
                status = status_code_from_exception(e)
                logger.warning(
                    "Session {} send_message raised {}. Completing with {}".format(
                        self.session_id, repr(e), status
                    )
                )
            else:
                status = StatusCode.OK_EMPTY
            on_complete(status)

        return self.send_executor.submit(send_and_complete)

    def close(self):
        if self.client:
            logger.info("Closing session {}".format(self.session_id))
            self.client.shutdown()
            self.client = None
        if self.send_executor:
            # Don't wait.  Any send that is still in flight completes into a gate that nobody
            # is watching any more.
            self.send_executor.shutdown(wait=False)
            self.send_executor = None


def open_session_with_retry(session, open_retry_timeout, open_retry_interval=0, on_retry=None):
    """
    Call `session.open` until it succeeds.  `TransientOpenFailure` is retried until
    `open_retry_timeout` seconds have passed, at which point `OpenRetryTimeout` is raised.
    Any other exception is fatal and is raised immediately.

    Returns the number of attempts it took.
    """
    start_time = time.time()
    attempts = 0
    last_error = None

    while True:
        attempts += 1
        try:
            session.open()
            logger.info("Session {} opened after {} attempts".format(session.session_id, attempts))
            return attempts
        except TransientOpenFailure as e:
            last_error = e
            logger.info(
                "Session {} open attempt {} failed: {}".format(session.session_id, attempts, e)
            )

        elapsed = time.time() - start_time
        if elapsed >= open_retry_timeout:
            logger.error(
                "Giving up on session {} after {} attempts".format(session.session_id, attempts)
            )
            raise OpenRetryTimeout(session.session_id, open_retry_timeout, attempts, last_error)

        if on_retry:
            on_retry(attempts, last_error)
        time.sleep(max(0, min(open_retry_interval, open_retry_timeout - elapsed)))
