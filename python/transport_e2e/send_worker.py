# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import logging
import time
import functools
from .completion_gate import GateList
from .e2e_constants import StatusCode, WorkerState
from .errors import SendTimeout, StatusMismatch, UnexpectedException, ConnectionStatusNotObserved
from .executor import reset_watchdog
from .measurement import ThreadSafeCounter, ThreadSafeFlag
from .messages import make_telemetry_message, is_fault_injection_message, set_message_expiry

logger = logging.getLogger("e2e.{}".format(__name__))

# Fault injection messages aren't guaranteed to be acked, so they may be re-sent.  A short
# expiry keeps them from being re-sent (and breaking the connection) too many times.
FAULT_INJECTION_MESSAGE_EXPIRY_IN_SECONDS = 0.2


class SendMetrics(object):
    """
    Counters shared by all workers in a run.
    """

    def __init__(self):
        self.send_message_count_sent = ThreadSafeCounter()
        self.send_message_count_verified = ThreadSafeCounter()
        self.send_message_count_timed_out = ThreadSafeCounter()
        self.send_message_count_unexpected_status = ThreadSafeCounter()
        self.exception_count = ThreadSafeCounter()

    def to_dict(self):
        return {
            "sent": self.send_message_count_sent.get_count(),
            "verified": self.send_message_count_verified.get_count(),
            "timedOut": self.send_message_count_timed_out.get_count(),
            "unexpectedStatus": self.send_message_count_unexpected_status.get_count(),
            "exceptions": self.exception_count.get_count(),
        }


class WorkerOutcome(object):
    """
    What happened to one worker.  Filled in as the worker runs.
    """

    def __init__(self, session_id):
        self.session_id = session_id
        self.state = WorkerState.NOT_STARTED
        self.open_attempts = 0
        self.sends_attempted = 0
        self.sends_verified = 0
        self.expected_status_code = None
        self.actual_status_code = None
        self.error = None
        self.errors = []

    @property
    def succeeded(self):
        return self.state == WorkerState.SUCCEEDED

    @property
    def is_terminal(self):
        return self.state in WorkerState.TERMINAL_STATES

    def set_state(self, state):
        """
        Move to a new state.  Ignored once the worker has failed, so a worker that keeps
        sending after a failure stays in its terminal state.
        """
        if not self.error:
            self.state = state

    def record_failure(self, error):
        """
        Mark this worker as failed.  The first error decides the terminal state and the
        actual status code that gets reported.
        """
        self.errors.append(error)
        if not self.error:
            self.error = error
            if isinstance(error, SendTimeout):
                self.state = WorkerState.TIMED_OUT
                self.actual_status_code = None
            else:
                self.state = WorkerState.FAILED
                if isinstance(error, StatusMismatch):
                    self.actual_status_code = error.actual
        logger.error("Session {} failed: {}".format(self.session_id, error))

    def describe(self):
        if self.succeeded:
            return "session {}: {} after {} verified sends".format(
                self.session_id, self.state, self.sends_verified
            )
        return "session {}: {} (expected {}, actual {}) after {} of {} sends verified: {}".format(
            self.session_id,
            self.state,
            self.expected_status_code,
            self.actual_status_code,
            self.sends_verified,
            self.sends_attempted,
            self.error,
        )

    def to_dict(self):
        return {
            "sessionId": self.session_id,
            "state": self.state,
            "openAttempts": self.open_attempts,
            "sendsAttempted": self.sends_attempted,
            "sendsVerified": self.sends_verified,
            "expectedStatusCode": self.expected_status_code,
            "actualStatusCode": self.actual_status_code,
            "error": str(self.error) if self.error else None,
        }


class MultiplexSendWorker(object):
    """
    Sends `message_count` messages over one open session, one at a time.  Each send gets a
    completion gate, and the next message isn't sent until that gate fires (or times out).

    `run` never raises.  Anything that goes wrong is recorded in the outcome and clears
    `aggregate_outcome` so the harness can see it after all workers are done.
    """

    def __init__(
        self,
        session,
        message_count,
        expected_status_code=StatusCode.OK_EMPTY,
        send_timeout=90,
        poll_interval=0.1,
        aggregate_outcome=None,
        gate_list=None,
        metrics=None,
        outcome=None,
        message_text=None,
        message_factory=None,
        keys_per_message=0,
        inter_message_delay=0,
        stop_on_failure=True,
        expected_connection_status=None,
    ):
        self.session = session
        self.message_count = message_count
        self.expected_status_code = expected_status_code
        self.send_timeout = send_timeout
        self.poll_interval = poll_interval
        self.aggregate_outcome = aggregate_outcome or ThreadSafeFlag()
        self.gate_list = gate_list or GateList()
        self.metrics = metrics or SendMetrics()
        self.outcome = outcome or WorkerOutcome(session.session_id)
        self.inter_message_delay = inter_message_delay
        self.stop_on_failure = stop_on_failure
        self.expected_connection_status = expected_connection_status

        if message_factory:
            self.message_factory = message_factory
        else:
            if message_text is None:
                message_text = "Python client {} test e2e message".format(session.session_id)
            self.message_factory = functools.partial(
                _default_message_factory, message_text, keys_per_message
            )

    def run(self):
        self.outcome.expected_status_code = self.expected_status_code
        try:
            for index in range(self.message_count):
                reset_watchdog()
                error = self.send_and_wait(index)
                if error:
                    self.record_failure(error)
                    if self.stop_on_failure:
                        logger.info(
                            "Session {} stopping after failure on message {}".format(
                                self.outcome.session_id, index
                            )
                        )
                        break

                if self.inter_message_delay and index < self.message_count - 1:
                    time.sleep(self.inter_message_delay)

            if self.expected_connection_status and not self.outcome.errors:
                self.check_connection_status()

        except Exception as e:
            self.metrics.exception_count.increment()
            self.record_failure(UnexpectedException(e))

        if not self.outcome.errors:
            self.outcome.state = WorkerState.SUCCEEDED
            logger.info(self.outcome.describe())

        return self.outcome

    def send_and_wait(self, index):
        """
        Send one message and wait for its gate.  Returns the error that should fail this
        worker, or None if the message completed with the expected status code.
        """
        gate = self.gate_list.make_gate()
        try:
            message = self.message_factory(index)
            if is_fault_injection_message(message):
                set_message_expiry(message, FAULT_INJECTION_MESSAGE_EXPIRY_IN_SECONDS)

            self.outcome.set_state(WorkerState.SENDING)
            self.session.send_async(message, gate.fire)
            self.outcome.sends_attempted += 1
            self.metrics.send_message_count_sent.increment()

            self.outcome.set_state(WorkerState.WAITING_FOR_CALLBACK)
            try:
                status_code = gate.wait_until_fired(self.poll_interval, self.send_timeout)
            except SendTimeout:
                logger.warning(
                    "Session {} timed out waiting for message {} callback".format(
                        self.outcome.session_id, index
                    )
                )
                self.metrics.send_message_count_timed_out.increment()
                return SendTimeout(
                    "Message {} was not completed within {} seconds".format(
                        index, self.send_timeout
                    )
                )

            if status_code != self.expected_status_code:
                self.metrics.send_message_count_unexpected_status.increment()
                return StatusMismatch(self.expected_status_code, status_code, index)

            if not self.outcome.error:
                self.outcome.actual_status_code = status_code
            self.outcome.sends_verified += 1
            self.metrics.send_message_count_verified.increment()
            return None

        except Exception as e:
            self.metrics.exception_count.increment()
            return UnexpectedException(e)

        finally:
            gate.remove_from_owning_list()

    def check_connection_status(self):
        observed = self.session.connection_status_updates.get_list()
        if self.expected_connection_status not in observed:
            self.record_failure(
                ConnectionStatusNotObserved(self.expected_connection_status, observed)
            )

    def record_failure(self, error):
        self.outcome.record_failure(error)
        self.aggregate_outcome.clear()


def _default_message_factory(message_text, keys_per_message, index):
    return make_telemetry_message(message_text, index, keys_per_message)
