# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.


class HarnessError(Exception):
    """
    Base class for failures detected by the harness
    """

    pass


class TransientOpenFailure(HarnessError):
    """
    A session failed to open in a way that is expected to go away if we try again.
    """

    pass


class OpenRetryTimeout(HarnessError):
    """
    A session could not be opened before the open retry deadline elapsed.
    """

    def __init__(self, session_id, timeout, attempts, last_error=None):
        super(OpenRetryTimeout, self).__init__(
            "Could not open session {} after {} attempts in {} seconds (last error: {})".format(
                session_id, attempts, timeout, last_error
            )
        )
        self.session_id = session_id
        self.timeout = timeout
        self.attempts = attempts
        self.last_error = last_error


class SendTimeout(HarnessError, TimeoutError):
    """
    A completion gate was never fired before its timeout elapsed.
    """

    pass


class StatusMismatch(HarnessError):
    """
    A completion gate fired with a status code other than the one we expected.
    """

    def __init__(self, expected, actual, message_index=None):
        super(StatusMismatch, self).__init__(
            "Unexpected status code for message {}: expected {} but got {}".format(
                message_index, expected, actual
            )
        )
        self.expected = expected
        self.actual = actual
        self.message_index = message_index


class UnexpectedException(HarnessError):
    """
    Wraps any other exception that was caught inside a worker.
    """

    def __init__(self, inner):
        super(UnexpectedException, self).__init__(
            "Exception encountered while sending messages: {}".format(repr(inner))
        )
        self.inner = inner


class ConnectionStatusNotObserved(HarnessError):
    """
    A session never reported the connection status a worker was configured to expect.
    """

    def __init__(self, expected, observed):
        super(ConnectionStatusNotObserved, self).__init__(
            "Expected connection status update to occur: {} (observed: {})".format(
                expected, observed
            )
        )
        self.expected = expected
        self.observed = observed


class GateAlreadyFiredError(HarnessError):
    """
    `fire` was called on a completion gate that had already been fired.
    """

    pass


class SettingsNotFoundError(HarnessError):
    """
    No hub connection string could be found in a settings file or the environment.
    """

    pass
