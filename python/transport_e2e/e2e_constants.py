# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.


class Const(object):
    """
    Generic constants that don't have another home
    """

    JSON_CONTENT_TYPE = "application/json"
    JSON_CONTENT_ENCODING = "utf-8"

    # Prefix for every device identity created by the harness.  Makes leaked devices easy to find.
    DEVICE_ID_PREFIX = "00e2etest-delete-me-python-multiplex-"


class Fields(object):
    """
    Names of properties attached to messages sent and received by the harness
    """

    # Index of a telemetry message within the session that sent it
    MESSAGE_COUNT = "messageCount"

    # Prefix for the generated key/value property pairs, as in key0=value0
    KEY_PREFIX = "key"
    VALUE_PREFIX = "value"

    # ---------------------------------------------
    # Cloud-to-device system properties (on send)
    # ---------------------------------------------
    CORRELATION_ID = "correlationId"
    MESSAGE_ID = "messageId"
    CONTENT_TYPE = "contentType"
    CONTENT_ENCODING = "contentEncoding"

    # -----------------------------
    # Fault injection properties
    # -----------------------------
    FAULT_OPERATION_TYPE = "AzIoTHub_FaultOperationType"
    FAULT_OPERATION_CLOSE_REASON = "AzIoTHub_FaultOperationCloseReason"
    FAULT_OPERATION_DELAY_IN_SECS = "AzIoTHub_FaultOperationDelayInSecs"


class StatusCode(object):
    """
    Status codes delivered to a send completion callback
    """

    OK = "OK"
    OK_EMPTY = "OK_EMPTY"
    BAD_FORMAT = "BAD_FORMAT"
    UNAUTHORIZED = "UNAUTHORIZED"
    TOO_MANY_DEVICES = "TOO_MANY_DEVICES"
    HUB_OR_DEVICE_ID_NOT_FOUND = "HUB_OR_DEVICE_ID_NOT_FOUND"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    REQUEST_ENTITY_TOO_LARGE = "REQUEST_ENTITY_TOO_LARGE"
    THROTTLED = "THROTTLED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVER_BUSY = "SERVER_BUSY"
    ERROR = "ERROR"
    MESSAGE_CANCELLED_ONCLOSE = "MESSAGE_CANCELLED_ONCLOSE"


class ConnectionStatus(object):
    """
    Connection states reported by a device session
    """

    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"


class Transports(object):
    """
    Transports that a device session can be opened over
    """

    MQTT = "mqtt"
    MQTT_WS = "mqttws"

    CHOICES = [MQTT, MQTT_WS]


class FaultInjectionTypes(object):
    """
    Fault operations understood by the hub when sent as message properties
    """

    KILL_TCP = "KillTcp"
    SHUTDOWN_MQTT = "ShutDownMqtt"

    CLOSE_REASONS = {
        KILL_TCP: " severs the TCP connection ",
        SHUTDOWN_MQTT: " cleanly shutdowns the MQTT connection ",
    }


class WorkerState(object):
    """
    States that a single worker passes through while driving one device session
    """

    NOT_STARTED = "NotStarted"
    SESSION_OPENING = "SessionOpening"
    SESSION_OPENING_RETRY = "SessionOpeningRetry"
    SENDING = "Sending"
    WAITING_FOR_CALLBACK = "WaitingForCallback"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"

    TERMINAL_STATES = [SUCCEEDED, FAILED, TIMED_OUT]


class Events(object):
    """
    Names of different Azure Monitor events
    """

    # The harness is starting a run
    STARTING_RUN = "StartingRun"

    # The harness has joined all workers and produced a verdict
    ENDING_RUN = "EndingRun"

    # A worker gave up opening its session
    SESSION_OPEN_FAILED = "SessionOpenFailed"

    # A worker finished with a failure
    WORKER_FAILED = "WorkerFailed"


class CustomDimensions(object):
    """
    Names of customDimension fields pushed to Azure Monitor
    """

    # OS type, e.g. Linux, Windows
    OS_TYPE = "osType"

    # Language being used.  e.g. Python, Node, dotnet
    SDK_LANGUAGE = "sdkLanguage"

    # Version of language being used.  e.g. 3.8.1
    SDK_LANGUAGE_VERSION = "sdkLanguageVersion"

    # Version of the SDK library being tested.  e.g. 2.4.2
    SDK_VERSION = "sdkVersion"

    # RunId for the run
    RUN_ID = "runId"

    # Hub instance being used, without the .azuredevices.net suffix
    HUB = "hub"

    # Transport being used by the sessions under test
    TRANSPORT = "transport"
