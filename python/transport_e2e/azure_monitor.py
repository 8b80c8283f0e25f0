# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import logging
import platform
from opencensus.ext.azure.log_exporter import AzureEventHandler
from opencensus.ext.azure.log_exporter import AzureLogHandler
from .e2e_constants import CustomDimensions

_run_id = None
_hub = None
_sdk_version = None
_transport = None


def _default_value():
    """
    use a function to represent a unique value.
    """
    pass


def add_logging_properties(
    run_id=_default_value, hub=_default_value, sdk_version=_default_value, transport=_default_value,
):
    """
    Add customDimension values which will be applied to all Azure Monitor records
    """
    global _run_id, _hub, _sdk_version, _transport
    if run_id != _default_value:
        _run_id = run_id
    if hub != _default_value:
        _hub = hub
    if sdk_version != _default_value:
        _sdk_version = sdk_version
    if transport != _default_value:
        _transport = transport


def telemetry_processor_callback(envelope):
    """
    Apply our customDimension values to records which will eventually be sent to Azure Monitor.
    """
    envelope.tags["ai.cloud.role"] = "transport_e2e"
    if _run_id:
        envelope.tags["ai.cloud.roleInstance"] = _run_id

    properties = envelope.data.baseData.properties
    properties[CustomDimensions.OS_TYPE] = platform.system()
    properties[CustomDimensions.SDK_LANGUAGE] = "python"
    properties[CustomDimensions.SDK_LANGUAGE_VERSION] = platform.python_version()
    if _run_id:
        properties[CustomDimensions.RUN_ID] = _run_id
    if _hub:
        properties[CustomDimensions.HUB] = _hub
    if _sdk_version:
        properties[CustomDimensions.SDK_VERSION] = _sdk_version
    if _transport:
        properties[CustomDimensions.TRANSPORT] = _transport

    # remove some properties that we don't want
    for name in ["level", "module", "process"]:
        if name in properties:
            del properties[name]
    # also remove some tags that we don't want
    for name in [
        "ai.device.id",
        "ai.device.locale",
        "ai.device.type",
        "ai.internal.sdkVersion",
        "ai.operation.id",
        "ai.operation.parentId",
    ]:
        if name in envelope.tags:
            del envelope.tags[name]

    return True


_event_handler = None


def get_event_logger(app_insights_connection_string=None):
    """
    Get the event logger for harness lifecycle events.  When a connection string is provided,
    records sent to this logger become customEvents in Azure Monitor.  Otherwise they only go
    to whatever local handlers are configured.
    """
    global _event_handler
    logger = logging.getLogger("e2e_events")
    logger.setLevel(logging.INFO)

    if app_insights_connection_string and not _event_handler:
        _event_handler = AzureEventHandler(connection_string=app_insights_connection_string)
        _event_handler.add_telemetry_processor(telemetry_processor_callback)
        logger.addHandler(_event_handler)

    return logger


class WarningAndExceptionFilter(logging.Filter):
    """
    Filter object to filter out everything that is WARNING and above.
    """

    def filter(self, record):
        # return True to log.  Log everything less serious than logging.WARNING.
        return record.levelno < logging.WARNING


log_handler = None


def _azure_monitor_one_time_config(app_insights_connection_string):
    """
    one-time config for azure monitor logging.
    """
    global log_handler

    # Log all WARNING, ERROR, and CRITICAL messages to Azure Monitor, regardless of the module
    # that produced them and any logging levels set in other loggers.
    always_log_handler = AzureLogHandler(connection_string=app_insights_connection_string)
    always_log_handler.add_telemetry_processor(telemetry_processor_callback)
    always_log_handler.setLevel(level=logging.WARNING)
    logging.getLogger(None).addHandler(always_log_handler)

    log_handler = AzureLogHandler(connection_string=app_insights_connection_string)
    log_handler.add_telemetry_processor(telemetry_processor_callback)

    # `always_log_handler` above already sends warnings and exceptions up to Azure Monitor.
    # Filter these levels from `log_handler` so we don't push them up twice.
    log_handler.addFilter(WarningAndExceptionFilter())


def log_to_azure_monitor(logger_name, app_insights_connection_string):
    """
    Log all messages sent to a specific logger to Azure Monitor.  Does nothing if there is
    no connection string.
    """
    if not app_insights_connection_string:
        return

    if not log_handler:
        _azure_monitor_one_time_config(app_insights_connection_string)

    logging.getLogger(logger_name).addHandler(log_handler)
