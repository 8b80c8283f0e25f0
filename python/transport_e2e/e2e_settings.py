# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import os
import json
import logging
from .errors import SettingsNotFoundError

logger = logging.getLogger("e2e.{}".format(__name__))

SETTINGS_FILE_NAME = "_e2e_settings.json"

# Environment variables used when no settings file can be found
IOTHUB_CONNECTION_STRING_ENV_VAR_NAME = "IOTHUB_CONNECTION_STRING"
APP_INSIGHTS_CONNECTION_STRING_ENV_VAR_NAME = "E2E_APP_INSIGHTS_CONNECTION_STRING"


class E2eSettings(object):
    """
    Settings for a test run.  Passed explicitly to anything that needs to talk to the hub.
    """

    def __init__(self, iothub_connection_string, app_insights_connection_string=None):
        self.iothub_connection_string = iothub_connection_string
        self.app_insights_connection_string = app_insights_connection_string

        parts = parse_connection_string(iothub_connection_string)
        if "HostName" not in parts:
            raise ValueError("IoTHub connection string does not contain HostName")

        # Name of hub.  DNS name for the hub without the azure-devices.net suffix
        self.iothub_hostname = parts["HostName"]
        self.iothub_name = self.iothub_hostname.split(".")[0]


def parse_connection_string(connection_string):
    """
    Split a `key1=value1;key2=value2` connection string into a dict
    """
    parts = {}
    for key_and_value in connection_string.split(";"):
        if not key_and_value:
            continue
        key, value = key_and_value.split("=", 1)
        parts[key] = value
    return parts


def find_settings_file(start_path):
    """
    Look for a settings file in `start_path` and then in each parent directory.  Returns the
    first file found or `None`.
    """
    test_path = os.path.realpath(start_path)
    while True:
        filename = os.path.join(test_path, SETTINGS_FILE_NAME)
        if os.path.isfile(filename):
            return filename
        new_test_path = os.path.dirname(test_path)
        if new_test_path == test_path:
            return None
        test_path = new_test_path


def get_settings(start_path=None, environ=None):
    """
    Load settings from a `_e2e_settings.json` file, or from environment variables if there is
    no settings file.  Raises `SettingsNotFoundError` if neither one has a connection string.
    """
    if environ is None:
        environ = os.environ

    filename = find_settings_file(start_path or os.getcwd())
    if filename:
        with open(filename, "r") as f:
            secrets = json.load(f)
        logger.info("settings loaded from {}".format(filename))
        iothub_connection_string = secrets.get("iothubConnectionString", None)
        app_insights_connection_string = secrets.get("appInsightsConnectionString", None)
    else:
        iothub_connection_string = environ.get(IOTHUB_CONNECTION_STRING_ENV_VAR_NAME)
        app_insights_connection_string = environ.get(APP_INSIGHTS_CONNECTION_STRING_ENV_VAR_NAME)

    if not iothub_connection_string:
        raise SettingsNotFoundError(
            "No {} file found and {} is not set".format(
                SETTINGS_FILE_NAME, IOTHUB_CONNECTION_STRING_ENV_VAR_NAME
            )
        )

    return E2eSettings(iothub_connection_string, app_insights_connection_string)
