# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import logging
import os
import time
from azure.iot.device.constant import VERSION as DEVICE_SDK_VERSION
from transport_e2e import azure_monitor
from transport_e2e.device_identity_helper import DeviceFixtureManager
from transport_e2e.device_session import IoTHubDeviceSession
from transport_e2e.e2e_settings import get_settings
from transport_e2e.errors import SettingsNotFoundError

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.INFO)

# How many device sessions run side by side
MAX_DEVICE_MULTIPLEX = 3

# Pause after each test so the hub can settle before the next one connects
INTERTEST_GUARDIAN_DELAY_IN_SECONDS = 2


@pytest.fixture(scope="session")
def e2e_settings():
    try:
        return get_settings(os.path.dirname(os.path.abspath(__file__)))
    except SettingsNotFoundError as e:
        pytest.skip(str(e))


@pytest.fixture(scope="session", autouse=True)
def azure_monitor_logging(e2e_settings, run_id, transport):
    azure_monitor.add_logging_properties(
        run_id=run_id,
        hub=e2e_settings.iothub_name,
        sdk_version=DEVICE_SDK_VERSION,
        transport=transport,
    )
    azure_monitor.log_to_azure_monitor("e2e", e2e_settings.app_insights_connection_string)
    azure_monitor.get_event_logger(e2e_settings.app_insights_connection_string)


@pytest.fixture(scope="module")
def device_fixture_manager(e2e_settings):
    manager = DeviceFixtureManager(e2e_settings)
    yield manager
    failed = manager.delete_all_devices()
    if failed:
        logger.error("Leaked devices: {}".format(failed))


@pytest.fixture(scope="module")
def devices(device_fixture_manager):
    return device_fixture_manager.create_devices(MAX_DEVICE_MULTIPLEX, "send")


@pytest.fixture
def session_factory(transport):
    sessions = []

    def factory_function(device, **client_kwargs):
        session = IoTHubDeviceSession(
            device.device_id, device.connection_string, transport, **client_kwargs
        )
        sessions.append(session)
        return session

    yield factory_function

    for session in sessions:
        session.close()


@pytest.fixture(autouse=True)
def intertest_guardian_delay():
    yield
    time.sleep(INTERTEST_GUARDIAN_DELAY_IN_SECONDS)
