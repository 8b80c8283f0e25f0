# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import uuid
from transport_e2e.harness import HarnessConfig, ParallelHarness
from transport_e2e.completion_gate import GateList
from fake_device_session import FakeDeviceSession


@pytest.fixture
def fast_config():
    config = HarnessConfig()
    config.send_timeout_in_seconds = 2
    config.poll_interval_in_seconds = 0.01
    config.open_retry_timeout_in_seconds = 0.5
    config.open_retry_interval_in_seconds = 0.05
    config.join_check_interval_in_seconds = 0.05
    return config


@pytest.fixture
def gate_list():
    return GateList()


@pytest.fixture
def harness(fast_config, gate_list):
    return ParallelHarness(fast_config, gate_list=gate_list)


@pytest.fixture
def session_factory():
    def factory_function(session_id=None, **kwargs):
        return FakeDeviceSession(session_id or "session-{}".format(uuid.uuid4()), **kwargs)

    return factory_function


@pytest.fixture
def open_session(session_factory):
    session = session_factory("open-session")
    session.open()
    return session
