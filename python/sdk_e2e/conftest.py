# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import logging
import uuid
from transport_e2e.e2e_constants import Transports

# noqa: F401 defined in .flake8 file in root of repo

from content_fixtures import (
    random_string_factory,
    random_string,
    random_properties_factory,
    random_properties,
)

logging.basicConfig(level=logging.INFO)
logging.getLogger("e2e").setLevel(level=logging.DEBUG)
logging.getLogger("paho").setLevel(level=logging.WARNING)
logging.getLogger("azure.iot").setLevel(level=logging.WARNING)


def pytest_addoption(parser):
    parser.addoption(
        "--transport",
        help="Transport to use for live device sessions",
        type=str,
        choices=Transports.CHOICES,
        default=Transports.MQTT,
    )


@pytest.fixture(scope="session")
def transport(request):
    return request.config.getoption("transport")


@pytest.fixture(scope="session")
def run_id():
    return str(uuid.uuid4())
