# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import string
import random


@pytest.fixture(scope="session")
def random_string_factory():
    def factory_function(length=64):
        return "".join(random.choice(string.ascii_uppercase + string.digits) for _ in range(length))

    return factory_function


@pytest.fixture(scope="function")
def random_string(random_string_factory):
    return random_string_factory()


@pytest.fixture(scope="session")
def random_properties_factory(random_string_factory):
    def factory_function(count=3):
        return {"name{}".format(i + 1): random_string_factory(16) for i in range(count)}

    return factory_function


@pytest.fixture(scope="function")
def random_properties(random_properties_factory):
    return random_properties_factory()
