# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
import threading
from transport_e2e.measurement import ThreadSafeCounter, ThreadSafeList, ThreadSafeFlag


def run_in_threads(fn, thread_count=10):
    threads = [threading.Thread(target=fn) for _ in range(thread_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


@pytest.mark.describe("ThreadSafeCounter")
class TestThreadSafeCounter(object):
    @pytest.mark.it("Starts at zero")
    def test_initial(self):
        assert ThreadSafeCounter().get_count() == 0

    @pytest.mark.it("Supports set, add, increment and decrement")
    def test_operations(self):
        counter = ThreadSafeCounter()
        counter.set(10)
        counter.add(5)
        counter.increment()
        counter.decrement()
        counter.decrement()
        assert counter.get_count() == 14

    @pytest.mark.it("Resets to zero when the count is extracted")
    def test_extract(self):
        counter = ThreadSafeCounter()
        counter.add(3)
        assert counter.extract_count() == 3
        assert counter.get_count() == 0

    @pytest.mark.it("Doesn't lose increments made from many threads")
    def test_threads(self):
        counter = ThreadSafeCounter()

        def increment_many():
            for _ in range(1000):
                counter.increment()

        run_in_threads(increment_many)
        assert counter.get_count() == 10000


@pytest.mark.describe("ThreadSafeList")
class TestThreadSafeList(object):
    @pytest.mark.it("Returns a copy of its contents from get_list")
    def test_get_list(self):
        items = ThreadSafeList()
        items.append(1)
        copy = items.get_list()
        copy.append(2)
        assert items.get_list() == [1]
        assert len(items) == 1

    @pytest.mark.it("Is empty after extract_list")
    def test_extract_list(self):
        items = ThreadSafeList()
        items.append("a")
        items.append("b")
        assert items.extract_list() == ["a", "b"]
        assert len(items) == 0

    @pytest.mark.it("Reports whether it contains an item")
    def test_contains(self):
        items = ThreadSafeList()
        items.append("Connected")
        assert items.contains("Connected")
        assert not items.contains("Disconnected")


@pytest.mark.describe("ThreadSafeFlag")
class TestThreadSafeFlag(object):
    @pytest.mark.it("Starts out True")
    def test_initial(self):
        assert ThreadSafeFlag().get() is True

    @pytest.mark.it("Stays cleared until it is reset")
    def test_clear_and_reset(self):
        flag = ThreadSafeFlag()
        flag.clear()
        flag.clear()
        assert flag.get() is False
        flag.reset()
        assert flag.get() is True

    @pytest.mark.it("Stays cleared when many threads clear it at once")
    def test_threads(self):
        flag = ThreadSafeFlag()
        run_in_threads(flag.clear)
        assert flag.get() is False
