# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import threading


class ThreadSafeCounter(object):
    def __init__(self):
        self.lock = threading.Lock()
        self.value = 0

    def set(self, value):
        with self.lock:
            self.value = value

    def add(self, value):
        with self.lock:
            self.value += value

    def increment(self):
        self.add(1)

    def decrement(self):
        self.add(-1)

    def get_count(self):
        with self.lock:
            return self.value

    def extract_count(self):
        with self.lock:
            value = self.value
            self.value = 0
            return value


class ThreadSafeList(object):
    def __init__(self):
        self.lock = threading.Lock()
        self.list = []

    def append(self, item):
        with self.lock:
            self.list.append(item)

    def contains(self, item):
        with self.lock:
            return item in self.list

    def get_list(self):
        """
        Return a copy of the list
        """
        with self.lock:
            return list(self.list)

    def extract_list(self):
        """
        Return the contents of the list and leave it empty
        """
        with self.lock:
            old_list = self.list
            self.list = []
            return old_list

    def __len__(self):
        with self.lock:
            return len(self.list)


class ThreadSafeFlag(object):
    """
    Boolean that many threads can clear.  Starts out True.  Once cleared, it stays cleared
    until `reset` is called.
    """

    def __init__(self, initial_value=True):
        self.lock = threading.Lock()
        self.value = initial_value

    def clear(self):
        with self.lock:
            self.value = False

    def reset(self, value=True):
        with self.lock:
            self.value = value

    def get(self):
        with self.lock:
            return self.value
