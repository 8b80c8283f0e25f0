# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import weakref
import threading
import uuid
import time
import logging
from .errors import GateAlreadyFiredError, SendTimeout

logger = logging.getLogger("e2e.{}".format(__name__))


class CompletionGate(object):
    """
    Write-once signal carrying a result.  Used to turn a completion callback into something
    that a test can block on.

    The gate is fired exactly once, usually from whatever thread the client library uses to
    deliver callbacks.  Firing a second time raises `GateAlreadyFiredError` and leaves the
    first result in place.
    """

    def __init__(self, owner=None):
        self.owner_weakref = weakref.ref(owner) if owner else None
        self.id = str(uuid.uuid4())
        self.event = threading.Event()
        self.lock = threading.Lock()
        self.result_code = None
        self.result_message = None
        self.fire_count = 0

    def __del__(self):
        self.remove_from_owning_list(True)

    def remove_from_owning_list(self, in_dunder_del=False):
        """
        remove a gate from the GateList which owns it.
        """
        owner = self.owner_weakref and self.owner_weakref()
        if owner:
            if in_dunder_del and not self.event.is_set():
                logger.warning("Abandoning a gate that never fired: id={}".format(self.id))
            owner.remove(self.id)
            self.owner_weakref = None

    def fire(self, code, result_message=None):
        """
        Store the result and release anybody waiting on this gate.
        """
        with self.lock:
            self.fire_count += 1
            if self.event.is_set():
                logger.error(
                    "Gate {} fired more than once.  Kept {}, rejected {}".format(
                        self.id, self.result_code, code
                    )
                )
                raise GateAlreadyFiredError(
                    "Gate {} already fired with {}".format(self.id, self.result_code)
                )
            self.result_code = code
            self.result_message = result_message
            self.event.set()

    def is_fired(self):
        return self.event.is_set()

    def wait_until_fired(self, poll_interval, timeout):
        """
        Block until the gate fires and return the result code.  We wake up every `poll_interval`
        seconds to check the deadline.  Raises `SendTimeout` if `timeout` seconds pass first.
        """
        deadline = time.time() + timeout
        while not self.event.wait(timeout=max(0, min(poll_interval, deadline - time.time()))):
            if time.time() >= deadline:
                raise SendTimeout(
                    "Gate {} was not fired within {} seconds".format(self.id, timeout)
                )
        return self.result_code


class GateList(object):
    """
    Object which keeps track of gates which have not been consumed yet.

    Each gate has an automatically-generated ID value (a guid).  When a callback only carries
    that ID (for example, as the message_id on a cloud-to-device message), this list can be used
    to find the gate so the callback can fire it.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.list = {}

    def make_gate(self):
        """
        Make and return a gate which is owned by this list.
        """
        gate = CompletionGate(self)
        with self.lock:
            self.list[gate.id] = gate
        return gate

    def remove(self, id):
        """
        Remove a gate from this list.  Returns the gate which was removed or `None` if that
        gate is not in the list.
        """
        with self.lock:
            return self.list.pop(id, None)

    def get(self, id):
        """
        Get a gate from this list.  Returns `None` if a gate with this id is not in the list.
        """
        with self.lock:
            return self.list.get(id, None)

    def outstanding_count(self):
        with self.lock:
            return len(self.list)
