# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import concurrent.futures
import threading
import time
import logging
import traceback
import sys

logger = logging.getLogger("e2e.{}".format(__name__))


class FutureThreadInfo(object):
    """
    Object that we can use to tie `Future` objects and `Thread` objects together.
    """

    def __init__(self):
        self.future = None
        self.thread = None
        self.started = threading.Event()
        self.start_time = None
        self.watchdog_reset_time = None
        self.long_run_warning_reported = False
        self.executor = None
        self.name_at_death = None


# thread_local_storage is an object that looks like a global, but has a different
# value inside each thread.  We use this so we can have a different watchdog_reset_time
# value in each thread.
thread_local_storage = threading.local()

# How many seconds can a thread go without calling `reset_watchdog` before we complain.
DEFAULT_WATCHDOG_INTERVAL = 600


def reset_watchdog():
    """
    Tell the executor that the current thread is still making progress.  Does nothing when
    called from a thread that the executor doesn't own.
    """
    info = getattr(thread_local_storage, "future_thread_info", None)
    if info:
        info.watchdog_reset_time = time.time()


class BetterThreadPoolExecutor(concurrent.futures.ThreadPoolExecutor):
    """
    Class which improves on ThreadPoolExecutor by adding:
    1. Thread names that match the work being done, so log lines can be attributed.
    2. Watchdog and duration checks for threads that run too long.
    3. A way to wait on everything that was submitted and a way to collect failures.
    """

    def __init__(
        self,
        *args,
        watchdog_interval=DEFAULT_WATCHDOG_INTERVAL,
        long_thread_warning_interval=60,
        **kwargs
    ):
        super(BetterThreadPoolExecutor, self).__init__(*args, **kwargs)
        self.outstanding_futures = []
        self.outstanding_futures_lock = threading.Lock()
        self.watchdog_interval = watchdog_interval
        self.long_thread_warning_interval = long_thread_warning_interval

    def wait(self, timeout=None):
        """
        Wait for every outstanding future to complete.  Returns the same (done, not_done)
        tuple as `concurrent.futures.wait`.
        """
        with self.outstanding_futures_lock:
            futures = [x.future for x in self.outstanding_futures]
        return concurrent.futures.wait(
            futures, timeout=timeout, return_when=concurrent.futures.ALL_COMPLETED
        )

    def submit(self, fn, *args, thread_name=None, **kwargs):
        def _thread_outer_proc(future_thread_info, *args, **kwargs):
            # Keep a pointer to our structure in TLS
            thread_local_storage.future_thread_info = future_thread_info

            future_thread_info.thread = threading.current_thread()
            future_thread_info.start_time = time.time()

            # Set our Event so calling code can know that we're ready to run
            future_thread_info.started.set()
            try:
                result = fn(*args, **kwargs)
            finally:
                future_thread_info.name_at_death = future_thread_info.thread.name
                if future_thread_info.long_run_warning_reported:
                    logger.warning(
                        "Long-running thread {} complete after {} seconds".format(
                            future_thread_info.thread.name,
                            time.time() - future_thread_info.start_time,
                        )
                    )
                future_thread_info.thread = None
                thread_local_storage.future_thread_info = None
            return result

        future_thread_info = FutureThreadInfo()
        future_thread_info.executor = self

        # Start the thread.  Wait for `started` to be set so can know that
        # our internal accounting is all set up.  This closes a very small window.
        future = super(BetterThreadPoolExecutor, self).submit(
            _thread_outer_proc, future_thread_info, *args, **kwargs
        )
        future_thread_info.future = future
        future_thread_info.started.wait()

        # The thread may already be finished, in which case there's nothing to rename
        thread = future_thread_info.thread
        if thread:
            thread.name = thread_name or fn.__name__

        with self.outstanding_futures_lock:
            self.outstanding_futures.append(future_thread_info)

        return future

    def check_long_running_threads(self):
        """
        Log a warning (with a stack) for any thread that has stopped resetting its watchdog or
        has been alive for longer than `long_thread_warning_interval`.  Only one warning is
        logged per thread.
        """
        with self.outstanding_futures_lock:
            for info in (x for x in self.outstanding_futures if x.thread):
                if info.long_run_warning_reported:
                    continue

                thread = info.thread
                if not thread:
                    continue

                if info.watchdog_reset_time:
                    silent_time = time.time() - info.watchdog_reset_time
                    if silent_time > self.watchdog_interval:
                        logger.warning(
                            "Thread named {} with id {} has not responded in {} seconds".format(
                                thread.name, thread.ident, silent_time
                            )
                        )
                        self._log_stack(thread)
                        info.long_run_warning_reported = True
                else:
                    thread_life_time = time.time() - info.start_time
                    if thread_life_time > self.long_thread_warning_interval:
                        logger.warning(
                            "Long-running thread named {} with id {} alive for {} seconds".format(
                                thread.name, thread.ident, thread_life_time
                            )
                        )
                        self._log_stack(thread)
                        info.long_run_warning_reported = True

    def _log_stack(self, thread):
        frame = sys._current_frames().get(thread.ident, None)
        if frame:
            logger.warning("".join(traceback.format_stack(frame)))

    def check_for_failures(self, exception_callback=None):
        """
        Remove completed futures from our list and report any that raised.  Returns the list of
        exceptions that were found.
        """

        with self.outstanding_futures_lock:
            old_list = self.outstanding_futures
            self.outstanding_futures = []
            completed_futures = []

            for info in old_list:
                if info.future.done():
                    completed_futures.append(info)
                else:
                    self.outstanding_futures.append(info)

        exceptions = []
        for info in completed_futures:
            logger.debug("DONE: {}".format(info.name_at_death))
            e = info.future.exception()
            if e:
                logger.error("Thread {} failed with {}".format(info.name_at_death, repr(e)))
                exceptions.append(e)
                if exception_callback:
                    exception_callback(e)

        return exceptions
