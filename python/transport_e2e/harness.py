# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import logging
import time
import collections
from .azure_monitor import get_event_logger
from .completion_gate import GateList
from .device_session import open_session_with_retry
from .e2e_constants import StatusCode, WorkerState, Events
from .errors import OpenRetryTimeout, UnexpectedException
from .executor import BetterThreadPoolExecutor
from .measurement import ThreadSafeFlag
from .send_worker import MultiplexSendWorker, SendMetrics, WorkerOutcome

logger = logging.getLogger("e2e.{}".format(__name__))


class WorkItem(
    collections.namedtuple(
        "WorkItem",
        "session message_text expected_status_code message_factory expected_connection_status",
    )
):
    """
    One unit of work for the harness: a session and what to send over it.
    """

    __slots__ = ()

    def __new__(
        cls,
        session,
        message_text=None,
        expected_status_code=StatusCode.OK_EMPTY,
        message_factory=None,
        expected_connection_status=None,
    ):
        return super(WorkItem, cls).__new__(
            cls,
            session,
            message_text,
            expected_status_code,
            message_factory,
            expected_connection_status,
        )

    @property
    def session_id(self):
        return self.session.session_id


class HarnessConfig(object):
    """
    Object we use internally to keep track of how a harness run is configured.
    """

    def __init__(self):
        # How many messages each session sends
        self.messages_per_session = 5

        # How many key/value properties each message carries
        self.keys_per_message = 10

        # How often a waiting worker wakes up to check its deadline
        self.poll_interval_in_seconds = 0.1

        # How long to wait for a single send to complete
        self.send_timeout_in_seconds = 90

        # How long to keep retrying a session open.  About 3 retries if opens keep timing out.
        self.open_retry_timeout_in_seconds = 3 * 60

        # How long to sleep between open attempts
        self.open_retry_interval_in_seconds = 1

        # How long to sleep between messages in one session
        self.inter_message_delay_in_seconds = 0

        # Stop sending over a session after its first failure
        self.stop_on_failure = True

        # How long a worker thread can live before we log a warning with its stack
        self.long_thread_warning_interval_in_seconds = 60

        # How often the harness wakes up while joining workers
        self.join_check_interval_in_seconds = 1


class HarnessResult(object):
    """
    Consolidated result of a harness run.  Only built after every worker is done.
    """

    def __init__(self, outcomes, metrics, aggregate_outcome, elapsed_time):
        self.outcomes = outcomes
        self.metrics = metrics
        self.aggregate_outcome = aggregate_outcome
        self.elapsed_time = elapsed_time

    @property
    def succeeded(self):
        return self.aggregate_outcome and all(x.succeeded for x in self.outcomes)

    @property
    def failed_outcomes(self):
        return [x for x in self.outcomes if not x.succeeded]

    @property
    def total_sends(self):
        return sum(x.sends_attempted for x in self.outcomes)

    @property
    def total_verified(self):
        return sum(x.sends_verified for x in self.outcomes)

    def describe(self):
        verdict = "succeeded" if self.succeeded else "failed"
        lines = ["Harness {} in {:.2f} seconds".format(verdict, self.elapsed_time)]
        lines.extend("  " + x.describe() for x in self.outcomes)
        return "\n".join(lines)

    def assert_success(self):
        if not self.succeeded:
            raise AssertionError(
                "Sending messages in parallel failed for {} of {} sessions:\n{}".format(
                    len(self.failed_outcomes),
                    len(self.outcomes),
                    "\n".join(x.describe() for x in self.failed_outcomes),
                )
            )

    def to_dict(self):
        return {
            "succeeded": self.succeeded,
            "elapsedTime": self.elapsed_time,
            "totalSends": self.total_sends,
            "totalVerified": self.total_verified,
            "metrics": self.metrics.to_dict(),
            "outcomes": [x.to_dict() for x in self.outcomes],
        }


class ParallelHarness(object):
    """
    Runs one worker per session and folds their outcomes into a single verdict.

    Each worker opens its session (retrying transient failures until the open deadline),
    sends its messages, and closes the session no matter how it got there.  `run` returns
    only after every worker has finished, and it never stops early because one worker failed.
    """

    def __init__(self, config=None, gate_list=None, event_logger=None):
        self.config = config or HarnessConfig()
        self.gate_list = gate_list or GateList()
        self.event_logger = event_logger or get_event_logger()

    def run(self, work_items):
        """
        Run all work items concurrently and return a `HarnessResult`.
        """
        self._check_distinct_sessions(work_items)

        aggregate_outcome = ThreadSafeFlag()
        metrics = SendMetrics()
        outcomes = [WorkerOutcome(item.session_id) for item in work_items]

        self.event_logger.info(Events.STARTING_RUN)
        start_time = time.time()

        executor = BetterThreadPoolExecutor(
            max_workers=max(1, len(work_items)),
            long_thread_warning_interval=self.config.long_thread_warning_interval_in_seconds,
        )
        try:
            for item, outcome in zip(work_items, outcomes):
                executor.submit(
                    self.worker_thread,
                    item,
                    outcome,
                    aggregate_outcome,
                    metrics,
                    thread_name="worker-{}".format(item.session_id),
                )

            # Join barrier.  Every worker has to finish, pass or fail, before we decide.
            while True:
                done, not_done = executor.wait(timeout=self.config.join_check_interval_in_seconds)
                if not not_done:
                    break
                executor.check_long_running_threads()

            # worker_thread doesn't raise, so anything here is a harness bug.  Count it anyway.
            executor.check_for_failures(lambda e: aggregate_outcome.clear())
        finally:
            executor.shutdown(wait=True)

        return self._make_result(outcomes, metrics, aggregate_outcome, start_time)

    def run_sequentially(self, work_items):
        """
        Run all work items one after another on the calling thread.  Produces the same kind
        of result as `run`.
        """
        self._check_distinct_sessions(work_items)

        aggregate_outcome = ThreadSafeFlag()
        metrics = SendMetrics()
        outcomes = []

        self.event_logger.info(Events.STARTING_RUN)
        start_time = time.time()

        for item in work_items:
            outcome = WorkerOutcome(item.session_id)
            outcomes.append(outcome)
            self.worker_thread(item, outcome, aggregate_outcome, metrics)

        return self._make_result(outcomes, metrics, aggregate_outcome, start_time)

    def worker_thread(self, item, outcome, aggregate_outcome, metrics):
        """
        Open the session, run the send worker, close the session.  Never raises.
        """
        session = item.session

        def on_retry(attempts, error):
            outcome.state = WorkerState.SESSION_OPENING_RETRY

        try:
            outcome.state = WorkerState.SESSION_OPENING
            try:
                outcome.open_attempts = open_session_with_retry(
                    session,
                    self.config.open_retry_timeout_in_seconds,
                    self.config.open_retry_interval_in_seconds,
                    on_retry,
                )
            except OpenRetryTimeout as e:
                outcome.open_attempts = e.attempts
                outcome.record_failure(e)
                aggregate_outcome.clear()
                self.event_logger.warning(Events.SESSION_OPEN_FAILED)
                return outcome

            worker = self.make_worker(item, outcome, aggregate_outcome, metrics)
            worker.run()

        except Exception as e:
            outcome.record_failure(UnexpectedException(e))
            aggregate_outcome.clear()

        finally:
            self._close_session(session)
            if not outcome.succeeded:
                self.event_logger.warning(Events.WORKER_FAILED)

        return outcome

    def make_worker(self, item, outcome, aggregate_outcome, metrics):
        return MultiplexSendWorker(
            item.session,
            self.config.messages_per_session,
            expected_status_code=item.expected_status_code,
            send_timeout=self.config.send_timeout_in_seconds,
            poll_interval=self.config.poll_interval_in_seconds,
            aggregate_outcome=aggregate_outcome,
            gate_list=self.gate_list,
            metrics=metrics,
            outcome=outcome,
            message_text=item.message_text,
            message_factory=item.message_factory,
            keys_per_message=self.config.keys_per_message,
            inter_message_delay=self.config.inter_message_delay_in_seconds,
            stop_on_failure=self.config.stop_on_failure,
            expected_connection_status=item.expected_connection_status,
        )

    def _close_session(self, session):
        try:
            session.close()
        except Exception as e:
            logger.error("Error closing session {}: {}".format(session.session_id, repr(e)))

    def _check_distinct_sessions(self, work_items):
        session_ids = [item.session_id for item in work_items]
        if len(set(session_ids)) != len(session_ids):
            raise ValueError("Work items must be bound to distinct sessions")

    def _make_result(self, outcomes, metrics, aggregate_outcome, start_time):
        result = HarnessResult(outcomes, metrics, aggregate_outcome.get(), time.time() - start_time)
        if result.succeeded:
            logger.info(result.describe())
        else:
            logger.error(result.describe())
        self.event_logger.info(Events.ENDING_RUN)
        return result
