"""Poll-until-terminal loop for remote generation tasks.

Processing flow:
    1. Query task status through the transport client.
    2. Deliver the observation to the progress callback.
    3. Apply the observation with `status.advance`.
    4. Return on `completed`, raise on `failed`, otherwise sleep and repeat.

Retry behavior:
    - `TransportError` is retried after one poll interval, indefinitely, within the
      overall timeout ceiling.
    - `ServiceError` / `ProtocolError` abort immediately.

Cancellation:
    An optional `threading.Event` is checked before each query and each sleep; the
    sleep itself waits on the event so a cancel wakes it early.

Performance characteristics:
    Uses synchronous HTTP and blocking sleeps; never spins.
"""

import logging
import threading
import time
from typing import Callable

from artbreaker.image.errors import (
    GenerationCancelledError,
    GenerationTimeoutError,
    ProtocolError,
    TaskFailedError,
    TransportError,
)
from artbreaker.image.models import GenerationTask, ProgressUpdate, TaskState
from artbreaker.image.provider_config import POLL_INTERVAL_SECONDS, TASK_TIMEOUT_SECONDS
from artbreaker.image.status import advance, describe_progress

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Generation timed out, please try again later"

ProgressCallback = Callable[[ProgressUpdate], None]


class TaskPoller:
    """Drive one task to a terminal state.

    Args:
        client: Object exposing `get_task_status(task_id) -> TaskStatus`.
        interval: Seconds between queries.
        timeout: Ceiling in seconds measured from the start of polling.
        clock: Monotonic clock; injectable for tests.
        sleep: Blocking sleep; injectable for tests. When a cancellation event is
            supplied, waiting uses `event.wait` instead.
    """

    def __init__(
        self,
        client,
        interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = TASK_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.sleep = sleep

    def _wait(self, cancel_event: threading.Event | None) -> None:
        if cancel_event is None:
            self.sleep(self.interval)
        elif cancel_event.wait(self.interval):
            raise GenerationCancelledError("Generation was cancelled")

    @staticmethod
    def _check_cancel(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError("Generation was cancelled")

    def wait_for_completion(
        self,
        task_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> GenerationTask:
        """Poll `task_id` until completion, failure, timeout, or cancellation.

        Returns:
            The completed `GenerationTask` (always carrying `result_url`).

        Raises:
            TaskFailedError: the service reported the task as failed.
            ProtocolError: completed without a result URL, or malformed status.
            ServiceError: a status query was rejected by the service.
            GenerationTimeoutError: the ceiling elapsed first.
            GenerationCancelledError: `cancel_event` was set.
        """
        task = GenerationTask(task_id=task_id)
        start = self.clock()

        while self.clock() - start < self.timeout:
            self._check_cancel(cancel_event)

            try:
                observation = self.client.get_task_status(task_id)
            except TransportError as err:
                logger.warning("Status query for task %s failed, retrying: %s", task_id, err)
                self._wait(cancel_event)
                continue

            logger.debug("Task %s observed as %s", task_id, observation.state.value)
            if on_progress is not None:
                on_progress(describe_progress(observation))

            try:
                task = advance(task, observation)
            except ProtocolError:
                logger.error("Task %s reported completion without a result URL", task_id)
                raise

            if task.state is TaskState.COMPLETED:
                logger.info("Task %s completed", task_id)
                return task

            if task.state is TaskState.FAILED:
                logger.error("Task %s failed: %s", task_id, task.error)
                raise TaskFailedError(task.error, task_id=task_id)

            self._check_cancel(cancel_event)
            self._wait(cancel_event)

        logger.error("Task %s timed out after %.0fs", task_id, self.timeout)
        raise GenerationTimeoutError(TIMEOUT_MESSAGE)
