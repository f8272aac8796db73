"""Interval polling of one Browse.ai task.

The timer is a single APScheduler interval job on an AsyncIOScheduler, so
ticks run as coroutines on the caller's event loop. There is never more than
one job per poller: `start` removes the previous job before adding the next,
and every exit path (ready, provider failure, timeout, cancel) goes through
`_clear_timer`.

Each `start` bumps a generation counter. A tick only acts if it belongs to
the current generation, which also covers a response that arrives after the
session was cancelled or replaced while the request was in flight.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..errors import RemoteServiceError, TaskFailedError, TransientPollError
from ..logging_config import get_logger
from ..schemas import TaskHandle, TaskStatus
from .extractor import Found, captured_lists, locate_list, task_status

logger = get_logger(__name__)

FetchTask = Callable[[str], Awaitable[dict]]


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    ERROR_STOPPED = "error_stopped"


def is_ready(payload: Any) -> bool:
    """Data is ready when a non-empty captured list exists or the task reports success."""
    lookup = locate_list(captured_lists(payload))
    if isinstance(lookup, Found) and lookup.items:
        return True
    # a finished task with zero records is still finished
    return task_status(payload) is TaskStatus.SUCCEEDED


class TaskPoller:
    def __init__(
        self,
        fetch_task: FetchTask,
        scheduler: BaseScheduler,
        *,
        interval_seconds: float = 10.0,
        max_attempts: int = 30,
        job_id: str = "browse-ai-task-poll",
    ):
        self._fetch_task = fetch_task
        self._scheduler = scheduler
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.job_id = job_id

        self.state = PollState.IDLE
        self.attempt = 0
        self.handle: Optional[TaskHandle] = None
        self.last_error: Optional[TransientPollError] = None

        self._generation = 0
        self._inflight: Optional[int] = None
        self._on_ready: Callable[[dict], Any] = lambda payload: None
        self._on_timeout: Callable[[], Any] = lambda: None
        self._on_error: Callable[[Exception], Any] = lambda err: None
        self._on_attempt: Optional[Callable[[int], Any]] = None

    @property
    def active(self) -> bool:
        return self.state is PollState.POLLING

    @property
    def has_timer(self) -> bool:
        return self._scheduler.get_job(self.job_id) is not None

    def start(
        self,
        handle: TaskHandle,
        on_ready: Callable[[dict], Any],
        on_timeout: Callable[[], Any],
        on_error: Callable[[Exception], Any],
        on_attempt: Optional[Callable[[int], Any]] = None,
    ) -> None:
        if not handle.task_id:
            raise ValueError("cannot poll a task without an id")
        self._clear_timer()
        self._generation += 1
        self._inflight = None
        self.handle = handle
        self.attempt = 0
        self.last_error = None
        self.state = PollState.POLLING
        self._on_ready = on_ready
        self._on_timeout = on_timeout
        self._on_error = on_error
        self._on_attempt = on_attempt

        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds),
            args=[self._generation],
            id=self.job_id,
            name=f"poll task {handle.task_id}",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(
            "polling task %s every %ss (max %d attempts)",
            handle.task_id,
            self.interval_seconds,
            self.max_attempts,
        )

    def cancel(self) -> None:
        """Stop the timer; pending or in-flight ticks of this session become no-ops."""
        self._clear_timer()
        self._generation += 1
        self._inflight = None
        if self.state is PollState.POLLING:
            logger.info("polling task %s cancelled at attempt %d", self._task_id, self.attempt)
            self.state = PollState.IDLE

    @property
    def _task_id(self) -> Optional[str]:
        return self.handle.task_id if self.handle else None

    def _clear_timer(self) -> None:
        try:
            self._scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass

    def _finish(self, state: PollState) -> None:
        self._clear_timer()
        self.state = state

    async def tick(self, generation: Optional[int] = None) -> None:
        gen = self._generation if generation is None else generation
        if gen != self._generation or self.state is not PollState.POLLING:
            return
        if self._inflight == gen:
            logger.debug("previous check for task %s still running; skipping tick", self._task_id)
            return

        self._inflight = gen
        try:
            await self._check(gen)
        finally:
            if self._inflight == gen:
                self._inflight = None

    async def _check(self, gen: int) -> None:
        self.attempt += 1
        task_id = self._task_id
        logger.info("checking task %s (attempt %d/%d)", task_id, self.attempt, self.max_attempts)
        if self._on_attempt:
            self._on_attempt(self.attempt)

        payload: Optional[dict] = None
        try:
            payload = await self._fetch_task(task_id)
        except (httpx.HTTPError, RemoteServiceError, ValueError) as e:
            self.last_error = TransientPollError(task_id, self.attempt, e)
            logger.warning("%s", self.last_error)

        if gen != self._generation:
            logger.debug("dropping stale response for task %s", task_id)
            return

        if payload is not None:
            if is_ready(payload):
                self._finish(PollState.SUCCEEDED)
                logger.info("task %s ready after %d attempts", task_id, self.attempt)
                self._on_ready(payload)
                return
            status = task_status(payload)
            if status is TaskStatus.FAILED:
                self._finish(PollState.ERROR_STOPPED)
                raw_status = (payload.get("result") or {}).get("status", status.value)
                logger.error("task %s failed with status %r", task_id, raw_status)
                self._on_error(TaskFailedError(task_id, str(raw_status)))
                return

        if self.attempt >= self.max_attempts:
            self._finish(PollState.TIMED_OUT)
            logger.error("task %s not ready after %d attempts; polling stopped", task_id, self.attempt)
            self._on_timeout()
