"""One scrape session: submit -> poll -> extract -> rank.

The session keeps a single state value instead of separate loading /
polling / ready flags; `is_busy`, `is_polling` and `is_ready` are read off it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import httpx
from apscheduler.schedulers.base import BaseScheduler

from .clients.browse_ai import BrowseAIClient
from .config import settings
from .errors import PollingTimeout, RemoteServiceError, ScrapeError, TaskFailedError
from .logging_config import get_logger
from .schemas import JobRecord, RankedJobList, TaskHandle, TaskStatus
from .services.extractor import captured_lists, extract, task_status
from .services.poller import TaskPoller, is_ready as payload_ready
from .services.ranking import normalize, parse_keywords
from .services.submitter import submit, validate_request

logger = get_logger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Submitting:
    source_url: str


@dataclass(frozen=True)
class Polling:
    attempt: int
    task_id: str


@dataclass(frozen=True)
class Ready:
    ranked: RankedJobList
    task_id: Optional[str] = None
    status: TaskStatus = TaskStatus.SUCCEEDED


@dataclass(frozen=True)
class TimedOut:
    task_id: str
    attempts: int

    @property
    def error(self) -> PollingTimeout:
        return PollingTimeout(self.task_id, self.attempts)


@dataclass(frozen=True)
class Failed:
    error: Exception
    task_id: Optional[str] = None


SessionState = Union[Idle, Submitting, Polling, Ready, TimedOut, Failed]
TERMINAL = (Ready, TimedOut, Failed)


class ScrapeSession:
    def __init__(
        self,
        client: BrowseAIClient,
        scheduler: BaseScheduler,
        *,
        keywords: Sequence[str] | str | None = None,
        interval_seconds: float | None = None,
        max_attempts: int | None = None,
    ):
        self.client = client
        if keywords is None:
            keywords = settings.DEFAULT_KEYWORDS
        self.keywords: List[str] = parse_keywords(keywords) if isinstance(keywords, str) else list(keywords)
        self.poller = TaskPoller(
            client.get_task,
            scheduler,
            interval_seconds=interval_seconds or settings.POLL_INTERVAL_SECONDS,
            max_attempts=max_attempts or settings.POLL_MAX_ATTEMPTS,
        )
        self.state: SessionState = Idle()
        self.handle: Optional[TaskHandle] = None
        self.records: List[JobRecord] = []
        self.last_payload: Optional[dict] = None
        self._done = asyncio.Event()
        # bumped by start/refresh/cancel; an await that resumes under an older run is dropped
        self._run = 0

    # ---- derived flags ----
    @property
    def is_busy(self) -> bool:
        return isinstance(self.state, (Submitting, Polling))

    @property
    def is_polling(self) -> bool:
        return isinstance(self.state, Polling)

    @property
    def is_ready(self) -> bool:
        return isinstance(self.state, Ready)

    @property
    def ranked(self) -> Optional[RankedJobList]:
        return self.state.ranked if isinstance(self.state, Ready) else None

    def _set(self, state: SessionState) -> None:
        self.state = state
        if isinstance(state, TERMINAL):
            self._done.set()
        else:
            self._done.clear()

    # ---- operations ----
    async def start(self, source_url: Any, record_limit: Any) -> SessionState:
        """Submit a new task and begin polling it. Any previous poll is cancelled first.

        If the session is cancelled or started again while the submission is in
        flight, the late response is discarded and never starts a poll.
        """
        self._run += 1
        run = self._run
        self.poller.cancel()
        self.handle = None
        self.records = []
        self.last_payload = None
        try:
            request = validate_request(source_url, record_limit)
        except ScrapeError as e:
            self._set(Failed(e))
            return self.state

        self._set(Submitting(request.source_url))
        try:
            handle = await submit(request, self.client)
        except ScrapeError as e:
            if run != self._run:
                return self.state
            logger.error("submission failed: %s", e)
            self._set(Failed(e))
            return self.state

        if run != self._run:
            logger.info("dropping task %s: session was cancelled or restarted", handle.task_id)
            return self.state
        self.handle = handle
        if not handle.task_id:
            err = RemoteServiceError(None, None, "Browse.ai accepted the task but returned no task id")
            self._set(Failed(err))
            return self.state

        self._begin_polling()
        return self.state

    def _begin_polling(self) -> None:
        assert self.handle is not None and self.handle.task_id
        task_id = self.handle.task_id
        self._set(Polling(0, task_id))
        self.poller.start(
            self.handle,
            on_ready=self._on_ready,
            on_timeout=self._on_timeout,
            on_error=self._on_error,
            on_attempt=lambda n: self._set(Polling(n, task_id)),
        )

    def _on_ready(self, payload: dict) -> None:
        self.last_payload = payload
        self.records = extract(captured_lists(payload))
        ranked = normalize(self.records, self.keywords)
        self._set(Ready(ranked, self._task_id, task_status(payload)))

    def _on_timeout(self) -> None:
        self._set(TimedOut(self._task_id or "", self.poller.attempt))

    def _on_error(self, err: Exception) -> None:
        self._set(Failed(err, self._task_id))

    @property
    def _task_id(self) -> Optional[str]:
        return self.handle.task_id if self.handle else None

    def set_keywords(self, keywords: Sequence[str] | str) -> Optional[RankedJobList]:
        """Change keywords and re-rank the records already fetched."""
        self.keywords = parse_keywords(keywords) if isinstance(keywords, str) else list(keywords)
        if isinstance(self.state, Ready):
            ranked = normalize(self.records, self.keywords)
            self._set(Ready(ranked, self.state.task_id, self.state.status))
            return ranked
        return None

    def retry(self) -> SessionState:
        """Resume polling the current task, e.g. after a timeout. Never resubmits."""
        if not self.handle or not self.handle.task_id:
            raise ValueError("no task to retry; start a new scrape")
        self._begin_polling()
        return self.state

    async def refresh(self) -> SessionState:
        """Check the task once right now, outside the timer."""
        if not self.handle or not self.handle.task_id:
            raise ValueError("no task to refresh; start a new scrape")
        self._run += 1
        run = self._run
        self.poller.cancel()
        try:
            payload = await self.client.get_task(self.handle.task_id)
        except (ScrapeError, httpx.HTTPError) as e:
            if run != self._run:
                return self.state
            logger.error("checking task %s failed: %s", self._task_id, e)
            self._set(Failed(e, self._task_id))
            return self.state

        if run != self._run:
            return self.state
        status = task_status(payload)
        if payload_ready(payload):
            self._on_ready(payload)
        elif status is TaskStatus.FAILED:
            self.last_payload = payload
            raw_status = (payload.get("result") or {}).get("status", status.value)
            self._on_error(TaskFailedError(self._task_id, str(raw_status)))
        else:
            logger.info("task %s still %s; polling again", self._task_id, status.value)
            self._begin_polling()
        return self.state

    def cancel(self) -> None:
        self._run += 1
        self.poller.cancel()
        if isinstance(self.state, (Submitting, Polling)):
            self._set(Idle())

    def close(self) -> None:
        self.cancel()

    async def wait(self, timeout: float | None = None) -> SessionState:
        """Block until the session reaches Ready, TimedOut or Failed."""
        await asyncio.wait_for(self._done.wait(), timeout)
        return self.state
