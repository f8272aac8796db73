from __future__ import annotations

import asyncio

import httpx
import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from scrape_api.clients.browse_ai import BrowseAIClient
from scrape_api.errors import RemoteServiceError, ScrapeValidationError, TaskFailedError
from scrape_api.session import Failed, Idle, Polling, Ready, ScrapeSession, Submitting, TimedOut

URL = "https://www.saramin.co.kr/zf_user/jobs/list/job-category?cat_kewd=322"


class FakeBrowseAI:
    """MockTransport handler: POST creates a task, GETs replay queued task responses."""

    def __init__(self, task_responses=(), create=(200, {"result": {"id": "T1"}}), default=None):
        self.create_status, self.create_body = create
        self.task_responses = list(task_responses)
        self.default = default
        self.posts = 0
        self.gets = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.posts += 1
            return httpx.Response(self.create_status, json=self.create_body)
        self.gets += 1
        body = self.task_responses.pop(0) if self.task_responses else self.default
        return httpx.Response(200, json=body)

    def client(self) -> BrowseAIClient:
        return BrowseAIClient("key", "robot", transport=httpx.MockTransport(self))


def _session(fake: FakeBrowseAI, **kwargs):
    scheduler = AsyncIOScheduler()
    session = ScrapeSession(fake.client(), scheduler, interval_seconds=10, **kwargs)
    return session, scheduler


@pytest.mark.asyncio
async def test_submit_poll_extract_rank(task_payload, raw_job):
    jobs = [
        raw_job("ops manager", "1일 전"),
        raw_job("finance lead", "5일 전"),
        raw_job("finance analyst", "오늘"),
    ]
    fake = FakeBrowseAI([task_payload([]), task_payload(jobs, status="successful")])
    session, scheduler = _session(fake, keywords=["finance"], max_attempts=30)

    state = await session.start(URL, 10)
    assert state == Polling(0, "T1")
    assert session.is_busy and session.is_polling and not session.is_ready
    assert len(scheduler.get_jobs()) == 1

    await session.poller.tick()
    assert session.state == Polling(1, "T1")

    await session.poller.tick()
    assert isinstance(session.state, Ready)
    assert session.is_ready and not session.is_busy
    assert [j.title for j in session.ranked.jobs] == ["finance analyst", "finance lead", "ops manager"]
    assert scheduler.get_jobs() == []
    assert await session.wait(timeout=1) is session.state


@pytest.mark.asyncio
async def test_keyword_change_reranks_without_refetch(task_payload, raw_job):
    jobs = [raw_job("finance lead", "5일 전"), raw_job("ops manager", "1일 전")]
    fake = FakeBrowseAI([task_payload(jobs)])
    session, _ = _session(fake, keywords="finance")

    await session.start(URL, 10)
    await session.poller.tick()
    assert session.ranked.jobs[0].title == "finance lead"
    gets = fake.gets

    ranked = session.set_keywords("ops")
    assert [j.title for j in ranked.jobs] == ["ops manager", "finance lead"]
    assert session.ranked is ranked
    assert fake.gets == gets


@pytest.mark.asyncio
async def test_invalid_request_fails_without_network():
    fake = FakeBrowseAI()
    session, scheduler = _session(fake)

    state = await session.start("not a url", 10)
    assert isinstance(state, Failed)
    assert isinstance(state.error, ScrapeValidationError)

    state = await session.start(URL, 1000)
    assert isinstance(state.error, ScrapeValidationError)
    assert fake.posts == 0 and fake.gets == 0
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_remote_error_on_submit():
    fake = FakeBrowseAI(create=(403, {"messageCode": "forbidden"}))
    session, scheduler = _session(fake)

    state = await session.start(URL, 10)
    assert isinstance(state, Failed)
    assert isinstance(state.error, RemoteServiceError)
    assert state.error.remote_status == 403
    assert state.error.body == {"messageCode": "forbidden"}
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_missing_task_id_does_not_poll():
    fake = FakeBrowseAI(create=(200, {"statusCode": 200}))
    session, scheduler = _session(fake)

    state = await session.start(URL, 10)
    assert isinstance(state, Failed)
    assert session.handle is not None and session.handle.task_id is None
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_timeout_then_manual_retry_resumes_same_task(task_payload, raw_job):
    fake = FakeBrowseAI([task_payload([]), task_payload([]), task_payload([raw_job()])])
    session, scheduler = _session(fake, max_attempts=2)

    await session.start(URL, 10)
    await session.poller.tick()
    await session.poller.tick()
    assert session.state == TimedOut("T1", 2)
    assert "T1" in session.state.error.message
    assert scheduler.get_jobs() == []

    state = session.retry()
    assert state == Polling(0, "T1")
    await session.poller.tick()
    assert isinstance(session.state, Ready)
    assert fake.posts == 1


@pytest.mark.asyncio
async def test_provider_failure_while_polling(task_payload):
    fake = FakeBrowseAI([task_payload(None, status="failed")])
    session, _ = _session(fake)

    await session.start(URL, 10)
    await session.poller.tick()
    assert isinstance(session.state, Failed)
    assert isinstance(session.state.error, TaskFailedError)
    assert session.state.task_id == "T1"


@pytest.mark.asyncio
async def test_refresh_resumes_polling_then_reads_data(task_payload, raw_job):
    fake = FakeBrowseAI([task_payload([], status="in-progress"), task_payload([raw_job()])])
    session, scheduler = _session(fake)

    await session.start(URL, 10)
    state = await session.refresh()
    assert state == Polling(0, "T1")
    assert len(scheduler.get_jobs()) == 1

    state = await session.refresh()
    assert isinstance(state, Ready)
    assert len(state.ranked.jobs) == 1
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_new_start_replaces_previous_poll(task_payload):
    fake = FakeBrowseAI(default=task_payload([]))
    session, scheduler = _session(fake)

    await session.start(URL, 10)
    await session.poller.tick()
    await session.start(URL, 20)

    assert len(scheduler.get_jobs()) == 1
    assert session.state == Polling(0, "T1")
    assert fake.posts == 2


@pytest.mark.asyncio
async def test_cancel_returns_to_idle(task_payload):
    fake = FakeBrowseAI(default=task_payload([]))
    session, scheduler = _session(fake)

    await session.start(URL, 10)
    session.cancel()
    assert session.state == Idle()
    assert scheduler.get_jobs() == []
    await session.poller.tick()
    assert fake.gets == 0


class GatedBrowseAI:
    """POSTs block until their gate is opened; task ids are T1, T2, ... in call order."""

    def __init__(self):
        self.gates: list[asyncio.Event] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            gate = asyncio.Event()
            self.gates.append(gate)
            task_id = f"T{len(self.gates)}"
            await gate.wait()
            return httpx.Response(200, json={"result": {"id": task_id}})
        return httpx.Response(200, json={"result": {"status": "in-progress", "capturedLists": {}}})

    def client(self) -> BrowseAIClient:
        return BrowseAIClient("key", "robot", transport=httpx.MockTransport(self))


async def _until(condition, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        assert loop.time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
@pytest.mark.parametrize("stop", ["cancel", "close"])
async def test_stop_while_submitting_discards_late_task(stop):
    fake = GatedBrowseAI()
    scheduler = AsyncIOScheduler()
    session = ScrapeSession(fake.client(), scheduler, interval_seconds=10)

    pending = asyncio.create_task(session.start(URL, 10))
    await _until(lambda: len(fake.gates) == 1)
    assert isinstance(session.state, Submitting)

    getattr(session, stop)()
    assert session.state == Idle()

    fake.gates[0].set()
    await pending
    assert session.state == Idle()
    assert session.handle is None
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_newest_start_wins_when_submissions_overlap():
    fake = GatedBrowseAI()
    scheduler = AsyncIOScheduler()
    session = ScrapeSession(fake.client(), scheduler, interval_seconds=10)

    first = asyncio.create_task(session.start(URL, 10))
    await _until(lambda: len(fake.gates) == 1)
    second = asyncio.create_task(session.start(URL, 20))
    await _until(lambda: len(fake.gates) == 2)

    fake.gates[1].set()
    await second
    assert session.state == Polling(0, "T2")

    fake.gates[0].set()
    await first
    assert session.state == Polling(0, "T2")
    assert session.handle.task_id == "T2"
    jobs = scheduler.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].name == "poll task T2"
