"""Unit tests for the in-process webhook queue."""

from __future__ import annotations

import asyncio
import threading

import pytest

from complaintdesk.exceptions import QueueShutdownError, ValidationError
from complaintdesk.models import JobState
from complaintdesk.webhooks import WebhookQueue

HOOK_URL = "https://example.test/hook"


class TestEnqueue:
    """Tests for the producer side."""

    def test_returns_queued_job(self) -> None:
        queue = WebhookQueue()
        job = queue.enqueue(HOOK_URL, {"event": "complaint.created", "id": 42})

        assert job.id.startswith("job_")
        assert job.target == HOOK_URL
        assert job.payload == {"event": "complaint.created", "id": 42}
        assert job.attempts == 0
        assert job.state == JobState.QUEUED
        assert job.enqueued_at.tzinfo is not None
        assert len(queue) == 1
        assert queue.enqueued_total == 1

    @pytest.mark.parametrize("target", ["", "   "])
    def test_rejects_empty_target(self, target: str) -> None:
        queue = WebhookQueue()
        with pytest.raises(ValidationError) as exc_info:
            queue.enqueue(target, {})
        assert exc_info.value.field == "target"
        assert len(queue) == 0

    def test_no_deduplication(self) -> None:
        queue = WebhookQueue()
        first = queue.enqueue(HOOK_URL, {"id": 1})
        second = queue.enqueue(HOOK_URL, {"id": 1})

        assert first.id != second.id
        assert len(queue) == 2

    def test_payload_is_snapshot(self) -> None:
        queue = WebhookQueue()
        payload = {"id": 1, "contact": {"name": "Ana"}}

        job = queue.enqueue(HOOK_URL, payload)
        payload["id"] = 2
        payload["contact"]["name"] = "changed"

        assert job.payload == {"id": 1, "contact": {"name": "Ana"}}
        assert job.payload is not payload

    def test_rejected_after_close(self) -> None:
        queue = WebhookQueue()
        queue.close()

        with pytest.raises(QueueShutdownError) as exc_info:
            queue.enqueue(HOOK_URL, {})
        assert exc_info.value.target == HOOK_URL
        assert queue.closed
        assert len(queue) == 0

    def test_concurrent_enqueue_from_threads(self) -> None:
        queue = WebhookQueue()

        def produce(worker: int) -> None:
            for i in range(50):
                queue.enqueue(f"https://example.test/{worker}/{i}", {"i": i})

        threads = [threading.Thread(target=produce, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        pending = queue.pending()
        assert len(pending) == 400
        assert len({job.id for job in pending}) == 400
        # per-producer order is preserved
        for worker in range(8):
            seen = [j.payload["i"] for j in pending if f"/{worker}/" in j.target]
            assert seen == list(range(50))


class TestGet:
    """Tests for the consumer side."""

    @pytest.mark.asyncio
    async def test_fifo(self) -> None:
        queue = WebhookQueue()
        jobs = [queue.enqueue(f"{HOOK_URL}/{i}", {}) for i in range(3)]

        claimed = [await queue.get() for _ in range(3)]

        assert claimed == jobs
        assert all(job.state == JobState.IN_FLIGHT for job in jobs)
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_waits_for_job(self) -> None:
        queue = WebhookQueue()
        getter = asyncio.create_task(queue.get())
        await asyncio.sleep(0.01)
        assert not getter.done()

        job = queue.enqueue(HOOK_URL, {})

        assert await asyncio.wait_for(getter, 1.0) is job

    @pytest.mark.asyncio
    async def test_returns_none_when_closed_and_empty(self) -> None:
        queue = WebhookQueue()
        getter = asyncio.create_task(queue.get())
        await asyncio.sleep(0.01)

        queue.close()

        assert await asyncio.wait_for(getter, 1.0) is None

    @pytest.mark.asyncio
    async def test_closed_queue_still_hands_out_accepted_jobs(self) -> None:
        queue = WebhookQueue()
        job = queue.enqueue(HOOK_URL, {})
        queue.close()

        assert await queue.get() is job
        assert await queue.get() is None

    @pytest.mark.asyncio
    async def test_halt_releases_consumer_with_jobs_left(self) -> None:
        queue = WebhookQueue()
        job = queue.enqueue(HOOK_URL, {})

        queue.halt()

        assert await queue.get() is None
        assert queue.halted
        assert queue.pending() == [job]


class TestRetryLater:
    """Tests for re-insertion of failed jobs."""

    @pytest.mark.asyncio
    async def test_immediate_retry_goes_to_tail(self) -> None:
        queue = WebhookQueue()
        first = queue.enqueue(f"{HOOK_URL}/1", {})
        second = queue.enqueue(f"{HOOK_URL}/2", {})
        claimed = await queue.get()
        assert claimed is first

        queue.retry_later(first, 0)

        assert first.state == JobState.QUEUED
        assert await queue.get() is second
        assert await queue.get() is first

    @pytest.mark.asyncio
    async def test_delayed_retry_waits_for_backoff(self) -> None:
        queue = WebhookQueue()
        job = queue.enqueue(HOOK_URL, {})
        await queue.get()

        queue.retry_later(job, 0.05)
        fresh = queue.enqueue(f"{HOOK_URL}/fresh", {})

        assert await queue.get() is fresh
        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await asyncio.wait_for(queue.get(), 1.0) is job
        assert loop.time() - started >= 0.03

    @pytest.mark.asyncio
    async def test_accepted_after_close(self) -> None:
        queue = WebhookQueue()
        job = queue.enqueue(HOOK_URL, {})
        await queue.get()
        queue.close()

        queue.retry_later(job, 0.01)

        assert await asyncio.wait_for(queue.get(), 1.0) is job
        assert await queue.get() is None

    def test_pending_lists_ready_before_waiting(self) -> None:
        queue = WebhookQueue()
        retrying = queue.enqueue(f"{HOOK_URL}/retry", {})
        queue._ready.clear()
        queue.retry_later(retrying, 60)
        ready = queue.enqueue(f"{HOOK_URL}/ready", {})

        assert queue.pending() == [ready, retrying]
        assert len(queue) == 2
