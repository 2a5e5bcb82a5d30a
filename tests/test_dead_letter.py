"""Tests for the dead-letter store."""

import pytest

from complaintdesk.models import DeadLetter, WebhookJob
from complaintdesk.webhooks import DeadLetterStore


def abandoned(i: int) -> DeadLetter:
    job = WebhookJob(target=f"https://example.test/{i}", payload={"i": i}, attempts=5)
    job.mark_abandoned("HTTP 500")
    return DeadLetter.from_job(job, status_code=500)


class TestDeadLetterStore:
    def test_add_and_entries(self):
        store = DeadLetterStore(max_size=10)
        for i in range(3):
            store.add(abandoned(i))

        assert len(store) == 3
        assert [e.payload["i"] for e in store.entries()] == [0, 1, 2]
        assert [e.payload["i"] for e in store.entries(limit=2)] == [1, 2]
        assert store.entries(limit=0) == []

    def test_evicts_oldest_when_full(self):
        store = DeadLetterStore(max_size=2)
        for i in range(5):
            store.add(abandoned(i))

        assert [e.payload["i"] for e in store.entries()] == [3, 4]
        assert store.total == 5
        assert store.max_size == 2

    def test_clear(self):
        store = DeadLetterStore()
        store.add(abandoned(0))
        assert store.clear() == 1
        assert len(store) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            DeadLetterStore(max_size=0)
