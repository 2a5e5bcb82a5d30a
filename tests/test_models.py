"""Unit tests for complaintdesk models."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from complaintdesk.models import (
    COMPLAINT_CREATED,
    ComplaintCreatedPayload,
    ComplaintSummary,
    DeadLetter,
    JobState,
    WebhookJob,
    generate_id,
)


class TestGenerateId:
    def test_prefix_and_uniqueness(self):
        ids = {generate_id("job") for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("job_") and len(i) == 16 for i in ids)


class TestWebhookJob:
    """Tests for WebhookJob model."""

    def test_defaults(self):
        job = WebhookJob(target="https://example.test/hook", payload={"id": 1})
        assert job.id.startswith("job_")
        assert job.attempts == 0
        assert job.state == JobState.QUEUED
        assert job.last_error is None
        assert job.is_terminal is False

    def test_empty_target_rejected(self):
        with pytest.raises(ValidationError):
            WebhookJob(target="", payload={})

    @pytest.mark.parametrize("field", ["target", "payload", "id", "enqueued_at"])
    def test_identity_is_frozen(self, field):
        job = WebhookJob(target="https://example.test/hook", payload={"id": 1})
        with pytest.raises(ValidationError):
            setattr(job, field, "changed")

    def test_attempts_are_mutable(self):
        job = WebhookJob(target="https://example.test/hook", payload={})
        job.attempts += 1
        assert job.attempts == 1

    def test_lifecycle(self):
        job = WebhookJob(target="https://example.test/hook", payload={})

        job.mark_in_flight()
        assert job.state == JobState.IN_FLIGHT

        retry_at = datetime.now(UTC) + timedelta(seconds=2)
        job.mark_retrying("HTTP 500", retry_at)
        assert job.state == JobState.QUEUED
        assert job.next_attempt_at == retry_at
        assert job.last_error == "HTTP 500"

        job.mark_in_flight()
        assert job.next_attempt_at is None

        job.mark_delivered()
        assert job.state == JobState.DELIVERED
        assert job.is_terminal
        assert job.last_error is None

    def test_abandoned_is_terminal(self):
        job = WebhookJob(target="https://example.test/hook", payload={})
        job.mark_abandoned("Request timeout")
        assert job.is_terminal
        assert job.last_error == "Request timeout"


class TestDeadLetter:
    def test_from_job(self):
        job = WebhookJob(target="https://example.test/hook", payload={"id": 7}, attempts=3)
        job.mark_abandoned("HTTP 503: unavailable")

        dead = DeadLetter.from_job(job, status_code=503)

        assert dead.id.startswith("dlq_")
        assert dead.job_id == job.id
        assert dead.payload == {"id": 7}
        assert dead.attempts == 3
        assert dead.error == "HTTP 503: unavailable"
        assert dead.status_code == 503
        assert dead.permanent is False
        assert dead.enqueued_at == job.enqueued_at


class TestComplaintCreatedPayload:
    def test_wire_keys(self):
        ticket = uuid4()
        complaint = ComplaintSummary(
            complaint_id=5,
            ticket_id=ticket,
            subject="Noise",
            message="Loud music after midnight",
            is_anonymous=True,
        )

        wire = ComplaintCreatedPayload.from_complaint(complaint).to_wire()

        assert set(wire) == {
            "ComplaintId",
            "TicketId",
            "ContactName",
            "ContactEmail",
            "ContactPhone",
            "Subject",
            "Message",
            "IsAnonymous",
            "CurrentStatus",
            "SubmissionDate",
            "Event",
            "Timestamp",
        }
        assert wire["Event"] == COMPLAINT_CREATED
        assert wire["TicketId"] == str(ticket)
        assert wire["IsAnonymous"] is True
        assert wire["ContactName"] is None

    def test_summary_requires_subject(self):
        with pytest.raises(ValidationError):
            ComplaintSummary(complaint_id=1, ticket_id=uuid4(), subject="", message="x")
