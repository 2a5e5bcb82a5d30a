"""Webhook job and dead-letter models.

A WebhookJob is one pending delivery. Its identity (id, target, payload,
enqueued_at) is frozen at enqueue time; only the attempt counter and the
lifecycle bookkeeping move while the queue and dispatcher hand it back
and forth.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id, utc_now


class JobState(str, Enum):
    """Lifecycle state of a webhook job."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    DELIVERED = "delivered"  # terminal
    ABANDONED = "abandoned"  # terminal


TERMINAL_STATES = frozenset({JobState.DELIVERED, JobState.ABANDONED})


class WebhookJob(BaseModel):
    """A unit of pending webhook work.

    Attributes:
        id: Unique identifier for this job.
        target: Destination URL.
        payload: JSON-serializable request body, never interpreted here.
        enqueued_at: When the producer handed the job to the queue.
        attempts: Delivery attempts made so far.
        state: Current lifecycle state.
        last_error: Reason of the most recent failed attempt.
        next_attempt_at: Earliest time a retried job may be delivered again.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("job"), frozen=True)
    target: str = Field(min_length=1, frozen=True, description="Destination URL")
    payload: Any = Field(frozen=True, description="Opaque JSON-serializable body")
    enqueued_at: datetime = Field(
        default_factory=utc_now,
        frozen=True,
        description="When the job was enqueued",
    )
    attempts: int = Field(default=0, ge=0, description="Delivery attempts so far")
    state: JobState = Field(default=JobState.QUEUED, description="Lifecycle state")
    last_error: str | None = Field(default=None, description="Most recent failure")
    next_attempt_at: datetime | None = Field(
        default=None,
        description="Earliest time of the next attempt",
    )

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def mark_in_flight(self) -> "WebhookJob":
        self.state = JobState.IN_FLIGHT
        self.next_attempt_at = None
        return self

    def mark_delivered(self) -> "WebhookJob":
        self.state = JobState.DELIVERED
        self.last_error = None
        return self

    def mark_retrying(self, error: str, next_attempt_at: datetime) -> "WebhookJob":
        """Return the job to the queue after a failed attempt."""
        self.state = JobState.QUEUED
        self.last_error = error
        self.next_attempt_at = next_attempt_at
        return self

    def mark_abandoned(self, error: str) -> "WebhookJob":
        self.state = JobState.ABANDONED
        self.last_error = error
        self.next_attempt_at = None
        return self


class DeadLetter(BaseModel):
    """Record of an abandoned job, kept for manual follow-up.

    Attributes:
        id: Unique identifier for this record.
        job_id: ID of the abandoned job.
        target: Destination URL of the job.
        payload: Original payload, so it can be replayed by hand.
        attempts: Attempts made before the job was abandoned.
        error: Final failure reason.
        status_code: HTTP status of the last response, if any.
        permanent: Whether the failure was classified as permanent.
        enqueued_at: When the job was first enqueued.
        abandoned_at: When the job was abandoned.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: generate_id("dlq"))
    job_id: str
    target: str
    payload: Any
    attempts: int = Field(ge=0)
    error: str
    status_code: int | None = None
    permanent: bool = False
    enqueued_at: datetime
    abandoned_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_job(
        cls,
        job: WebhookJob,
        status_code: int | None = None,
        permanent: bool = False,
    ) -> "DeadLetter":
        return cls(
            job_id=job.id,
            target=job.target,
            payload=job.payload,
            attempts=job.attempts,
            error=job.last_error or "Unknown error",
            status_code=status_code,
            permanent=permanent,
            enqueued_at=job.enqueued_at,
        )


__all__ = [
    "DeadLetter",
    "JobState",
    "TERMINAL_STATES",
    "WebhookJob",
]
