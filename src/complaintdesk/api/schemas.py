"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class N8nStatus(BaseModel):
    """n8n integration status reported by the health check."""

    status: Literal["configured", "not configured", "disabled"]
    base_url: str | None = None


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, degraded, unhealthy).
        version: API version.
        dispatcher_running: Whether the webhook dispatcher task is alive.
        n8n: n8n integration status.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    dispatcher_running: bool
    n8n: N8nStatus


class WebhookStatusResponse(BaseModel):
    """Webhook dispatcher counters."""

    model_config = ConfigDict(extra="forbid")

    running: bool
    enqueued: int = Field(ge=0, description="Jobs accepted since startup")
    pending: int = Field(ge=0, description="Jobs queued or waiting for retry")
    delivered: int = Field(ge=0)
    retried: int = Field(ge=0, description="Retries scheduled")
    abandoned: int = Field(ge=0)


class DeadLetterResponse(BaseModel):
    """An abandoned webhook job."""

    id: str
    job_id: str
    target: str
    payload: Any
    attempts: int
    error: str
    status_code: int | None
    permanent: bool
    enqueued_at: datetime
    abandoned_at: datetime


class DeadLetterListResponse(BaseModel):
    """Abandoned jobs, oldest first.

    Attributes:
        items: Returned records.
        count: Records currently stored.
        total: Records ever added, including evicted ones.
    """

    items: list[DeadLetterResponse]
    count: int
    total: int


class ComplaintNotificationRequest(BaseModel):
    """A created complaint to announce to n8n."""

    model_config = ConfigDict(extra="forbid")

    complaint_id: int = Field(ge=1, description="Complaint database ID")
    ticket_id: UUID = Field(description="Public tracking ticket")
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    is_anonymous: bool = False
    current_status: str = "New"
    submission_date: datetime | None = None


class ComplaintNotificationResponse(BaseModel):
    """Result of handing a complaint event to the webhook queue."""

    queued: bool
    job_id: str | None = None


class RewriteFormalRequest(BaseModel):
    """Text to rewrite in formal language."""

    text: str = ""


class RewriteFormalResponse(BaseModel):
    result: str
