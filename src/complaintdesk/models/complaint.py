"""Complaint data handed to the webhook producer.

Only the read-side summary of a complaint lives here; persistence and
CRUD belong to the rest of the backend.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from .base import utc_now

COMPLAINT_CREATED = "complaint.created"


class ComplaintSummary(BaseModel):
    """A created complaint as returned by the complaint workflow.

    Attributes:
        complaint_id: Database identifier of the complaint.
        ticket_id: Public tracking ticket.
        contact_name: Reporter name (absent for anonymous complaints).
        contact_email: Reporter email.
        contact_phone: Reporter phone.
        subject: Complaint subject line.
        message: Complaint body.
        is_anonymous: Whether the reporter chose to stay anonymous.
        current_status: Workflow status, "New" on creation.
        submission_date: When the complaint was submitted.
        urgent: Urgency flag set by staff, if any.
    """

    model_config = ConfigDict(extra="ignore")

    complaint_id: int = Field(ge=1)
    ticket_id: UUID
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    is_anonymous: bool = False
    current_status: str = "New"
    submission_date: datetime = Field(default_factory=utc_now)
    urgent: bool | None = None


class ComplaintCreatedPayload(BaseModel):
    """Body of the complaint created webhook.

    Serialized with PascalCase keys (``ComplaintId``, ``TicketId``,
    ``Event``...), the shape the n8n routing workflow consumes.
    """

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    complaint_id: int
    ticket_id: UUID
    contact_name: str | None
    contact_email: str | None
    contact_phone: str | None
    subject: str
    message: str
    is_anonymous: bool
    current_status: str
    submission_date: datetime
    event: Literal["complaint.created"] = COMPLAINT_CREATED
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_complaint(cls, complaint: ComplaintSummary) -> "ComplaintCreatedPayload":
        return cls(
            complaint_id=complaint.complaint_id,
            ticket_id=complaint.ticket_id,
            contact_name=complaint.contact_name,
            contact_email=complaint.contact_email,
            contact_phone=complaint.contact_phone,
            subject=complaint.subject,
            message=complaint.message,
            is_anonymous=complaint.is_anonymous,
            current_status=complaint.current_status,
            submission_date=complaint.submission_date,
        )

    def to_wire(self) -> dict[str, object]:
        """JSON-ready dict with the wire key names."""
        return self.model_dump(mode="json", by_alias=True)
