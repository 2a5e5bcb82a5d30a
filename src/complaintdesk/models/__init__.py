"""Data models for complaintdesk.

Webhook Types:
    - WebhookJob: One pending delivery owned by the queue or the dispatcher
    - JobState: queued, in_flight, delivered, abandoned
    - DeadLetter: Record of an abandoned job

Complaint Types:
    - ComplaintSummary: Created complaint handed to the producer
    - ComplaintCreatedPayload: Wire body of the complaint.created webhook
"""

from .base import generate_id, utc_now
from .complaint import COMPLAINT_CREATED, ComplaintCreatedPayload, ComplaintSummary
from .webhook import TERMINAL_STATES, DeadLetter, JobState, WebhookJob

__all__ = [
    "generate_id",
    "utc_now",
    # Complaints
    "COMPLAINT_CREATED",
    "ComplaintCreatedPayload",
    "ComplaintSummary",
    # Webhooks
    "DeadLetter",
    "JobState",
    "TERMINAL_STATES",
    "WebhookJob",
]
