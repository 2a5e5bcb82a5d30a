"""Complaint event producer: decides when a webhook fires and what it carries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from complaintdesk.config import WebhookSettings
from complaintdesk.exceptions import QueueShutdownError
from complaintdesk.models import ComplaintCreatedPayload, ComplaintSummary

if TYPE_CHECKING:
    from complaintdesk.models import WebhookJob

    from .queue import WebhookQueue

logger = logging.getLogger(__name__)


class ComplaintWebhookService:
    """Hands complaint events to the webhook queue.

    Owns the payload shape and the n8n endpoint for each event. Delivery
    mechanics stay with the dispatcher.
    """

    def __init__(self, queue: WebhookQueue, settings: WebhookSettings | None = None) -> None:
        self._queue = queue
        self._settings = settings or WebhookSettings()

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    def send_complaint_created(
        self,
        complaint: ComplaintSummary,
        raise_on_shutdown: bool = False,
    ) -> WebhookJob | None:
        """Queue the complaint.created webhook for a new complaint.

        Complaint creation must not fail because of a webhook, so a queue
        that is shutting down is logged and the event dropped, unless the
        caller asks to handle that itself.

        Args:
            complaint: The complaint that was just created.
            raise_on_shutdown: Re-raise QueueShutdownError instead of dropping.

        Returns:
            The queued job, or None if webhooks are disabled or the event
            was dropped.
        """
        if not self._settings.enabled:
            logger.debug("Webhooks are disabled, skipping complaint created webhook")
            return None

        payload = ComplaintCreatedPayload.from_complaint(complaint).to_wire()
        try:
            job = self._queue.enqueue(self._settings.complaint_new_url(), payload)
        except QueueShutdownError as e:
            logger.error(
                "Failed to queue complaint created webhook for complaint %d: %s",
                complaint.complaint_id,
                e.message,
            )
            if raise_on_shutdown:
                raise
            return None

        logger.info(
            "Queued complaint created webhook for complaint %d (job %s)",
            complaint.complaint_id,
            job.id,
        )
        return job
