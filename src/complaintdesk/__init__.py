"""complaintdesk: webhook delivery for the complaint-management backend.

Complaint events are queued in-process and delivered to n8n workflows
by a background dispatcher with retry and exponential backoff.

Quick Start:
    from complaintdesk.config import Settings
    from complaintdesk.webhooks import WebhookDispatcher, WebhookQueue

    settings = Settings()
    queue = WebhookQueue()
    dispatcher = WebhookDispatcher(queue, settings.webhook)
    dispatcher.start()

    queue.enqueue(settings.webhook.complaint_new_url(), {"event": "complaint.created"})

    await dispatcher.stop()
"""

__version__ = "0.1.0"

from .config import Settings, WebhookSettings
from .exceptions import (
    ComplaintDeskError,
    ConfigurationError,
    DeliveryError,
    PermanentDeliveryError,
    QueueShutdownError,
    TransientDeliveryError,
    UpstreamError,
    ValidationError,
)
from .logging import configure_logging, get_logger, log_context

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "WebhookSettings",
    # Exceptions
    "ComplaintDeskError",
    "ConfigurationError",
    "DeliveryError",
    "PermanentDeliveryError",
    "QueueShutdownError",
    "TransientDeliveryError",
    "UpstreamError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
