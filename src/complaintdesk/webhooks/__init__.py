"""Outbound webhook delivery for complaintdesk.

An in-process queue buffers webhook jobs; one background dispatcher
drains it and POSTs each payload with exponential backoff retry.

Example:
    ```python
    from complaintdesk.webhooks import WebhookDispatcher, WebhookQueue

    queue = WebhookQueue()
    dispatcher = WebhookDispatcher(queue, settings.webhook)
    dispatcher.start()

    queue.enqueue("https://example.test/hook", {"event": "complaint.created", "id": 42})

    await dispatcher.stop()
    ```
"""

from .dead_letter import DeadLetterStore
from .dispatcher import WebhookDispatcher, validate_target
from .producer import ComplaintWebhookService
from .queue import WebhookQueue

__all__ = [
    "ComplaintWebhookService",
    "DeadLetterStore",
    "WebhookDispatcher",
    "WebhookQueue",
    "validate_target",
]
