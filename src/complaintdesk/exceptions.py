"""complaintdesk exception hierarchy.

All exceptions inherit from ComplaintDeskError so callers can catch
every application error with a single except clause. Delivery errors
never leave the dispatcher; the rest map onto HTTP responses.
"""

from __future__ import annotations


class ComplaintDeskError(Exception):
    """Base exception for all complaintdesk errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "complaintdesk_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(ComplaintDeskError):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class ConfigurationError(ComplaintDeskError):
    """Required configuration is missing or invalid."""

    code: str = "configuration_error"


class QueueShutdownError(ComplaintDeskError):
    """Webhook queue no longer accepts work.

    Raised by ``WebhookQueue.enqueue`` once shutdown has begun, since a
    job accepted at that point could be lost. The caller decides whether
    to drop the payload or persist it elsewhere.

    Attributes:
        target: URL of the rejected webhook.
    """

    code: str = "queue_shutdown"

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"Webhook queue is shut down, rejected job for {target}")


class DeliveryError(ComplaintDeskError):
    """A single webhook delivery attempt failed.

    Attributes:
        status_code: HTTP status of the response, if one was received.
    """

    code: str = "delivery_error"
    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransientDeliveryError(DeliveryError):
    """Network error, timeout or 5xx response. Worth retrying."""

    code: str = "transient_delivery_error"
    retryable: bool = True


class PermanentDeliveryError(DeliveryError):
    """Malformed target or a response saying the payload is rejected."""

    code: str = "permanent_delivery_error"


class UpstreamError(ComplaintDeskError):
    """A synchronous call to an upstream service failed.

    Attributes:
        status_code: HTTP status to report to our own client (502, 503, 504).
    """

    code: str = "upstream_error"

    def __init__(self, message: str, status_code: int = 502) -> None:
        self.status_code = status_code
        super().__init__(message)
