"""Configuration management for complaintdesk."""

import logging
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class WebhookSettings(BaseModel):
    """Outbound webhook integration with the n8n automation instance.

    Complaint events are POSTed to n8n workflows for AI routing. The queue
    and dispatcher read their retry policy and timeouts from here.

    Attributes:
        enabled: Master switch for all outbound webhooks.
        n8n_base_url: Base URL of the n8n instance.
        complaint_new_path: Path of the "complaint created" webhook.
        rewrite_formal_path: Path of the synchronous formal-rewrite webhook.
        max_attempts: Delivery attempts per job before it is abandoned.
        backoff_base_delay: Delay before the first retry (doubles each attempt).
        backoff_max_delay: Upper bound for a single backoff delay.
        request_timeout: Timeout of a single POST.
        retry_permanent_failures: Retry 4xx responses like transient failures.
        drain_on_shutdown: Keep delivering queued jobs after stop() is requested.
        shutdown_timeout: Grace period for draining before the queue is halted.
        dead_letter_max_size: Abandoned jobs kept for manual follow-up.
    """

    enabled: bool = Field(default=True, description="Enable outbound webhooks")
    n8n_base_url: str = Field(
        default="http://localhost:5678",
        description="Base URL of the n8n instance",
    )
    complaint_new_path: str = Field(
        default="/webhook/complaint/new",
        description="Path for the complaint created webhook",
    )
    rewrite_formal_path: str = Field(
        default="/webhook/ai/rewrite-formal",
        description="Path for the formal rewrite webhook",
    )
    max_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum delivery attempts per job",
    )
    backoff_base_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=300.0,
        description="Initial retry delay in seconds (doubles each attempt)",
    )
    backoff_max_delay: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="Maximum retry delay in seconds",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="HTTP request timeout in seconds",
    )
    retry_permanent_failures: bool = Field(
        default=False,
        description=(
            "Treat 4xx responses as retryable. Malformed target URLs are "
            "always abandoned immediately."
        ),
    )
    drain_on_shutdown: bool = Field(
        default=True,
        description="Deliver already queued jobs before the dispatcher exits",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        ge=0.0,
        description="Seconds to wait for draining before halting the queue",
    )
    dead_letter_max_size: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Maximum abandoned jobs kept in memory",
    )

    @field_validator("n8n_base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"n8n_base_url must be an http(s) URL, got {value!r}")
        return value

    @model_validator(mode="after")
    def _validate_backoff_bounds(self) -> "WebhookSettings":
        """The cap must not be smaller than the first delay."""
        if self.backoff_max_delay < self.backoff_base_delay:
            raise ValueError(
                f"backoff_max_delay ({self.backoff_max_delay}) must be >= "
                f"backoff_base_delay ({self.backoff_base_delay})"
            )
        return self

    def _join(self, path: str) -> str:
        return f"{self.n8n_base_url.rstrip('/')}{path}"

    def complaint_new_url(self) -> str:
        """Full URL of the complaint created webhook."""
        return self._join(self.complaint_new_path)

    def rewrite_formal_url(self) -> str:
        """Full URL of the formal rewrite webhook."""
        return self._join(self.rewrite_formal_path)


class Settings(BaseSettings):
    """complaintdesk configuration loaded from environment variables.

    All settings can be overridden via environment variables with the
    COMPLAINTDESK_ prefix. Nested webhook settings use ``__``:
        COMPLAINTDESK_LOG_FORMAT=text
        COMPLAINTDESK_WEBHOOK__N8N_BASE_URL=http://n8n:5678
        COMPLAINTDESK_WEBHOOK__MAX_ATTEMPTS=3
    """

    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    # Webhooks
    webhook: WebhookSettings = Field(
        default_factory=WebhookSettings,
        description="Outbound webhook delivery settings",
    )

    # CORS Configuration
    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="List of allowed CORS origins",
    )

    model_config = {
        "env_prefix": "COMPLAINTDESK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def _warn_if_disabled_in_production(self) -> "Settings":
        if self.env == "production" and not self.webhook.enabled:
            logger.warning("Outbound webhooks are disabled in production")
        return self
