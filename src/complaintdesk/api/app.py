"""FastAPI application for complaintdesk."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from complaintdesk import __version__
from complaintdesk.ai_tools import FormalRewriter
from complaintdesk.config import Settings
from complaintdesk.exceptions import (
    ComplaintDeskError,
    ConfigurationError,
    QueueShutdownError,
    UpstreamError,
    ValidationError,
)
from complaintdesk.logging import configure_logging, get_logger
from complaintdesk.webhooks import (
    ComplaintWebhookService,
    DeadLetterStore,
    WebhookDispatcher,
    WebhookQueue,
)

from .router import router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan.

    This is the composition root: it builds the one webhook queue of the
    process, hands it to both the producer and the dispatcher, starts the
    dispatcher and stops it gracefully on shutdown.
    """
    settings: Settings = app.state.settings
    webhook = settings.webhook

    configure_logging(level=settings.log_level, format=settings.log_format)
    logger.info(
        "Starting complaintdesk API",
        log_level=settings.log_level,
        webhooks_enabled=webhook.enabled,
        n8n_base_url=webhook.n8n_base_url,
    )

    queue = WebhookQueue()
    http_client = httpx.AsyncClient(timeout=webhook.request_timeout)
    dispatcher = WebhookDispatcher(
        queue,
        webhook,
        client=http_client,
        dead_letters=DeadLetterStore(webhook.dead_letter_max_size),
    )
    app.state.dispatcher = dispatcher
    app.state.producer = ComplaintWebhookService(queue, webhook)
    app.state.rewriter = FormalRewriter(webhook, client=http_client)

    dispatcher.start()
    try:
        yield
    finally:
        await dispatcher.stop()
        await http_client.aclose()
        app.state.dispatcher = None
        app.state.producer = None
        app.state.rewriter = None
        logger.info("complaintdesk API stopped", **dispatcher.stats())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        try:
            settings = Settings()
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid complaintdesk configuration: {e}") from e

    app = FastAPI(
        title="complaintdesk",
        description="Complaint management backend: webhook delivery and AI tools.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map the complaintdesk exception hierarchy onto JSON responses."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors with 400 status."""
        logger.warning(
            "Validation error", field=exc.field, error=exc.message, path=str(request.url)
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(QueueShutdownError)
    async def queue_shutdown_handler(request: Request, exc: QueueShutdownError) -> JSONResponse:
        """Handle enqueue-after-shutdown with 503 status."""
        logger.warning("Webhook queue shut down", target=exc.target, path=str(request.url))
        return JSONResponse(status_code=503, content=exc.to_dict())

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        """Handle upstream failures with the status they carry (502/503/504)."""
        logger.warning(
            "Upstream error", error=exc.message, status_code=exc.status_code, path=str(request.url)
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ComplaintDeskError)
    async def complaintdesk_error_handler(
        request: Request, exc: ComplaintDeskError
    ) -> JSONResponse:
        """Handle all other complaintdesk errors with 500 status."""
        logger.error("complaintdesk error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())
