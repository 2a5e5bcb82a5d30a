"""FastAPI router for complaintdesk API endpoints.

Collaborators (dispatcher, producer, rewriter, settings) are built by the
application lifespan and stored on ``app.state``; routes reach them
through the dependencies below.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from complaintdesk import __version__
from complaintdesk.ai_tools import FormalRewriter
from complaintdesk.config import Settings
from complaintdesk.models import ComplaintSummary
from complaintdesk.webhooks import ComplaintWebhookService, WebhookDispatcher

from .schemas import (
    ComplaintNotificationRequest,
    ComplaintNotificationResponse,
    DeadLetterListResponse,
    DeadLetterResponse,
    HealthResponse,
    N8nStatus,
    RewriteFormalRequest,
    RewriteFormalResponse,
    WebhookStatusResponse,
)

router = APIRouter()


def _state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return value


async def get_dispatcher(request: Request) -> WebhookDispatcher:
    return _state(request, "dispatcher")  # type: ignore[return-value]


async def get_producer(request: Request) -> ComplaintWebhookService:
    return _state(request, "producer")  # type: ignore[return-value]


async def get_rewriter(request: Request) -> FormalRewriter:
    return _state(request, "rewriter")  # type: ignore[return-value]


DispatcherDep = Annotated[WebhookDispatcher, Depends(get_dispatcher)]
ProducerDep = Annotated[ComplaintWebhookService, Depends(get_producer)]
RewriterDep = Annotated[FormalRewriter, Depends(get_rewriter)]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check(request: Request) -> HealthResponse:
    """Check service health.

    Healthy when the webhook dispatcher is running, degraded when it is
    not, unhealthy when the application was never initialized.
    """
    settings: Settings | None = getattr(request.app.state, "settings", None)
    dispatcher: WebhookDispatcher | None = getattr(request.app.state, "dispatcher", None)

    if settings is None or dispatcher is None:
        return HealthResponse(
            status="unhealthy",
            version=__version__,
            dispatcher_running=False,
            n8n=N8nStatus(status="not configured"),
        )

    webhook = settings.webhook
    if not webhook.enabled:
        n8n = N8nStatus(status="disabled")
    elif "n8n_base_url" in webhook.model_fields_set:
        n8n = N8nStatus(status="configured", base_url=webhook.n8n_base_url)
    else:
        n8n = N8nStatus(status="not configured", base_url=webhook.n8n_base_url)

    running = dispatcher.running
    return HealthResponse(
        status="healthy" if running else "degraded",
        version=__version__,
        dispatcher_running=running,
        n8n=n8n,
    )


@router.get("/webhooks/status", response_model=WebhookStatusResponse, tags=["webhooks"])
async def webhook_status(dispatcher: DispatcherDep) -> WebhookStatusResponse:
    """Report webhook dispatcher counters and queue depth."""
    return WebhookStatusResponse(**dispatcher.stats())


@router.get("/webhooks/dead-letters", response_model=DeadLetterListResponse, tags=["webhooks"])
async def list_dead_letters(
    dispatcher: DispatcherDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> DeadLetterListResponse:
    """List abandoned webhook jobs for manual follow-up, oldest first."""
    store = dispatcher.dead_letters
    items = [DeadLetterResponse(**entry.model_dump()) for entry in store.entries(limit)]
    return DeadLetterListResponse(items=items, count=len(store), total=store.total)


@router.post(
    "/complaints/notifications",
    response_model=ComplaintNotificationResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["complaints"],
)
async def notify_complaint_created(
    body: ComplaintNotificationRequest,
    producer: ProducerDep,
) -> ComplaintNotificationResponse:
    """Announce a newly created complaint to n8n.

    Returns as soon as the event is queued; delivery happens in the
    background. Responds 503 when the queue is shutting down.
    """
    complaint = ComplaintSummary(**body.model_dump(exclude_none=True))
    job = producer.send_complaint_created(complaint, raise_on_shutdown=True)
    if job is None:
        return ComplaintNotificationResponse(queued=False)
    return ComplaintNotificationResponse(queued=True, job_id=job.id)


@router.post("/ai/rewrite-formal", response_model=RewriteFormalResponse, tags=["ai"])
async def rewrite_formal(
    body: RewriteFormalRequest,
    rewriter: RewriterDep,
) -> RewriteFormalResponse:
    """Rewrite text into formal language via the n8n AI workflow (synchronous)."""
    result = await rewriter.rewrite(body.text)
    return RewriteFormalResponse(result=result)
