"""Background webhook dispatcher with exponential backoff retry.

One dispatcher task per process drains the WebhookQueue and POSTs each
job's payload as JSON:
- 2xx responses mark the job delivered
- timeouts, network errors, 3xx, 5xx, 408, 425 and 429 are retried with backoff
- malformed targets and other 4xx responses are abandoned at once
- jobs that run out of attempts are abandoned and kept as dead letters
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
from pydantic_core import PydanticSerializationError, to_json

from complaintdesk.config import WebhookSettings
from complaintdesk.exceptions import (
    DeliveryError,
    PermanentDeliveryError,
    TransientDeliveryError,
)
from complaintdesk.logging import log_context
from complaintdesk.models import DeadLetter, utc_now

from .dead_letter import DeadLetterStore

if TYPE_CHECKING:
    from complaintdesk.models import WebhookJob

    from .queue import WebhookQueue

logger = logging.getLogger(__name__)

# 4xx responses that say "try again later" rather than "never"
RETRYABLE_CLIENT_STATUSES = frozenset({408, 425, 429})

JSON_HEADERS = {"Content-Type": "application/json"}


def validate_target(target: str) -> httpx.URL:
    """Parse a webhook target, rejecting anything that cannot be POSTed to.

    Raises:
        PermanentDeliveryError: If the URL is malformed or not http(s).
    """
    try:
        url = httpx.URL(target)
    except (httpx.InvalidURL, TypeError) as e:
        raise PermanentDeliveryError(f"Malformed target URL: {e}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise PermanentDeliveryError(f"Malformed target URL: {target!r}")
    return url


class WebhookDispatcher:
    """Drains a WebhookQueue and delivers jobs over HTTP.

    Deliveries run one at a time. A failed job goes back into the queue
    with a backoff delay, so other jobs keep flowing while it waits.

    Example:
        ```python
        queue = WebhookQueue()
        dispatcher = WebhookDispatcher(queue, settings.webhook)
        dispatcher.start()
        ...
        await dispatcher.stop()
        ```
    """

    def __init__(
        self,
        queue: WebhookQueue,
        settings: WebhookSettings | None = None,
        client: httpx.AsyncClient | None = None,
        dead_letters: DeadLetterStore | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            queue: Queue shared with the producers.
            settings: Retry policy and timeouts. Defaults to WebhookSettings().
            client: HTTP client to deliver with. If None, one is created on
                start() and closed on stop().
            dead_letters: Store for abandoned jobs.
        """
        self._queue = queue
        self._settings = settings or WebhookSettings()
        self._client = client
        self._owns_client = client is None
        self._dead_letters = dead_letters or DeadLetterStore(self._settings.dead_letter_max_size)
        self._task: asyncio.Task[None] | None = None
        self._delivered = 0
        self._retried = 0
        self._abandoned = 0

    @property
    def queue(self) -> WebhookQueue:
        return self._queue

    @property
    def dead_letters(self) -> DeadLetterStore:
        return self._dead_letters

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def backoff_delay(self, attempts: int) -> float:
        """Delay before the next attempt after ``attempts`` failed ones.

        Doubles per attempt: base, 2*base, 4*base... capped at backoff_max_delay.
        """
        exponent = max(attempts - 1, 0)
        delay = self._settings.backoff_base_delay * (2**exponent)
        return min(delay, self._settings.backoff_max_delay)

    def start(self) -> None:
        """Start the dispatch loop on the running event loop."""
        if self._task is not None:
            raise RuntimeError("Webhook dispatcher already started")
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout)
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="webhook-dispatcher"
        )

    async def stop(self) -> None:
        """Request a graceful shutdown and wait for the loop to exit.

        New enqueues are rejected from here on. With drain_on_shutdown,
        jobs already queued keep being delivered for up to shutdown_timeout
        seconds; after that the queue is halted. An in-flight request is
        never aborted: the loop exits once it completes or times out.
        """
        if self._task is None:
            return

        self._queue.close()
        if not self._settings.drain_on_shutdown:
            self._queue.halt()

        try:
            await asyncio.wait_for(asyncio.shield(self._task), self._settings.shutdown_timeout)
        except TimeoutError:
            logger.warning(
                "Webhook queue not drained after %.1fs, halting dispatcher",
                self._settings.shutdown_timeout,
            )
            self._queue.halt()
            await self._task

        leftovers = self._queue.pending()
        if leftovers:
            logger.warning(
                "%d webhook jobs undelivered at shutdown: %s",
                len(leftovers),
                ", ".join(job.target for job in leftovers[:10]),
            )

        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
        self._task = None

    def stats(self) -> dict[str, int | bool]:
        """Delivery counters since the dispatcher was created."""
        return {
            "running": self.running,
            "enqueued": self._queue.enqueued_total,
            "pending": len(self._queue),
            "delivered": self._delivered,
            "retried": self._retried,
            "abandoned": self._abandoned,
        }

    async def _run(self) -> None:
        logger.info("Webhook dispatcher started")
        while True:
            job = await self._queue.get()
            if job is None:
                break
            try:
                await self.process(job)
            except Exception as e:
                logger.exception("Webhook delivery error for %s: %s", job.target, e)
                self._abandon(job, PermanentDeliveryError(f"Unexpected error: {e}"))
        logger.info("Webhook dispatcher stopped")

    async def process(self, job: WebhookJob) -> None:
        """Run one delivery attempt for a claimed job and settle its outcome.

        Every log line of the attempt carries the job id and target.
        """
        with log_context(job_id=job.id, target=job.target):
            logger.info("Processing webhook job %s: %s", job.id, job.target)
            try:
                status_code = await self._deliver(job)
            except DeliveryError as e:
                self._handle_failure(job, e)
                return

            job.mark_delivered()
            self._delivered += 1
            logger.info(
                "Webhook delivered: %s (status %d, attempt %d)",
                job.target,
                status_code,
                job.attempts,
            )

    async def _deliver(self, job: WebhookJob) -> int:
        """POST the job payload and return the 2xx status code.

        Raises:
            TransientDeliveryError: Timeout, network error, 3xx, 5xx, 408/425/429.
            PermanentDeliveryError: Malformed target, unserializable payload,
                other 4xx.
        """
        url = validate_target(job.target)
        try:
            body = to_json(job.payload)
        except PydanticSerializationError as e:
            raise PermanentDeliveryError(f"Payload is not JSON serializable: {e}") from e

        if self._client is None:
            raise RuntimeError("Webhook dispatcher has no HTTP client, call start() first")

        job.attempts += 1
        try:
            response = await self._client.post(
                url,
                content=body,
                headers=JSON_HEADERS,
                timeout=self._settings.request_timeout,
            )
        except httpx.TimeoutException as e:
            raise TransientDeliveryError("Request timeout") from e
        except httpx.UnsupportedProtocol as e:
            raise PermanentDeliveryError(f"Unsupported protocol: {e}") from e
        except httpx.RequestError as e:
            raise TransientDeliveryError(str(e) or type(e).__name__) from e

        status_code = response.status_code
        if 200 <= status_code < 300:
            return status_code

        error = f"HTTP {status_code}: {response.text[:200]}"
        if 400 <= status_code < 500 and status_code not in RETRYABLE_CLIENT_STATUSES:
            raise PermanentDeliveryError(error, status_code=status_code)
        # 1xx/3xx (redirects are not followed) and 5xx
        raise TransientDeliveryError(error, status_code=status_code)

    def _handle_failure(self, job: WebhookJob, error: DeliveryError) -> None:
        # Malformed targets and bad payloads never reach the wire, retrying cannot help.
        retry_anyway = self._settings.retry_permanent_failures and error.status_code is not None
        if not error.retryable and not retry_anyway:
            logger.warning("Webhook rejected: %s (%s)", job.target, error.message)
            self._abandon(job, error, permanent=True)
            return

        if job.attempts >= self._settings.max_attempts:
            self._abandon(job, error)
            return

        delay = self.backoff_delay(job.attempts)
        job.mark_retrying(error.message, utc_now() + timedelta(seconds=delay))
        self._retried += 1
        logger.info(
            "Retrying webhook job: %s, attempt %d/%d in %.1fs (%s)",
            job.target,
            job.attempts,
            self._settings.max_attempts,
            delay,
            error.message,
        )
        self._queue.retry_later(job, delay)

    def _abandon(self, job: WebhookJob, error: DeliveryError, permanent: bool = False) -> None:
        job.mark_abandoned(error.message)
        self._abandoned += 1
        logger.error(
            "Webhook job abandoned after %d attempts: %s, last error: %s",
            job.attempts,
            job.target,
            error.message,
        )
        self._dead_letters.add(
            DeadLetter.from_job(job, status_code=error.status_code, permanent=permanent)
        )
