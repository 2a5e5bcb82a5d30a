"""Synchronous AI text tools backed by n8n webhooks.

Unlike complaint events, these calls wait for the n8n workflow to answer,
so failures surface to the caller as UpstreamError with the HTTP status
the API should report.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from complaintdesk.config import WebhookSettings
from complaintdesk.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying n8n call (attempt %d): %s",
        retry_state.attempt_number,
        error,
    )


class FormalRewriter:
    """Rewrites free text into formal language through the n8n rewrite workflow.

    The workflow answers ``{"result": "..."}``; any other body is returned
    as-is. Connection failures are retried a few times, timeouts are not
    since the user is waiting on the answer.
    """

    def __init__(
        self,
        settings: WebhookSettings | None = None,
        client: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        wait: wait_base | None = None,
    ) -> None:
        self._settings = settings or WebhookSettings()
        self._client = client
        self._max_attempts = max_attempts
        self._wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=4)

    async def rewrite(self, text: str) -> str:
        """Return ``text`` rewritten in formal language.

        Raises:
            ValidationError: If text is blank.
            UpstreamError: 503 when webhooks are disabled, 502 when n8n is
                unreachable or answers non-2xx, 504 on timeout.
        """
        if not text or not text.strip():
            raise ValidationError("text", "Text to rewrite is required")

        if not self._settings.enabled:
            raise UpstreamError("AI service is disabled", status_code=503)

        url = self._settings.rewrite_formal_url()
        try:
            response = await self._post(url, {"text": text})
        except httpx.TimeoutException as e:
            raise UpstreamError("AI service timed out, please try again", status_code=504) from e
        except httpx.RequestError as e:
            logger.error("Failed to call n8n rewrite webhook: %s", e)
            raise UpstreamError("Cannot reach AI service, please try again") from e

        if not response.is_success:
            logger.warning("n8n rewrite webhook returned %d", response.status_code)
            raise UpstreamError("AI service did not respond, please try again")

        try:
            data = response.json()
        except ValueError:
            return response.text

        if isinstance(data, dict) and isinstance(data.get("result"), str):
            return data["result"]
        return response.text

    async def _post(self, url: str, body: dict[str, str]) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(httpx.ConnectError),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                if self._client is not None:
                    response = await self._client.post(
                        url, json=body, timeout=self._settings.request_timeout
                    )
                else:
                    async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
                        response = await client.post(url, json=body)
        return response
