"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from complaintdesk.config import WebhookSettings  # noqa: E402

HOOK_URL = "https://example.test/hook"


class ScriptedEndpoint:
    """Mock webhook endpoint answering from a script.

    Each request consumes the next script entry; the last entry repeats
    forever. An entry is an HTTP status code, "timeout" or "connect".
    Every request is recorded in ``requests`` in arrival order.
    """

    def __init__(self, *script: int | str) -> None:
        self.script = list(script) or [200]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if outcome == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if outcome == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(outcome, text="ok" if outcome < 400 else "nope")

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


async def wait_for_requests(endpoint: ScriptedEndpoint, count: int, timeout: float = 2.0) -> None:
    """Wait until ``endpoint`` has seen at least ``count`` requests."""

    async def _poll() -> None:
        while len(endpoint.requests) < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fast_settings() -> WebhookSettings:
    """Webhook settings with no backoff so retries run back to back."""
    return WebhookSettings(
        max_attempts=5,
        backoff_base_delay=0.0,
        backoff_max_delay=0.0,
        request_timeout=1.0,
        shutdown_timeout=5.0,
    )
