"""In-process FIFO queue of pending webhook deliveries.

Producers call ``enqueue`` from request handlers (on the event loop or
from worker threads); a single dispatcher task consumes with ``get``.
The buffer is guarded by a lock so producers and the consumer only ever
see whole jobs, and consumer wakeups are always scheduled on the event
loop thread that is waiting.
"""

from __future__ import annotations

import asyncio
import copy
import heapq
import itertools
import logging
import threading
import time
from collections import deque
from typing import Any

from complaintdesk.exceptions import QueueShutdownError, ValidationError
from complaintdesk.models import JobState, WebhookJob

logger = logging.getLogger(__name__)


class WebhookQueue:
    """Unbounded, ordered buffer of webhook jobs.

    Jobs waiting for a retry are parked in a delay heap and move to the
    tail of the ready buffer once their backoff has elapsed, so a retried
    job may land behind jobs enqueued after it.

    Shutdown happens in two steps:
    - ``close()`` rejects new work; ``get()`` keeps handing out what was
      already accepted and returns None once nothing is left.
    - ``halt()`` makes ``get()`` return None right away.

    Example:
        ```python
        queue = WebhookQueue()
        queue.enqueue("https://example.test/hook", {"event": "complaint.created"})

        job = await queue.get()  # in the dispatcher task
        ```
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ready: deque[WebhookJob] = deque()
        # (due monotonic time, sequence, job); sequence keeps equal due times FIFO
        self._delayed: list[tuple[float, int, WebhookJob]] = []
        self._sequence = itertools.count()
        self._wakeup = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False
        self._halted = False
        self._enqueued_total = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._ready) + len(self._delayed)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def enqueued_total(self) -> int:
        """Jobs accepted by ``enqueue`` since the queue was created."""
        return self._enqueued_total

    def enqueue(self, target: str, payload: Any) -> WebhookJob:
        """Append a new job to the tail of the queue.

        Never performs network I/O and never waits; delivery happens later
        in the dispatcher task.

        Args:
            target: Destination URL.
            payload: JSON-serializable request body.

        Returns:
            The queued job.

        Raises:
            ValidationError: If target is empty.
            QueueShutdownError: If the queue has been closed.
        """
        if not isinstance(target, str) or not target.strip():
            raise ValidationError("target", "must be a non-empty URL")

        # Snapshot so later changes by the producer never reach the wire
        job = WebhookJob(target=target, payload=copy.deepcopy(payload))
        with self._lock:
            if self._closed:
                raise QueueShutdownError(target)
            self._ready.append(job)
            self._enqueued_total += 1

        self._notify()
        logger.info("Webhook job queued: %s (job %s)", target, job.id)
        return job

    def retry_later(self, job: WebhookJob, delay: float) -> None:
        """Put a failed job back at the tail once ``delay`` seconds have passed.

        Accepted after ``close()`` as well, since the job was taken in
        before shutdown began.
        """
        job.state = JobState.QUEUED
        with self._lock:
            if delay <= 0:
                self._ready.append(job)
            else:
                due = time.monotonic() + delay
                heapq.heappush(self._delayed, (due, next(self._sequence), job))
        self._notify()

    async def get(self) -> WebhookJob | None:
        """Remove and return the head job, waiting until one is available.

        Returns:
            The next job, marked in flight, or None when the queue is halted,
            or closed with no queued or retrying jobs left.
        """
        self._loop = asyncio.get_running_loop()
        while True:
            self._wakeup.clear()
            with self._lock:
                if self._halted:
                    return None
                self._promote_due_locked(time.monotonic())
                if self._ready:
                    return self._ready.popleft().mark_in_flight()
                if self._closed and not self._delayed:
                    return None
                timeout = (
                    max(self._delayed[0][0] - time.monotonic(), 0.0) if self._delayed else None
                )

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout)
            except TimeoutError:
                pass

    def close(self) -> None:
        """Stop accepting new jobs."""
        with self._lock:
            self._closed = True
        self._notify()

    def halt(self) -> None:
        """Close the queue and release the consumer immediately."""
        with self._lock:
            self._closed = True
            self._halted = True
        self._notify()

    def pending(self) -> list[WebhookJob]:
        """Snapshot of queued jobs, ready ones first, then those awaiting retry."""
        with self._lock:
            waiting = [job for _, _, job in sorted(self._delayed, key=lambda e: (e[0], e[1]))]
            return [*self._ready, *waiting]

    def _promote_due_locked(self, now: float) -> None:
        while self._delayed and self._delayed[0][0] <= now:
            _, _, job = heapq.heappop(self._delayed)
            self._ready.append(job)

    def _notify(self) -> None:
        loop = self._loop
        if loop is None:
            # No consumer yet; the first get() checks the buffer before waiting.
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._wakeup.set()
            return

        try:
            loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError:
            # Loop already closed: nobody is waiting on it any more.
            logger.debug("Webhook queue consumer loop is closed, skipping wakeup")
