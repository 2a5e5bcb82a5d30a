"""Bounded in-memory record of abandoned webhook jobs."""

from __future__ import annotations

import threading
from collections import deque

from complaintdesk.models import DeadLetter


class DeadLetterStore:
    """Keeps the most recent abandoned jobs for manual follow-up.

    When full, the oldest record is evicted (FIFO). Nothing here is
    durable: a restart loses the records, which are also written to the
    error log when the job is abandoned.
    """

    def __init__(self, max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._lock = threading.Lock()
        self._entries: deque[DeadLetter] = deque(maxlen=max_size)
        self._total = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def max_size(self) -> int:
        return self._entries.maxlen or 0

    @property
    def total(self) -> int:
        """Records added since creation, including evicted ones."""
        return self._total

    def add(self, entry: DeadLetter) -> None:
        with self._lock:
            self._entries.append(entry)
            self._total += 1

    def entries(self, limit: int | None = None) -> list[DeadLetter]:
        """Return stored records, oldest first.

        Args:
            limit: Return only the most recent ``limit`` records.
        """
        with self._lock:
            entries = list(self._entries)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> int:
        """Drop all records and return how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count
