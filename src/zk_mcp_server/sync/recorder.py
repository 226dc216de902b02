"""Bounded, sequence-numbered history of classified events.

``EventRecorder`` is a listener: register it on a ``SyncEngine`` and poll it
with ``since(seq)`` to read events as they arrive.
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timezone

from pydantic import BaseModel

from .models import EventType, SyncEvent


class RecordedEvent(BaseModel):
    """A ``SyncEvent`` stamped with a sequence number and arrival time.

    Attributes:
        seq: Monotonic sequence number, starting at 1.
        type: Event type.
        path: Node path.
        received_at: ISO 8601 UTC timestamp.
    """

    seq: int
    type: EventType
    path: str
    received_at: str

    model_config = {"frozen": True}


class EventRecorder:
    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._lock = threading.Lock()
        self._events: deque[RecordedEvent] = deque(maxlen=capacity)
        self._seq = 0

    def __call__(self, event: SyncEvent) -> None:
        with self._lock:
            self._seq += 1
            self._events.append(
                RecordedEvent(
                    seq=self._seq,
                    type=event.type,
                    path=event.path,
                    received_at=datetime.now(timezone.utc).isoformat(),
                )
            )

    @property
    def last_seq(self) -> int:
        """Sequence number of the newest event (0 before any event)."""
        with self._lock:
            return self._seq

    def since(
        self, seq: int = 0, limit: int | None = None
    ) -> list[RecordedEvent]:
        """Return retained events with a sequence number above *seq*, oldest first.

        Events older than the history capacity are gone; callers can detect
        the gap when the first returned ``seq`` is greater than ``seq + 1``.
        """
        with self._lock:
            events = [e for e in self._events if e.seq > seq]
        if limit is not None:
            events = events[:limit]
        return events
