"""Explicit and pattern-based watches on individual nodes.

``WatchList`` listens to a ``SyncEngine``. It records the latest event for
each watched path and, for each registered regular expression, starts
watching every existing or future path that fully matches it.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timezone

from pydantic import BaseModel

from .engine import SyncEngine
from .models import EventType, SyncEvent

logger = logging.getLogger(__name__)


class WatchEntry(BaseModel):
    """Observed state of one watched path.

    Attributes:
        path: Watched node path.
        deleted: True once a DELETE was seen and no ADD/UPDATE since.
        updates: Number of ADD/UPDATE events seen since the watch was added.
        last_event: Type of the latest event, if any.
        last_event_at: ISO 8601 UTC timestamp of the latest event.
    """

    path: str
    deleted: bool = False
    updates: int = 0
    last_event: EventType | None = None
    last_event_at: str | None = None


class WatchList:
    def __init__(self, engine: SyncEngine) -> None:
        self.engine = engine
        self._lock = threading.RLock()
        self._watches: dict[str, WatchEntry] = {}
        self._patterns: dict[str, re.Pattern[str]] = {}
        engine.add_listener(self)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def add_watch(self, path: str) -> bool:
        """Start watching *path*. Returns False if it was already watched."""
        with self._lock:
            if path in self._watches:
                return False
            self._watches[path] = WatchEntry(path=path)
        logger.debug("%s watch added", path)
        return True

    def remove_watch(self, path: str) -> bool:
        with self._lock:
            if self._watches.pop(path, None) is None:
                return False
        logger.debug("%s watch removed", path)
        return True

    def has_watch(self, path: str) -> bool:
        with self._lock:
            return path in self._watches

    def watched(self) -> list[WatchEntry]:
        """Return a copy of every watch entry, sorted by path."""
        with self._lock:
            return [
                entry.model_copy()
                for _, entry in sorted(self._watches.items())
            ]

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def add_pattern(self, pattern: str) -> list[str]:
        """Watch every known and future path fully matching *pattern*.

        Returns:
            Paths that started being watched right away (sorted).

        Raises:
            ValueError: If *pattern* is empty or not a valid regex.
        """
        if not pattern:
            raise ValueError("Pattern cannot be empty")
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid pattern '{pattern}': {e}") from None

        with self._lock:
            if pattern in self._patterns:
                logger.debug("watch pattern %s already exists", pattern)
                return []
            self._patterns[pattern] = compiled
        logger.debug("%s watch pattern added", pattern)

        # Lock released: add_watch takes it per path
        added = [
            path
            for path in sorted(self.engine.snapshot())
            if compiled.fullmatch(path) and self.add_watch(path)
        ]
        return added

    def remove_pattern(self, pattern: str) -> bool:
        """Stop matching new paths against *pattern*. Existing watches stay."""
        with self._lock:
            if self._patterns.pop(pattern, None) is None:
                return False
        logger.debug("%s watch pattern removed", pattern)
        return True

    def patterns(self) -> list[str]:
        with self._lock:
            return sorted(self._patterns)

    # ------------------------------------------------------------------
    # Listener
    # ------------------------------------------------------------------

    def __call__(self, event: SyncEvent) -> None:
        with self._lock:
            entry = self._watches.get(event.path)
            if entry is None:
                if event.type is EventType.ADD and any(
                    p.fullmatch(event.path) for p in self._patterns.values()
                ):
                    self._watches[event.path] = WatchEntry(path=event.path)
                    logger.debug("%s watch added by pattern", event.path)
                return

            deleted = event.type is EventType.DELETE
            if deleted:
                logger.info("[watch] %s deleted", event.path)
            else:
                logger.info("[watch] %s updated", event.path)
            self._watches[event.path] = entry.model_copy(
                update={
                    "deleted": deleted,
                    "updates": entry.updates + (0 if deleted else 1),
                    "last_event": event.type,
                    "last_event_at": datetime.now(timezone.utc).isoformat(),
                }
            )
