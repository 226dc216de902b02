"""Known-path set and listener dispatch for the tree mirror.

``NodeRegistry`` deduplicates add/delete notifications: a path is present
exactly while the mirror believes the remote node exists.

Two locks:
- ``lock`` (re-entrant) serialises mutation and dispatch. The engine holds
  it across whole notifications, remote calls included, so listeners see
  events in the order the registry changed.
- A short view lock guards the path set and the listener list. Queries
  (``contains``, ``snapshot``) take only this one and never wait for a
  tree walk in progress.
"""

from __future__ import annotations

import logging
import threading

from .models import EventType, Listener, SyncEvent

logger = logging.getLogger(__name__)


class NodeRegistry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._view_lock = threading.Lock()
        self._nodes: set[str] = set()
        self._listeners: list[Listener] = []

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def add_listener(self, listener: Listener) -> None:
        """Register *listener*; registering it again has no effect."""
        with self._view_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def contains(self, path: str) -> bool:
        with self._view_lock:
            return path in self._nodes

    def snapshot(self) -> frozenset[str]:
        """Return an immutable copy of every known path."""
        with self._view_lock:
            return frozenset(self._nodes)

    def clear(self) -> None:
        with self._lock, self._view_lock:
            self._nodes.clear()

    def add(self, path: str) -> bool:
        """Insert *path*, emitting ADD only if it was not already known."""
        with self._lock:
            with self._view_lock:
                if path in self._nodes:
                    return False
                self._nodes.add(path)
            self._dispatch(SyncEvent(type=EventType.ADD, path=path))
            return True

    def discard(self, path: str) -> bool:
        """Remove *path*, emitting DELETE only if it was known."""
        with self._lock:
            with self._view_lock:
                if path not in self._nodes:
                    logger.debug("ignoring delete of untracked path %s", path)
                    return False
                self._nodes.remove(path)
            self._dispatch(SyncEvent(type=EventType.DELETE, path=path))
            return True

    def update(self, path: str) -> None:
        """Emit UPDATE for *path* unconditionally."""
        with self._lock:
            self._dispatch(SyncEvent(type=EventType.UPDATE, path=path))

    def _dispatch(self, event: SyncEvent) -> None:
        # Caller holds the lock. Listeners may register others mid-dispatch.
        with self._view_lock:
            listeners = tuple(self._listeners)
        logger.debug("notify [%s] %s", event.type.value, event.path)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "listener %r failed on %s %s",
                    listener,
                    event.type.value,
                    event.path,
                )
