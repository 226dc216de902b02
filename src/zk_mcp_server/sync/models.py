"""Pydantic models for the tree mirror.

- ``EventType``: the three semantic event kinds delivered to listeners.
- ``SyncEvent``: one classified remote mutation.
- ``Listener``: the callable shape listeners must have.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel


class EventType(str, Enum):
    """Semantic consequence of a remote mutation."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class SyncEvent(BaseModel):
    """A classified remote mutation.

    Attributes:
        type: Whether the node appeared, changed or disappeared.
        path: Absolute path of the node.
    """

    type: EventType
    path: str

    model_config = {"frozen": True}


Listener = Callable[[SyncEvent], None]
