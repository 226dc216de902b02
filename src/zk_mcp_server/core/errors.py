"""Error taxonomy for ZooKeeper operations.

Every error carries the ``path`` it concerns, the ``operation`` that was
attempted and a stable ``kind`` string, so callers (and the MCP error
translator) can decide whether to retry, prompt, or give up without parsing
messages.

Hierarchy::

    ZooKeeperSyncError
    ├── RemoteOperationError        unexpected remote failure
    │   ├── NoSuchPathError
    │   ├── AlreadyExistsError
    │   ├── VersionConflictError
    │   ├── NotAuthorizedError
    │   ├── BadArgumentsError
    │   └── NotEmptyError
    └── IllegalOperationError       rejected locally (e.g. deleting root)
"""

from __future__ import annotations

__all__ = [
    "AlreadyExistsError",
    "BadArgumentsError",
    "IllegalOperationError",
    "NoSuchPathError",
    "NotAuthorizedError",
    "NotEmptyError",
    "RemoteOperationError",
    "VersionConflictError",
    "ZooKeeperSyncError",
]


class ZooKeeperSyncError(Exception):
    """Base class for all errors raised by the sync engine and client."""

    kind = "error"
    default_message = "operation failed"

    def __init__(
        self,
        path: str,
        operation: str | None = None,
        message: str | None = None,
    ):
        self.path = path
        self.operation = operation
        self.detail = message or self.default_message
        super().__init__(self._format())

    def _format(self) -> str:
        if self.operation:
            return f"{self.operation} {self.path} failed: {self.detail}"
        return f"{self.path}: {self.detail}"


class RemoteOperationError(ZooKeeperSyncError):
    """Raised when the coordination service rejects or fails a call."""

    kind = "remote_error"
    default_message = "remote operation failed"


class NoSuchPathError(RemoteOperationError):
    kind = "no_such_path"
    default_message = "node does not exist"


class AlreadyExistsError(RemoteOperationError):
    kind = "already_exists"
    default_message = "node already exists"


class VersionConflictError(RemoteOperationError):
    kind = "version_conflict"
    default_message = "expected version does not match current version"


class NotAuthorizedError(RemoteOperationError):
    kind = "not_authorized"
    default_message = "not authorized"


class BadArgumentsError(RemoteOperationError):
    kind = "bad_arguments"
    default_message = "bad arguments"


class NotEmptyError(RemoteOperationError):
    kind = "not_empty"
    default_message = "node has children"


class IllegalOperationError(ZooKeeperSyncError):
    """Raised for operations that are never allowed, such as deleting ``/``."""

    kind = "illegal_operation"
    default_message = "operation not allowed"
