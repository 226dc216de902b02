import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

from kazoo.client import KazooClient
from kazoo.exceptions import (
    BadArgumentsError as KazooBadArgumentsError,
    BadVersionError,
    KazooException,
    NoAuthError,
    NodeExistsError,
    NoNodeError,
    NotEmptyError as KazooNotEmptyError,
)
from kazoo.protocol.states import EventType, KazooState, WatchedEvent

from ..config import Config
from .errors import (
    AlreadyExistsError,
    BadArgumentsError,
    NoSuchPathError,
    NotAuthorizedError,
    NotEmptyError,
    RemoteOperationError,
    VersionConflictError,
)
from .models import ChangeKind, CreateMode, NodeStat

logger = logging.getLogger(__name__)

WatchHandler = Callable[[ChangeKind, str], None]


class CoordinationClient(Protocol):
    """Capabilities the sync engine needs from a coordination service.

    ``watch=True`` arms a one-shot notification delivered later, exactly once,
    to the handler installed with ``set_watch_handler``.
    """

    def set_watch_handler(self, handler: WatchHandler) -> None: ...

    def exists(self, path: str, watch: bool = False) -> NodeStat | None: ...

    def get_children(self, path: str, watch: bool = False) -> list[str]: ...

    def get_data(self, path: str) -> bytes: ...

    def set_data(self, path: str, version: int, data: bytes) -> None: ...

    def create(
        self, path: str, mode: CreateMode, data: bytes = b""
    ) -> str: ...

    def delete(self, path: str) -> None: ...


_CHANGE_KINDS = {
    EventType.CREATED: ChangeKind.CREATED,
    EventType.DELETED: ChangeKind.DELETED,
    EventType.CHANGED: ChangeKind.CHANGED,
    EventType.CHILD: ChangeKind.CHILD,
}


@contextmanager
def _remote_call(operation: str, path: str) -> Iterator[None]:
    """Translate kazoo exceptions into the sync error taxonomy."""
    try:
        yield
    except NoNodeError as e:
        raise NoSuchPathError(path, operation) from e
    except NodeExistsError as e:
        raise AlreadyExistsError(path, operation) from e
    except BadVersionError as e:
        raise VersionConflictError(path, operation) from e
    except NoAuthError as e:
        raise NotAuthorizedError(path, operation) from e
    except KazooBadArgumentsError as e:
        raise BadArgumentsError(path, operation) from e
    except KazooNotEmptyError as e:
        raise NotEmptyError(path, operation) from e
    except KazooException as e:
        raise RemoteOperationError(
            path, operation, f"{type(e).__name__}: {e}"
        ) from e


class ZooKeeperClient:
    """``CoordinationClient`` backed by a kazoo ``KazooClient``.

    The client owns the kazoo connection; the sync engine only borrows it.
    Watch notifications are delivered on kazoo's callback thread.
    """

    def __init__(self, config: Config, zk: KazooClient | None = None):
        self.config = config
        self._zk = zk or self._create_kazoo_client()
        self._watch_handler: WatchHandler | None = None
        self._session_restored: list[Callable[[], None]] = []
        self._session_lost = False
        self._zk.add_listener(self._on_state_change)

    def _create_kazoo_client(self) -> KazooClient:
        retry_delay = self.config.connection_retry_period / 1000
        return KazooClient(
            hosts=self.config.hosts,
            timeout=self.config.timeout,
            read_only=self.config.read_only,
            connection_retry={
                "max_tries": -1,
                "delay": retry_delay,
                "backoff": 1,
                "max_delay": max(retry_delay, 1),
            },
        )

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return bool(self._zk.connected)

    def start(self) -> None:
        """Connect, blocking for at most ``config.timeout`` seconds."""
        logger.info("connecting to %s", self.config.hosts)
        self._zk.start(timeout=self.config.timeout)

    def stop(self) -> None:
        """Disconnect and release the kazoo client."""
        logger.info("disconnecting from %s", self.config.hosts)
        self._zk.stop()
        self._zk.close()

    def add_session_restored_callback(
        self, callback: Callable[[], None]
    ) -> None:
        """Register *callback* to run after a lost session is re-established.

        Watches do not survive session loss, so this is where the owner
        re-synchronizes. Callbacks run on a kazoo-spawned thread.
        """
        self._session_restored.append(callback)

    def _on_state_change(self, state: str) -> None:
        # Runs on kazoo's connection thread: must not block
        if state == KazooState.LOST:
            self._session_lost = True
            logger.warning(
                "connection to %s has been lost. Attempts will be made to reestablish the connection",
                self.config.hosts,
            )
        elif state == KazooState.SUSPENDED:
            logger.warning(
                "connection to %s has been suspended. Attempts will be made to reestablish the connection",
                self.config.hosts,
            )
        elif state == KazooState.CONNECTED and self._session_lost:
            self._session_lost = False
            logger.info(
                "connection to %s has been reestablished",
                self.config.hosts,
            )
            for callback in list(self._session_restored):
                self._zk.handler.spawn(callback)

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------

    def set_watch_handler(self, handler: WatchHandler) -> None:
        self._watch_handler = handler

    def _on_watch(self, event: WatchedEvent) -> None:
        kind = _CHANGE_KINDS.get(event.type)
        handler = self._watch_handler
        if kind is None or handler is None:
            return
        handler(kind, event.path)

    def _watcher(self, watch: bool):
        # Bound methods compare equal, so kazoo keeps one watcher per path
        return self._on_watch if watch else None

    # ------------------------------------------------------------------
    # Node operations
    # ------------------------------------------------------------------

    def exists(self, path: str, watch: bool = False) -> NodeStat | None:
        """
        Return node metadata, or None if the node does not exist.
        With ``watch`` set, arms a watch for creation, deletion or data change.
        """
        with _remote_call("exists", path):
            stat = self._zk.exists(path, watch=self._watcher(watch))
        if stat is None:
            return None
        return NodeStat.from_znode_stat(stat)

    def get_children(self, path: str, watch: bool = False) -> list[str]:
        """
        List child names. With ``watch`` set, arms a watch for child-set changes.
        """
        with _remote_call("get_children", path):
            return list(
                self._zk.get_children(path, watch=self._watcher(watch))
            )

    def get_data(self, path: str) -> bytes:
        with _remote_call("get_data", path):
            data, _ = self._zk.get(path)
        return data or b""

    def set_data(self, path: str, version: int, data: bytes) -> None:
        """
        Replace node data if the current version equals ``version``
        (-1 matches any version).
        """
        with _remote_call("set_data", path):
            self._zk.set(path, data, version=version)

    def create(
        self, path: str, mode: CreateMode, data: bytes = b""
    ) -> str:
        """
        Create a single node. The parent must already exist.

        Returns:
            The actual path created (differs from ``path`` for sequential nodes).
        """
        with _remote_call("create", path):
            return self._zk.create(
                path,
                data,
                ephemeral=mode.ephemeral,
                sequence=mode.sequential,
            )

    def delete(self, path: str) -> None:
        """
        Delete a single childless node.
        """
        with _remote_call("delete", path):
            self._zk.delete(path)
