"""Watch-driven mirror of a remote ZooKeeper tree.

The ``SyncEngine`` keeps a ``NodeRegistry`` in step with the remote tree and
turns every fired one-shot watch into at most one ``SyncEvent``:

1. ``created``  re-arms the existence watch, emits ADD if the path is new,
   then discovers the node's children as if they had just changed.
2. ``child``    re-arms the children watch and discovers every child.
3. ``changed``  re-arms the existence watch and emits UPDATE, even if the
   node has meanwhile been deleted.
4. ``deleted``  emits DELETE if the path was known.

Bootstrap (``watch``) and steady-state discovery share one code path.
Discovery walks an explicit stack, so tree depth is not bounded by the
interpreter's recursion limit. A remote failure on one node is logged and
leaves only that node or subtree unobserved; the walk carries on.

The engine also exposes the tree mutators (``create``, ``delete``, ``trim``,
``prune``). Their effects reach the registry only through the notifications
they provoke.
"""

from __future__ import annotations

import logging

from zk_mcp_server.core.client import CoordinationClient
from zk_mcp_server.core.errors import (
    AlreadyExistsError,
    BadArgumentsError,
    IllegalOperationError,
    NoSuchPathError,
    NotAuthorizedError,
    RemoteOperationError,
)
from zk_mcp_server.core.models import ChangeKind, CreateMode, NodeStat
from zk_mcp_server.sync.models import Listener
from zk_mcp_server.sync.paths import (
    ROOT,
    ancestors,
    child_path,
    get_parent,
    is_root,
)
from zk_mcp_server.sync.registry import NodeRegistry

logger = logging.getLogger(__name__)


class SyncEngine:
    """Mirror the tree behind *client* and classify its changes.

    Args:
        client: Connected coordination client. The engine installs itself as
            the client's watch handler but never starts or stops it.
    """

    def __init__(self, client: CoordinationClient) -> None:
        self.client = client
        self.registry = NodeRegistry()
        client.set_watch_handler(self.process)

    # ------------------------------------------------------------------
    # Synchronisation
    # ------------------------------------------------------------------

    def watch(self) -> None:
        """(Re)synchronise from an empty registry, emitting ADD for every node."""
        with self.registry.lock:
            logger.info("synchronising tree from %s", ROOT)
            self.registry.clear()
            self._discover(ROOT)
            if not self.registry.contains(ROOT):
                raise RemoteOperationError(
                    ROOT, "watch", "root node could not be mirrored"
                )
            logger.info(
                "synchronised %d nodes", len(self.registry.snapshot())
            )

    def process(self, kind: ChangeKind, path: str) -> None:
        """Handle one fired watch. Called on the client's callback thread."""
        logger.debug("watch fired: %s %s", kind.value, path)
        with self.registry.lock:
            match kind:
                case ChangeKind.CREATED:
                    self._discover(path)
                case ChangeKind.CHILD:
                    for name in self._watch_children(path):
                        self._discover(child_path(path, name))
                case ChangeKind.CHANGED:
                    self._arm_existence(path)
                    self.registry.update(path)
                case ChangeKind.DELETED:
                    self.registry.discard(path)

    def _arm_existence(self, path: str) -> bool:
        """Arm the existence/data watch on *path*; return whether it exists."""
        try:
            return self.client.exists(path, watch=True) is not None
        except NoSuchPathError:
            logger.debug("exists %s: node vanished before re-arm", path)
        except RemoteOperationError as e:
            logger.warning(
                "exists %s: re-arm failed, node left unobserved: %s", path, e
            )
        return False

    def _watch_children(self, path: str) -> list[str]:
        """Arm the children watch on *path* and return its child names."""
        try:
            return self.client.get_children(path, watch=True)
        except NoSuchPathError:
            logger.debug(
                "get_children %s: node vanished before listing", path
            )
        except NotAuthorizedError:
            logger.warning(
                "get_children %s: not authorized, subtree left unobserved",
                path,
            )
        except RemoteOperationError as e:
            logger.warning(
                "get_children %s: re-arm failed, subtree left unobserved: %s",
                path,
                e,
            )
        return []

    def _discover(self, path: str) -> None:
        """Apply created-handling to *path* and, parent first, its subtree."""
        stack = [path]
        while stack:
            current = stack.pop()
            if not self._arm_existence(current):
                # Absent (its watch reports a later creation) or unreachable
                continue
            self.registry.add(current)
            children = self._watch_children(current)
            stack.extend(
                child_path(current, name) for name in reversed(children)
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self.registry.add_listener(listener)

    def snapshot(self) -> frozenset[str]:
        return self.registry.snapshot()

    def contains(self, path: str) -> bool:
        return self.registry.contains(path)

    def get_stat(self, path: str) -> NodeStat | None:
        return self.client.exists(path)

    def get_data(self, path: str) -> bytes:
        return self.client.get_data(path)

    def set_data(self, path: str, version: int, data: bytes) -> None:
        self.client.set_data(path, version, data)

    # ------------------------------------------------------------------
    # Tree mutators
    # ------------------------------------------------------------------

    def create(
        self,
        path: str,
        mode: CreateMode = CreateMode.PERSISTENT,
        data: bytes = b"",
    ) -> bool:
        """Create *path* and any missing ancestors.

        Ancestors are created top-down as persistent, empty nodes; an
        ancestor that appears concurrently is fine. Only *path* itself gets
        *mode* and *data*.

        Returns:
            ``True`` if *path* was created, ``False`` if it already existed.

        Raises:
            RemoteOperationError: On any remote failure other than
                "already exists".
        """
        return self.create_node(path, mode, data) is not None

    def create_node(
        self,
        path: str,
        mode: CreateMode = CreateMode.PERSISTENT,
        data: bytes = b"",
    ) -> str | None:
        """Like ``create``, but return the path actually created, or ``None``.

        For sequential modes *path* is a name prefix, so it is never
        reported as already existing.
        """
        if not mode.sequential and self.client.exists(path) is not None:
            return None
        for ancestor in ancestors(path):
            if self.client.exists(ancestor) is not None:
                continue
            try:
                self.client.create(ancestor, CreateMode.PERSISTENT)
            except AlreadyExistsError:
                logger.debug(
                    "create %s: ancestor %s created concurrently",
                    path,
                    ancestor,
                )
        try:
            created = self.client.create(path, mode, data)
        except AlreadyExistsError:
            return None
        logger.info("created %s (%s)", created, mode.value)
        return created

    def delete(self, path: str) -> None:
        """Delete *path* and its whole subtree. The root cannot be deleted."""
        if is_root(path):
            raise IllegalOperationError(path, "delete", "cannot delete the root node")
        self.trim(path)
        try:
            self.client.delete(path)
        except NoSuchPathError:
            logger.debug("delete %s: already gone", path)
        else:
            logger.info("deleted %s", path)

    def trim(self, path: str) -> None:
        """Delete every descendant of *path*, leaving *path* itself.

        Descendants are removed children-before-parent. A child that fails
        with "bad arguments" is logged and skipped; any other failure
        aborts the trim.
        """
        pending = [
            (child_path(path, name), False)
            for name in self.client.get_children(path)
        ]
        while pending:
            current, expanded = pending.pop()
            try:
                if expanded:
                    self.client.delete(current)
                    continue
                children = self.client.get_children(current)
                pending.append((current, True))
                pending.extend(
                    (child_path(current, name), False) for name in children
                )
            except BadArgumentsError as e:
                logger.error("trim %s: skipping %s: %s", path, current, e)

    def prune(self, path: str) -> str | None:
        """Delete *path*, then every ancestor left with no other child.

        Returns:
            The nearest surviving ancestor, or ``None`` if *path* did not
            exist or the collapse reached the root.
        """
        if is_root(path):
            raise IllegalOperationError(path, "prune", "cannot prune the root node")
        if self.client.exists(path) is None:
            return None
        target = path
        while (parent := get_parent(target)) != ROOT:
            if len(self.client.get_children(parent)) != 1:
                break
            target = parent
        self.delete(target)
        survivor = get_parent(target)
        if survivor is None or is_root(survivor):
            return None
        return survivor
