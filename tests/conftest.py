"""Shared pytest fixtures for zk-mcp-server tests."""

from collections import deque
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from zk_mcp_server.config import Config
from zk_mcp_server.core.errors import (
    AlreadyExistsError,
    BadArgumentsError,
    NoSuchPathError,
    NotAuthorizedError,
    NotEmptyError,
    VersionConflictError,
)
from zk_mcp_server.core.models import ChangeKind, CreateMode, NodeStat
from zk_mcp_server.sync import EventRecorder, SyncEngine, WatchList
from zk_mcp_server.sync.paths import child_path, get_parent

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live ZooKeeper ensemble",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeCoordinationClient:
    """In-memory ZooKeeper stand-in with one-shot watch semantics.

    Notifications are queued rather than delivered, so tests control
    interleaving: call ``drain()`` to deliver them (and any they cause)
    to the installed watch handler.

    Modelled server behaviour:
    - ``/``, ``/zookeeper`` and ``/zookeeper/quota`` exist initially;
      deleting anything under ``/zookeeper`` fails with bad arguments.
    - An exists watch fires CREATED, CHANGED or DELETED; a children watch
      fires CHILD, or DELETED if the node itself goes. A node whose
      watches both fire on delete gets a single DELETED.
    """

    RESERVED = "/zookeeper"

    def __init__(self):
        self.nodes: dict[str, dict] = {}
        self.exists_watches: set[str] = set()
        self.child_watches: set[str] = set()
        self.unauthorized: set[str] = set()
        self.pending: deque[tuple[ChangeKind, str]] = deque()
        self.handler = None
        self._zxid = 0
        self._sequence = 0
        for path in ("/", "/zookeeper", "/zookeeper/quota"):
            self._put(path, b"")

    # -- test helpers ---------------------------------------------------

    def _put(self, path, data, ephemeral=False):
        self._zxid += 1
        self.nodes[path] = {
            "data": data,
            "version": 0,
            "czxid": self._zxid,
            "mzxid": self._zxid,
            "ctime": 1_700_000_000_000 + self._zxid,
            "mtime": 1_700_000_000_000 + self._zxid,
            "ephemeral_owner": 0x1234 if ephemeral else 0,
        }

    def _children(self, path):
        return sorted(
            p.rsplit("/", 1)[1]
            for p in self.nodes
            if p != "/" and get_parent(p) == path
        )

    def _fire(self, kind, path):
        self.pending.append((kind, path))

    def drain(self) -> int:
        """Deliver queued notifications until none are left."""
        delivered = 0
        while self.pending:
            kind, path = self.pending.popleft()
            self.handler(kind, path)
            delivered += 1
        return delivered

    def add_tree(self, *paths):
        """Create nodes (and ancestors) out-of-band, firing watches."""
        for path in paths:
            segments = path.strip("/").split("/")
            current = "/"
            for segment in segments:
                current = child_path(current, segment)
                if current not in self.nodes:
                    self.create(current, CreateMode.PERSISTENT)

    # -- CoordinationClient ----------------------------------------------

    def set_watch_handler(self, handler):
        self.handler = handler

    def exists(self, path, watch=False):
        if watch:
            self.exists_watches.add(path)
        node = self.nodes.get(path)
        if node is None:
            return None
        return NodeStat(
            czxid=node["czxid"],
            mzxid=node["mzxid"],
            ctime=node["ctime"],
            mtime=node["mtime"],
            version=node["version"],
            ephemeral_owner=node["ephemeral_owner"],
            data_length=len(node["data"]),
            num_children=len(self._children(path)),
        )

    def get_children(self, path, watch=False):
        if path not in self.nodes:
            raise NoSuchPathError(path, "get_children")
        if path in self.unauthorized:
            raise NotAuthorizedError(path, "get_children")
        if watch:
            self.child_watches.add(path)
        return self._children(path)

    def get_data(self, path):
        if path not in self.nodes:
            raise NoSuchPathError(path, "get_data")
        return self.nodes[path]["data"]

    def set_data(self, path, version, data):
        node = self.nodes.get(path)
        if node is None:
            raise NoSuchPathError(path, "set_data")
        if version != -1 and version != node["version"]:
            raise VersionConflictError(path, "set_data")
        self._zxid += 1
        node["data"] = data
        node["version"] += 1
        node["mzxid"] = self._zxid
        if path in self.exists_watches:
            self.exists_watches.discard(path)
            self._fire(ChangeKind.CHANGED, path)

    def create(self, path, mode, data=b""):
        if mode.sequential:
            self._sequence += 1
            path = f"{path}{self._sequence:010d}"
        if path in self.nodes:
            raise AlreadyExistsError(path, "create")
        parent = get_parent(path)
        if parent not in self.nodes:
            raise NoSuchPathError(path, "create")
        self._put(path, data, ephemeral=mode.ephemeral)
        if path in self.exists_watches:
            self.exists_watches.discard(path)
            self._fire(ChangeKind.CREATED, path)
        if parent in self.child_watches:
            self.child_watches.discard(parent)
            self._fire(ChangeKind.CHILD, parent)
        return path

    def delete(self, path):
        if path == self.RESERVED or path.startswith(self.RESERVED + "/"):
            raise BadArgumentsError(path, "delete")
        if path not in self.nodes:
            raise NoSuchPathError(path, "delete")
        if self._children(path):
            raise NotEmptyError(path, "delete")
        del self.nodes[path]
        watched = path in self.exists_watches or path in self.child_watches
        self.exists_watches.discard(path)
        self.child_watches.discard(path)
        if watched:
            self._fire(ChangeKind.DELETED, path)
        parent = get_parent(path)
        if parent in self.child_watches:
            self.child_watches.discard(parent)
            self._fire(ChangeKind.CHILD, parent)


@pytest.fixture
def fake_client():
    """In-memory coordination client seeded with the default tree."""
    return FakeCoordinationClient()


@pytest.fixture
def engine(fake_client):
    """SyncEngine bound to the fake client (not yet synchronised)."""
    return SyncEngine(fake_client)


@pytest.fixture
def events(engine):
    """List of (type, path) tuples received by a listener on ``engine``."""
    received: list[tuple[str, str]] = []
    engine.add_listener(lambda e: received.append((e.type.value, e.path)))
    return received


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(hosts="zk.example.com:2181", timeout=5.0)


@pytest.fixture
def tool_context(fake_client, engine, mock_config):
    """ToolContext wired to a synchronised engine over the fake client."""
    from zk_mcp_server.mcp.tools.registry import ToolContext

    recorder = EventRecorder(100)
    engine.add_listener(recorder)
    watches = WatchList(engine)
    engine.watch()

    client = MagicMock()
    client.config = mock_config
    client.connected = True
    return ToolContext(
        client=client,
        engine=engine,
        recorder=recorder,
        watches=watches,
    )
