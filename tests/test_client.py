from unittest.mock import MagicMock, patch

import pytest
from kazoo.exceptions import (
    BadArgumentsError as KazooBadArgumentsError,
    BadVersionError,
    ConnectionLoss,
    NoAuthError,
    NodeExistsError,
    NoNodeError,
    NotEmptyError as KazooNotEmptyError,
)
from kazoo.protocol.states import (
    EventType,
    KazooState,
    WatchedEvent,
    ZnodeStat,
)

from zk_mcp_server.config import Config
from zk_mcp_server.core.client import ZooKeeperClient
from zk_mcp_server.core.errors import (
    AlreadyExistsError,
    BadArgumentsError,
    NoSuchPathError,
    NotAuthorizedError,
    NotEmptyError,
    RemoteOperationError,
    VersionConflictError,
)
from zk_mcp_server.core.models import ChangeKind, CreateMode


def _znode_stat(**overrides):
    fields = dict(
        czxid=1,
        mzxid=2,
        ctime=1_700_000_000_000,
        mtime=1_700_000_001_000,
        version=3,
        cversion=4,
        aversion=0,
        ephemeralOwner=0,
        dataLength=5,
        numChildren=2,
        pzxid=6,
    )
    fields.update(overrides)
    return ZnodeStat(**fields)


@pytest.fixture
def kazoo():
    return MagicMock()


@pytest.fixture
def client(mock_config, kazoo):
    return ZooKeeperClient(mock_config, kazoo)


# Construction
@patch("zk_mcp_server.core.client.KazooClient")
def test_kazoo_client_built_from_config(mock_kazoo_cls):
    config = Config(
        hosts="zk1:2181,zk2:2181/app",
        timeout=7.5,
        read_only=True,
        connection_retry_period=2000,
    )

    ZooKeeperClient(config)

    kwargs = mock_kazoo_cls.call_args.kwargs
    assert kwargs["hosts"] == "zk1:2181,zk2:2181/app"
    assert kwargs["timeout"] == 7.5
    assert kwargs["read_only"] is True
    assert kwargs["connection_retry"]["delay"] == 2.0
    assert kwargs["connection_retry"]["max_tries"] == -1


def test_registers_state_listener(client, kazoo):
    kazoo.add_listener.assert_called_once_with(client._on_state_change)


def test_start_uses_timeout(client, kazoo, mock_config):
    client.start()
    kazoo.start.assert_called_once_with(timeout=mock_config.timeout)


def test_stop_closes(client, kazoo):
    client.stop()
    kazoo.stop.assert_called_once_with()
    kazoo.close.assert_called_once_with()


# Node operations
def test_exists_converts_stat(client, kazoo):
    kazoo.exists.return_value = _znode_stat(ephemeralOwner=0xABC)

    stat = client.exists("/a")

    assert stat.version == 3
    assert stat.num_children == 2
    assert stat.data_length == 5
    assert stat.ephemeral_owner == 0xABC
    assert stat.ephemeral is True
    kazoo.exists.assert_called_once_with("/a", watch=None)


def test_exists_missing_returns_none(client, kazoo):
    kazoo.exists.return_value = None
    assert client.exists("/a") is None


def test_exists_with_watch_passes_watcher(client, kazoo):
    kazoo.exists.return_value = None

    client.exists("/a", watch=True)

    assert kazoo.exists.call_args.kwargs["watch"] == client._on_watch


def test_get_children_with_watch(client, kazoo):
    kazoo.get_children.return_value = ["x", "y"]

    assert client.get_children("/a", watch=True) == ["x", "y"]
    assert kazoo.get_children.call_args.kwargs["watch"] == client._on_watch


def test_get_data(client, kazoo):
    kazoo.get.return_value = (b"payload", _znode_stat())
    assert client.get_data("/a") == b"payload"


def test_get_data_none_is_empty(client, kazoo):
    kazoo.get.return_value = (None, _znode_stat())
    assert client.get_data("/a") == b""


def test_set_data_passes_version(client, kazoo):
    client.set_data("/a", 4, b"new")
    kazoo.set.assert_called_once_with("/a", b"new", version=4)


@pytest.mark.parametrize(
    ("mode", "ephemeral", "sequence"),
    [
        (CreateMode.PERSISTENT, False, False),
        (CreateMode.EPHEMERAL, True, False),
        (CreateMode.PERSISTENT_SEQUENTIAL, False, True),
        (CreateMode.EPHEMERAL_SEQUENTIAL, True, True),
    ],
)
def test_create_maps_mode(client, kazoo, mode, ephemeral, sequence):
    kazoo.create.return_value = "/a0000000001"

    assert client.create("/a", mode, b"d") == "/a0000000001"
    kazoo.create.assert_called_once_with(
        "/a", b"d", ephemeral=ephemeral, sequence=sequence
    )


def test_delete(client, kazoo):
    client.delete("/a")
    kazoo.delete.assert_called_once_with("/a")


# Error translation
@pytest.mark.parametrize(
    ("kazoo_error", "expected"),
    [
        (NoNodeError, NoSuchPathError),
        (NodeExistsError, AlreadyExistsError),
        (BadVersionError, VersionConflictError),
        (NoAuthError, NotAuthorizedError),
        (KazooBadArgumentsError, BadArgumentsError),
        (KazooNotEmptyError, NotEmptyError),
        (ConnectionLoss, RemoteOperationError),
    ],
)
def test_kazoo_errors_translated(client, kazoo, kazoo_error, expected):
    kazoo.delete.side_effect = kazoo_error()

    with pytest.raises(expected) as exc_info:
        client.delete("/a/b")

    assert exc_info.value.path == "/a/b"
    assert exc_info.value.operation == "delete"
    assert isinstance(exc_info.value.__cause__, kazoo_error)


def test_connection_loss_message_names_cause(client, kazoo):
    kazoo.get_children.side_effect = ConnectionLoss()

    with pytest.raises(RemoteOperationError) as exc_info:
        client.get_children("/a")

    assert type(exc_info.value) is RemoteOperationError
    assert "ConnectionLoss" in str(exc_info.value)


# Watches
@pytest.mark.parametrize(
    ("event_type", "kind"),
    [
        (EventType.CREATED, ChangeKind.CREATED),
        (EventType.DELETED, ChangeKind.DELETED),
        (EventType.CHANGED, ChangeKind.CHANGED),
        (EventType.CHILD, ChangeKind.CHILD),
    ],
)
def test_watch_events_forwarded(client, event_type, kind):
    handler = MagicMock()
    client.set_watch_handler(handler)

    client._on_watch(WatchedEvent(event_type, "CONNECTED", "/a"))

    handler.assert_called_once_with(kind, "/a")


def test_session_events_not_forwarded(client):
    handler = MagicMock()
    client.set_watch_handler(handler)

    client._on_watch(WatchedEvent("NONE", "CONNECTED", None))

    handler.assert_not_called()


def test_watch_without_handler_is_ignored(client):
    client._on_watch(WatchedEvent(EventType.CREATED, "CONNECTED", "/a"))


# Connection state
def test_session_restored_callbacks_after_lost(client, kazoo):
    callback = MagicMock()
    client.add_session_restored_callback(callback)

    client._on_state_change(KazooState.LOST)
    client._on_state_change(KazooState.CONNECTED)

    kazoo.handler.spawn.assert_called_once_with(callback)


def test_no_resync_after_suspension_only(client, kazoo):
    client.add_session_restored_callback(MagicMock())

    client._on_state_change(KazooState.SUSPENDED)
    client._on_state_change(KazooState.CONNECTED)

    kazoo.handler.spawn.assert_not_called()


def test_resync_only_once_per_loss(client, kazoo):
    client.add_session_restored_callback(MagicMock())

    client._on_state_change(KazooState.LOST)
    client._on_state_change(KazooState.CONNECTED)
    client._on_state_change(KazooState.SUSPENDED)
    client._on_state_change(KazooState.CONNECTED)

    assert kazoo.handler.spawn.call_count == 1


def test_state_changes_logged(client, caplog):
    client._on_state_change(KazooState.SUSPENDED)
    client._on_state_change(KazooState.LOST)

    assert "suspended" in caplog.text
    assert "lost" in caplog.text


def test_connected_property(client, kazoo):
    kazoo.connected = False
    assert client.connected is False
    kazoo.connected = True
    assert client.connected is True
