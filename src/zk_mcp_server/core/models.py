"""Pydantic models and enums shared by the client adapter and the engine.

- ``ChangeKind``: the four primitive one-shot notification kinds.
- ``CreateMode``: durability semantics for node creation.
- ``NodeStat``: node metadata returned by existence checks.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ChangeKind(str, Enum):
    """Primitive notification kinds delivered by a fired watch."""

    CREATED = "created"
    DELETED = "deleted"
    CHANGED = "changed"
    CHILD = "child"


class CreateMode(str, Enum):
    """Node durability: persistent or tied to the client session."""

    PERSISTENT = "persistent"
    EPHEMERAL = "ephemeral"
    PERSISTENT_SEQUENTIAL = "persistent_sequential"
    EPHEMERAL_SEQUENTIAL = "ephemeral_sequential"

    @property
    def ephemeral(self) -> bool:
        return self in (
            CreateMode.EPHEMERAL,
            CreateMode.EPHEMERAL_SEQUENTIAL,
        )

    @property
    def sequential(self) -> bool:
        return self in (
            CreateMode.PERSISTENT_SEQUENTIAL,
            CreateMode.EPHEMERAL_SEQUENTIAL,
        )

    @classmethod
    def from_flags(
        cls, ephemeral: bool = False, sequential: bool = False
    ) -> CreateMode:
        match (ephemeral, sequential):
            case (True, True):
                return cls.EPHEMERAL_SEQUENTIAL
            case (True, False):
                return cls.EPHEMERAL
            case (False, True):
                return cls.PERSISTENT_SEQUENTIAL
            case _:
                return cls.PERSISTENT


class NodeStat(BaseModel):
    """Metadata of a single node.

    Attributes:
        czxid: Transaction id that created the node.
        mzxid: Transaction id that last modified the node's data.
        pzxid: Transaction id that last modified the node's children.
        ctime: Creation time in milliseconds since the epoch.
        mtime: Last modification time in milliseconds since the epoch.
        version: Data version, used for optimistic-concurrency writes.
        cversion: Number of changes to the children of this node.
        aversion: Number of changes to the ACL of this node.
        ephemeral_owner: Owning session id for ephemeral nodes, else 0.
        data_length: Length of the data field in bytes.
        num_children: Number of children.
    """

    czxid: int = 0
    mzxid: int = 0
    pzxid: int = 0
    ctime: int = 0
    mtime: int = 0
    version: int = 0
    cversion: int = 0
    aversion: int = 0
    ephemeral_owner: int = 0
    data_length: int = 0
    num_children: int = 0

    model_config = {"frozen": True}

    @property
    def ephemeral(self) -> bool:
        return self.ephemeral_owner != 0

    @classmethod
    def from_znode_stat(cls, stat: Any) -> NodeStat:
        """Build from a kazoo ``ZnodeStat`` (or any object with its fields)."""
        return cls(
            czxid=stat.czxid,
            mzxid=stat.mzxid,
            pzxid=stat.pzxid,
            ctime=stat.ctime,
            mtime=stat.mtime,
            version=stat.version,
            cversion=stat.cversion,
            aversion=stat.aversion,
            ephemeral_owner=stat.ephemeralOwner,
            data_length=stat.dataLength,
            num_children=stat.numChildren,
        )
