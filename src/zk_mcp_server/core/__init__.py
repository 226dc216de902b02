"""Core ZooKeeper client functionality shared between CLI and MCP server."""

from .async_utils import run_sync
from .client import CoordinationClient, ZooKeeperClient

__all__ = ["CoordinationClient", "ZooKeeperClient", "run_sync"]
