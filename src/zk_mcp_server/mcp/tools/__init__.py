"""MCP tool handlers for ZooKeeper operations.

This package contains MCP tool implementations that wrap the SyncEngine
and its listeners with async handlers and structured error responses.
"""

from .errors import build_error_response, translate_zk_error
from .events import EVENT_SPECS, EVENT_TOOLS
from .node_read import NODE_READ_SPECS, NODE_READ_TOOLS
from .node_write import NODE_WRITE_SPECS, NODE_WRITE_TOOLS
from .registry import (
    KNOWN_PERMISSIONS,
    ToolContext,
    ToolRegistry,
    ToolSpec,
    load_permissions_file,
)
from .watch import WATCH_SPECS, WATCH_TOOLS

NODE_SPECS = NODE_READ_SPECS + NODE_WRITE_SPECS

ALL_SPECS: list[ToolSpec] = NODE_SPECS + EVENT_SPECS + WATCH_SPECS

__all__ = [
    "build_error_response",
    "translate_zk_error",
    # Registry
    "KNOWN_PERMISSIONS",
    "ToolContext",
    "ToolSpec",
    "ToolRegistry",
    "load_permissions_file",
    # Spec lists
    "ALL_SPECS",
    "NODE_SPECS",
    "NODE_READ_SPECS",
    "NODE_WRITE_SPECS",
    "EVENT_SPECS",
    "WATCH_SPECS",
    # Tool lists
    "NODE_READ_TOOLS",
    "NODE_WRITE_TOOLS",
    "EVENT_TOOLS",
    "WATCH_TOOLS",
]
