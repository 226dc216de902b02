"""Write node tool handlers for MCP server.

This module implements node write operations: create, set, delete, trim and
prune. The mirror is not updated directly; the resulting watch
notifications feed it (observable through zk_events).
"""

import logging

import mcp.types as types

from ...core.async_utils import run_sync
from ...core.models import CreateMode
from .errors import build_error_response, encode_payload, require_path
from .registry import ToolContext, ToolSpec

logger = logging.getLogger(__name__)

_ENCODING_PROPERTY = {
    "type": "string",
    "enum": ["utf-8", "base64"],
    "description": "How data is encoded in this request (default: utf-8)",
    "default": "utf-8",
}

# Tool definitions for list_tools()
NODE_WRITE_TOOLS = [
    types.Tool(
        name="zk_create",
        description="Create a node, creating missing parent nodes as empty persistent nodes. Reports (without error) when the node already exists. Ephemeral nodes live as long as this server's session.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path to create (required). For sequential nodes, the name prefix.",
                },
                "data": {
                    "type": "string",
                    "description": "Initial node data (optional, default: empty)",
                },
                "encoding": _ENCODING_PROPERTY,
                "ephemeral": {
                    "type": "boolean",
                    "description": "Tie the node to this server's session (default: false)",
                    "default": False,
                },
                "sequential": {
                    "type": "boolean",
                    "description": "Append a monotonically increasing counter to the name (default: false)",
                    "default": False,
                },
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="zk_set",
        description="Replace a node's data with optimistic locking. Requires the version from zk_get; use -1 to overwrite unconditionally.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path (required)",
                },
                "data": {
                    "type": "string",
                    "description": "New node data (required)",
                },
                "version": {
                    "type": "integer",
                    "description": "Expected current version, or -1 for any (required)",
                    "minimum": -1,
                },
                "encoding": _ENCODING_PROPERTY,
            },
            "required": ["path", "data", "version"],
        },
    ),
    types.Tool(
        name="zk_delete",
        description="Delete a node and its entire subtree. The root node cannot be deleted. Warning: This cannot be undone.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path (required)",
                }
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="zk_trim",
        description="Delete every descendant of a node, keeping the node itself. Children the server refuses to delete (e.g. /zookeeper) are skipped. Warning: This cannot be undone.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path (required)",
                }
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="zk_prune",
        description="Delete a node, then each ancestor left with no other child. Returns the nearest surviving ancestor. The root node cannot be pruned. Warning: This cannot be undone.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path (required)",
                }
            },
            "required": ["path"],
        },
    ),
]


def _text_result(text: str, structured: dict) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


async def _handle_create(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_create."""
    path = require_path(args)
    if path == "/":
        raise ValueError("The root node always exists")
    data = encode_payload(
        args.get("data", ""), args.get("encoding", "utf-8")
    )
    mode = CreateMode.from_flags(
        ephemeral=bool(args.get("ephemeral", False)),
        sequential=bool(args.get("sequential", False)),
    )

    created = await run_sync(ctx.engine.create_node, path, mode, data)

    if created is None:
        return _text_result(
            f"Node '{path}' already exists (nothing created).",
            {"path": path, "created": False},
        )
    return _text_result(
        f"Created {mode.value} node '{created}'.",
        {"path": created, "created": True, "mode": mode.value},
    )


async def _handle_set(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_set."""
    path = require_path(args)
    if "data" not in args:
        return build_error_response(
            "validation_error",
            "data is required",
            "Provide data parameter (use an empty string to clear the node).",
        )
    version = args.get("version")
    if version is None:
        return build_error_response(
            "validation_error",
            "version is required",
            f"Fetch the current version with zk_get(path='{path}'), or pass -1 to overwrite.",
        )
    version = int(version)
    data = encode_payload(args["data"], args.get("encoding", "utf-8"))

    await run_sync(ctx.engine.set_data, path, version, data)

    return _text_result(
        f"Updated '{path}' ({len(data)} bytes).",
        {"path": path, "data_length": len(data)},
    )


async def _handle_delete(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_delete."""
    path = require_path(args)
    await run_sync(ctx.engine.delete, path)
    return _text_result(
        f"Deleted '{path}' and its subtree.",
        {"path": path, "deleted": True},
    )


async def _handle_trim(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_trim."""
    path = require_path(args)
    await run_sync(ctx.engine.trim, path)
    return _text_result(
        f"Deleted all descendants of '{path}'.",
        {"path": path},
    )


async def _handle_prune(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_prune."""
    path = require_path(args)
    survivor = await run_sync(ctx.engine.prune, path)
    if survivor is None:
        text = f"Pruned '{path}' (no ancestor other than '/' survives, or the node did not exist)."
    else:
        text = f"Pruned '{path}'. Nearest surviving ancestor: '{survivor}'."
    logger.info("prune %s -> %s", path, survivor)
    return _text_result(text, {"path": path, "survivor": survivor})


# ToolSpec list for registry-based dispatch
NODE_WRITE_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=NODE_WRITE_TOOLS[0],
        permissions=frozenset({"NODE_CREATE"}),
        handler=_handle_create,
    ),
    ToolSpec(
        tool=NODE_WRITE_TOOLS[1],
        permissions=frozenset({"NODE_MODIFY"}),
        handler=_handle_set,
    ),
    ToolSpec(
        tool=NODE_WRITE_TOOLS[2],
        permissions=frozenset({"NODE_DELETE"}),
        handler=_handle_delete,
    ),
    ToolSpec(
        tool=NODE_WRITE_TOOLS[3],
        permissions=frozenset({"NODE_DELETE"}),
        handler=_handle_trim,
    ),
    ToolSpec(
        tool=NODE_WRITE_TOOLS[4],
        permissions=frozenset({"NODE_DELETE"}),
        handler=_handle_prune,
    ),
]
