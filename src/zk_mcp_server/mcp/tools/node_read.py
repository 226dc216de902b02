"""Read-only node tool handlers for MCP server.

This module implements node read operations: get and list. ``zk_list`` and
the existence check of ``zk_get`` are answered from the engine's mirrored
tree; only ``zk_get`` reads stat and data from ZooKeeper.
"""

import re

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync.paths import get_parent
from ...validators import validate_path
from .errors import (
    build_error_response,
    decode_payload,
    require_path,
    stat_to_dict,
)
from .registry import ToolContext, ToolSpec

DEFAULT_LIST_LIMIT = 200

# Tool definitions for list_tools()
NODE_READ_TOOLS = [
    types.Tool(
        name="zk_get",
        description="Get a node's stat (version, timestamps, ephemeral owner, child count) and data. Data is returned as UTF-8 text when it decodes, otherwise base64.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute node path, e.g. /app/config (required)",
                },
                "include_data": {
                    "type": "boolean",
                    "description": "If false, return only the stat (default: true)",
                    "default": True,
                },
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="zk_list",
        description="List node paths from the live mirror of the ZooKeeper tree. Filter by parent and/or a regular expression matched against the full path.",
        inputSchema={
            "type": "object",
            "properties": {
                "parent": {
                    "type": "string",
                    "description": "Only list nodes below this path (optional, default: whole tree)",
                },
                "recursive": {
                    "type": "boolean",
                    "description": "With parent: include all descendants, not just direct children (default: false)",
                    "default": False,
                },
                "pattern": {
                    "type": "string",
                    "description": "Regular expression the full path must match, e.g. '/app/.*/lock' (optional)",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of paths to return (default: {DEFAULT_LIST_LIMIT})",
                    "minimum": 1,
                    "default": DEFAULT_LIST_LIMIT,
                },
            },
            "required": [],
        },
    ),
]


async def _handle_get(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_get."""
    path = require_path(args)
    include_data = args.get("include_data", True)

    if not ctx.engine.contains(path):
        return build_error_response(
            "not_found",
            f"Node '{path}' does not exist",
            "Use zk_list to find existing nodes.",
        )

    stat = await run_sync(ctx.engine.get_stat, path)
    if stat is None:
        return build_error_response(
            "not_found",
            f"Node '{path}' does not exist",
            "Use zk_list to find existing nodes.",
        )

    structured = {"path": path, "stat": stat_to_dict(stat)}
    lines = [
        f"Node: {path}",
        f"Version: {stat.version}",
        f"Modified: {structured['stat']['modified']}",
        f"Children: {stat.num_children}",
    ]
    if stat.ephemeral:
        lines.append(f"Ephemeral owner: 0x{stat.ephemeral_owner:x}")

    if include_data:
        data = await run_sync(ctx.engine.get_data, path)
        text, encoding = decode_payload(data)
        structured["data"] = text
        structured["encoding"] = encoding
        lines.append("")
        lines.append(f"## Data ({encoding}, {len(data)} bytes)")
        lines.append(text if data else "(empty)")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )


def _select_paths(
    paths: frozenset[str],
    parent: str | None,
    recursive: bool,
    pattern: re.Pattern[str] | None,
) -> list[str]:
    selected = []
    prefix = None if parent is None else parent.rstrip("/") + "/"
    for path in paths:
        if prefix is not None:
            if path == parent or not path.startswith(prefix):
                continue
            if not recursive and get_parent(path) != parent:
                continue
        if pattern is not None and not pattern.fullmatch(path):
            continue
        selected.append(path)
    return sorted(selected)


async def _handle_list(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_list."""
    parent = args.get("parent")
    if parent is not None:
        valid, message = validate_path(parent)
        if not valid:
            raise ValueError(message)

    raw_pattern = args.get("pattern")
    pattern = None
    if raw_pattern:
        try:
            pattern = re.compile(raw_pattern)
        except re.error as e:
            raise ValueError(
                f"Invalid pattern '{raw_pattern}': {e}"
            ) from None

    limit = int(args.get("limit", DEFAULT_LIST_LIMIT))
    if limit < 1:
        raise ValueError("limit must be at least 1")

    paths = _select_paths(
        ctx.engine.snapshot(),
        parent,
        bool(args.get("recursive", False)),
        pattern,
    )
    showing = paths[:limit]

    if not showing:
        return types.CallToolResult(
            content=[
                types.TextContent(type="text", text="No matching nodes.")
            ],
            structuredContent={"paths": [], "total": 0, "showing": 0},
        )

    text = "\n".join(showing)
    if len(paths) > limit:
        text += f"\n\n(showing {limit} of {len(paths)}; raise limit or narrow the filter)"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "paths": showing,
            "total": len(paths),
            "showing": len(showing),
        },
    )


# ToolSpec list for registry-based dispatch
NODE_READ_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=NODE_READ_TOOLS[0],
        permissions=frozenset({"NODE_VIEW"}),
        handler=_handle_get,
    ),
    ToolSpec(
        tool=NODE_READ_TOOLS[1],
        permissions=frozenset({"NODE_VIEW"}),
        handler=_handle_list,
    ),
]
