"""Watch list tool handlers for MCP server.

This module implements the watch list: explicit node watches and regex
patterns that add a watch for every current and future matching node.
``zk_watch_list`` fetches current stat and data of all watched nodes
concurrently, bounded by the request semaphore.
"""

import logging

import mcp.types as types

from ...core.async_utils import gather_limited, run_sync_limited
from ...core.errors import NoSuchPathError
from ...sync import WatchEntry
from .errors import (
    build_error_response,
    decode_payload,
    require_path,
    stat_to_dict,
)
from .registry import ToolContext, ToolSpec

logger = logging.getLogger(__name__)

_TARGET_PROPERTIES = {
    "path": {
        "type": "string",
        "description": "Absolute node path",
    },
    "pattern": {
        "type": "string",
        "description": "Regular expression matched against full node paths, e.g. '/services/.*/leader'",
    },
}

# Tool definitions for list_tools()
WATCH_TOOLS = [
    types.Tool(
        name="zk_watch_add",
        description="Watch a node (path) or every current and future node whose full path matches a regular expression (pattern). Provide exactly one of path or pattern.",
        inputSchema={
            "type": "object",
            "properties": _TARGET_PROPERTIES,
            "required": [],
        },
    ),
    types.Tool(
        name="zk_watch_remove",
        description="Remove a node watch (path) or a watch pattern (pattern). Removing a pattern keeps the watches it already added. Provide exactly one of path or pattern.",
        inputSchema={
            "type": "object",
            "properties": _TARGET_PROPERTIES,
            "required": [],
        },
    ),
    types.Tool(
        name="zk_watch_list",
        description="List watch patterns and watched nodes with their latest event and current version and data.",
        inputSchema={
            "type": "object",
            "properties": {
                "include_data": {
                    "type": "boolean",
                    "description": "If false, skip fetching current stat and data (default: true)",
                    "default": True,
                },
            },
            "required": [],
        },
    ),
]


def _parse_target(args: dict) -> tuple[str | None, str | None]:
    """Return (path, pattern); exactly one is set."""
    has_path = bool(args.get("path"))
    has_pattern = bool(args.get("pattern"))
    if has_path == has_pattern:
        raise ValueError("Provide exactly one of path or pattern")
    if has_path:
        return require_path(args), None
    return None, args["pattern"]


async def _handle_add(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_watch_add."""
    path, pattern = _parse_target(args)

    if path is not None:
        added = ctx.watches.add_watch(path)
        text = (
            f"Watching '{path}'."
            if added
            else f"'{path}' is already watched."
        )
        if added and not ctx.engine.contains(path):
            text += " The node does not exist yet; its creation will be reported."
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=text)],
            structuredContent={"path": path, "added": added},
        )

    matched = ctx.watches.add_pattern(pattern)
    lines = [f"Watch pattern '{pattern}' active."]
    if matched:
        lines.append(f"Now watching {len(matched)} existing node(s):")
        lines.extend(f"  {p}" for p in matched)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={"pattern": pattern, "matched": matched},
    )


async def _handle_remove(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_watch_remove."""
    path, pattern = _parse_target(args)

    if path is not None:
        removed = ctx.watches.remove_watch(path)
        what = f"watch on '{path}'"
    else:
        removed = ctx.watches.remove_pattern(pattern)
        what = f"watch pattern '{pattern}'"

    if not removed:
        return build_error_response(
            "not_found",
            f"No {what}",
            "Use zk_watch_list to see current watches.",
        )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"Removed {what}.")],
        structuredContent={"path": path, "pattern": pattern, "removed": True},
    )


async def _fetch_current(ctx: ToolContext, entry: WatchEntry) -> dict:
    """Current stat and data of a watched node (None values when absent)."""
    current: dict = {"stat": None, "data": None, "encoding": None}
    if entry.deleted:
        return current
    try:
        stat = await run_sync_limited(ctx.engine.get_stat, entry.path)
        if stat is None:
            return current
        data = await run_sync_limited(ctx.engine.get_data, entry.path)
    except NoSuchPathError:
        logger.debug("watched node %s vanished while listing", entry.path)
        return current
    text, encoding = decode_payload(data)
    return {"stat": stat_to_dict(stat), "data": text, "encoding": encoding}


async def _handle_list(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_watch_list."""
    include_data = args.get("include_data", True)
    patterns = ctx.watches.patterns()
    entries = ctx.watches.watched()

    if include_data:
        current = await gather_limited(
            [_fetch_current(ctx, entry) for entry in entries]
        )
    else:
        current = [{} for _ in entries]

    watches = [
        {**entry.model_dump(mode="json"), **extra}
        for entry, extra in zip(entries, current)
    ]

    if not patterns and not watches:
        return types.CallToolResult(
            content=[
                types.TextContent(type="text", text="No watches.")
            ],
            structuredContent={"patterns": [], "watches": []},
        )

    lines = []
    if patterns:
        lines.append("## Patterns")
        lines.extend(f"  {p}" for p in patterns)
    if watches:
        if lines:
            lines.append("")
        lines.append("## Watched nodes")
        for watch in watches:
            state = "deleted" if watch["deleted"] else "exists"
            stat = watch.get("stat")
            version = f" v{stat['version']}" if stat else ""
            last = watch["last_event"] or "none"
            lines.append(
                f"  {watch['path']} [{state}{version}] updates={watch['updates']} last={last}"
            )
            if watch.get("data"):
                lines.append(f"    {watch['data']}")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={"patterns": patterns, "watches": watches},
    )


# ToolSpec list for registry-based dispatch
WATCH_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=WATCH_TOOLS[0],
        permissions=frozenset({"WATCH_MODIFY"}),
        handler=_handle_add,
    ),
    ToolSpec(
        tool=WATCH_TOOLS[1],
        permissions=frozenset({"WATCH_MODIFY"}),
        handler=_handle_remove,
    ),
    ToolSpec(
        tool=WATCH_TOOLS[2],
        permissions=frozenset({"NODE_VIEW"}),
        handler=_handle_list,
    ),
]
