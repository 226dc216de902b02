"""Event history tool handler for MCP server.

``zk_events`` reads the ``EventRecorder`` attached to the engine: every
ADD / UPDATE / DELETE classified from ZooKeeper watches, with sequence
numbers so an agent can poll for what changed since its last call.
"""

import mcp.types as types

from .registry import ToolContext, ToolSpec

DEFAULT_EVENT_LIMIT = 100

# Tool definitions for list_tools()
EVENT_TOOLS = [
    types.Tool(
        name="zk_events",
        description="Return recent node events (add, update, delete) observed through ZooKeeper watches, oldest first. Pass the returned last_seq as 'since' on the next call to receive only newer events.",
        inputSchema={
            "type": "object",
            "properties": {
                "since": {
                    "type": "integer",
                    "description": "Only return events with a sequence number above this (default: 0)",
                    "minimum": 0,
                    "default": 0,
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of events to return (default: {DEFAULT_EVENT_LIMIT})",
                    "minimum": 1,
                    "default": DEFAULT_EVENT_LIMIT,
                },
            },
            "required": [],
        },
    ),
]


async def _handle_events(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle zk_events."""
    since = int(args.get("since", 0))
    limit = int(args.get("limit", DEFAULT_EVENT_LIMIT))
    if since < 0:
        raise ValueError("since must not be negative")
    if limit < 1:
        raise ValueError("limit must be at least 1")

    events = ctx.recorder.since(since, limit)
    last_seq = events[-1].seq if events else max(since, 0)
    # Events older than the history capacity have been dropped
    missed = bool(events) and events[0].seq > since + 1

    structured = {
        "events": [e.model_dump(mode="json") for e in events],
        "last_seq": last_seq,
        "missed": missed,
    }

    if not events:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text", text=f"No events since {since}."
                )
            ],
            structuredContent=structured,
        )

    lines = [
        f"{e.seq:>6}  {e.received_at}  {e.type.value:<6}  {e.path}"
        for e in events
    ]
    if missed:
        lines.append(
            f"\n(events {since + 1}..{events[0].seq - 1} are no longer retained)"
        )
    lines.append(f"\nlast_seq: {last_seq}")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )


# ToolSpec list for registry-based dispatch
EVENT_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=EVENT_TOOLS[0],
        permissions=frozenset({"NODE_VIEW"}),
        handler=_handle_events,
    ),
]
