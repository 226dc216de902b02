"""MCP Server for ZooKeeper using stdio transport.

This module implements the Model Context Protocol server that enables
AI agents to browse and modify a ZooKeeper tree and follow its changes.

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config, save_connection_alias
from ..logger import setup_logging
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    ToolContext,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
)
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("zk-mcp-server")

# Global tool context (initialized in main from the lifespan)
_context: ToolContext | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available, no permission required)
# ---------------------------------------------------------------------------


async def _handle_ping(
    ctx: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- report connection state and mirror size."""
    hosts = ctx.client.config.hosts
    node_count = len(ctx.engine.snapshot())
    structured = {
        "hosts": hosts,
        "connected": ctx.client.connected,
        "nodes": node_count,
        "last_event_seq": ctx.recorder.last_seq,
    }
    if not ctx.client.connected:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"ZooKeeper connection to {hosts} is down; reconnect attempts are ongoing. "
                    f"Mirror holds {node_count} nodes as of the last sync.",
                )
            ],
            structuredContent=structured,
            isError=True,
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"ZooKeeper MCP server connected to {hosts}. Mirroring {node_count} nodes.",
            )
        ],
        structuredContent=structured,
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test ZooKeeper connectivity and report the number of mirrored nodes",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    permissions=frozenset(),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> ToolContext:
    """Get the global ToolContext instance.

    Raises:
        RuntimeError: If context is not initialized
    """
    if _context is None:
        raise RuntimeError(
            "ToolContext not initialized. Server lifespan not started."
        )
    return _context


def set_context(ctx: ToolContext | None) -> None:
    """Set the global ToolContext instance, or None to clear."""
    global _context
    _context = ctx


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


def build_registry(permissions_file: str | None = None) -> ToolRegistry:
    """Build the ToolRegistry, filtered by *permissions_file* if given."""
    allowed_permissions = None
    if permissions_file:
        allowed_permissions = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s",
            len(allowed_permissions),
            permissions_file,
        )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, allowed_permissions)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )

    if permissions_file:
        print(
            f"Permissions file: {permissions_file} "
            f"({registry.tool_count()} of {len(all_specs)} tools enabled)",
            file=sys.stderr,
        )
    return registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List all registered (and permitted) tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    ctx = get_context()
    try:
        return await get_registry().call_tool(name, arguments, ctx)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), connects and
    mirrors the tree via the lifespan manager, and starts the server with
    stdio transport for JSON-RPC communication.

    Args:
        config_overrides: Optional dict with config values to override
            (hosts, alias, timeout, read_only, debug, log_file, permissions_file)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )

    set_registry(build_registry(overrides.get("permissions_file")))

    # The context is installed here rather than in the lifespan: under
    # `python -m zk_mcp_server.mcp.server` this module runs as __main__, and
    # the lifespan would otherwise set a second copy's globals.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_context(
            ToolContext(
                client=ctx["client"],
                engine=ctx["engine"],
                recorder=ctx["recorder"],
                watches=ctx["watches"],
            )
        )
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="zk-mcp-server",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_context(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ZooKeeper MCP Server - Model Context Protocol server for ZooKeeper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .zk_mcp/config.yml)
  zk-mcp-server

  # Connect to a specific ensemble, chrooted to /app
  zk-mcp-server --hosts zk1:2181,zk2:2181,zk3:2181/app

  # Connect through a named alias from the config file
  zk-mcp-server --alias staging

  # Remember a connection string under an alias, then exit
  zk-mcp-server --hosts zk1.staging:2181 --save-alias staging

  # Expose read-only tools only
  zk-mcp-server --permissions-file /etc/zk-mcp/read-only.permissions

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--hosts",
        help="ZooKeeper connection string, e.g. zk1:2181,zk2:2181/chroot "
        "(takes precedence over ZK_HOSTS env var and config files)",
    )
    parser.add_argument(
        "--alias",
        help="Connect using a named alias from the config file's zookeeper.aliases",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Session and connect timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Allow connecting to read-only ZooKeeper servers",
    )
    parser.add_argument(
        "--log-file",
        default="/tmp/zk-mcp-server.log",
        help="Log file path (default: /tmp/zk-mcp-server.log)",
    )
    parser.add_argument(
        "--permissions-file",
        help="Path to permissions file restricting available tools. "
        "Format: one permission per line (NODE_VIEW, NODE_CREATE, NODE_MODIFY, "
        "NODE_DELETE, WATCH_MODIFY), # for comments. "
        "If not specified, all tools are available.",
    )
    parser.add_argument(
        "--save-alias",
        metavar="NAME",
        help="Save --hosts under alias NAME in the config file and exit",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a starter .zk_mcp/config.yml if no config file exists, and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"zk-mcp-server version {__version__}",
    )
    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = build_parser()
    args = parser.parse_args()

    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        return

    if args.save_alias:
        if not args.hosts:
            parser.error("--save-alias requires --hosts")
        try:
            path = save_connection_alias(args.save_alias, args.hosts)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)
        print(
            f"Saved alias '{args.save_alias}' -> {args.hosts} in {path}",
            file=sys.stderr,
        )
        return

    # Build config overrides dict from CLI args
    config_overrides: dict = {}
    if args.hosts:
        config_overrides["hosts"] = args.hosts
    if args.alias:
        config_overrides["alias"] = args.alias
    if args.timeout is not None:
        config_overrides["timeout"] = args.timeout
    if args.read_only:
        config_overrides["read_only"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.permissions_file:
        config_overrides["permissions_file"] = args.permissions_file

    # Log config overrides to stderr (before stdio transport starts)
    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
