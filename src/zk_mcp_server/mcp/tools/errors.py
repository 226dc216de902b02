"""Error response builders and shared utilities for MCP tool handlers.

This module provides structured error responses with corrective actions
to help AI agents recover from errors without human intervention, plus
shared argument parsing and formatting utilities used across tool modules.
"""

import base64
import binascii
from datetime import datetime, timezone

import mcp.types as types

from ...core.errors import ZooKeeperSyncError
from ...core.models import NodeStat
from ...validators import validate_node_data, validate_path


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, already_exists, version_conflict,
            permission_denied, validation_error, server_error, ...)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "/app does not exist", "Use zk_list to find existing nodes.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# ZooKeeper error translation
# ---------------------------------------------------------------------------

# kind -> (error_type, corrective action)
_ERROR_ACTIONS: dict[str, tuple[str, str]] = {
    "no_such_path": (
        "not_found",
        "Use zk_list to find existing nodes under '{parent}'.",
    ),
    "already_exists": (
        "already_exists",
        "Use zk_set to change the data of '{path}', or choose a different path.",
    ),
    "version_conflict": (
        "version_conflict",
        "Fetch the current version with zk_get(path='{path}'), then retry.",
    ),
    "not_authorized": (
        "permission_denied",
        "The connection lacks ACL rights on '{path}'. Ask a ZooKeeper administrator.",
    ),
    "not_empty": (
        "not_empty",
        "Use zk_delete to remove '{path}' together with its children.",
    ),
    "bad_arguments": (
        "validation_error",
        "Check the path and data for '{path}' and retry.",
    ),
    "illegal_operation": (
        "illegal_operation",
        "The root node '/' cannot be deleted or pruned. Use zk_trim to remove its children.",
    ),
}

_DEFAULT_ACTION = (
    "server_error",
    "Check the ZooKeeper connection with ping, then retry.",
)


def translate_zk_error(error: ZooKeeperSyncError) -> types.CallToolResult:
    """Translate a ZooKeeper error to a structured error response."""
    error_type, action = _ERROR_ACTIONS.get(error.kind, _DEFAULT_ACTION)
    parent = error.path.rsplit("/", 1)[0] or "/"
    return build_error_response(
        error_type,
        str(error),
        action.format(path=error.path, parent=parent),
    )


# ---------------------------------------------------------------------------
# Shared argument parsing
# ---------------------------------------------------------------------------


def require_path(args: dict, key: str = "path") -> str:
    """Return a validated absolute node path from *args*.

    Raises:
        ValueError: If the argument is missing or not a valid node path.
    """
    path = args.get(key)
    if not path:
        raise ValueError(f"{key} is required")
    if not isinstance(path, str):
        raise ValueError(f"{key} must be a string")
    valid, message = validate_path(path)
    if not valid:
        raise ValueError(message)
    return path


def encode_payload(text: str, encoding: str = "utf-8") -> bytes:
    """Turn a tool argument into node data.

    Raises:
        ValueError: If the encoding is unknown, base64 is malformed, or the
            payload is too large.
    """
    match encoding:
        case "utf-8":
            data = text.encode("utf-8")
        case "base64":
            try:
                data = base64.b64decode(text, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Invalid base64 data: {e}") from None
        case _:
            raise ValueError(
                f"Unsupported encoding '{encoding}'. Use 'utf-8' or 'base64'."
            )
    valid, message = validate_node_data(data)
    if not valid:
        raise ValueError(message)
    return data


def decode_payload(data: bytes) -> tuple[str, str]:
    """Render node data as (text, encoding): UTF-8 when possible, else base64."""
    try:
        return data.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return base64.b64encode(data).decode("ascii"), "base64"


# ---------------------------------------------------------------------------
# Shared formatting utilities
# ---------------------------------------------------------------------------


def format_timestamp(millis: int) -> str:
    """Format a ZooKeeper millisecond timestamp as ISO 8601 UTC."""
    dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="seconds")


def stat_to_dict(stat: NodeStat) -> dict:
    """Structured form of a node stat, with readable timestamps."""
    return {
        "version": stat.version,
        "cversion": stat.cversion,
        "aversion": stat.aversion,
        "created": format_timestamp(stat.ctime),
        "modified": format_timestamp(stat.mtime),
        "ephemeral": stat.ephemeral,
        "ephemeral_owner": stat.ephemeral_owner,
        "data_length": stat.data_length,
        "num_children": stat.num_children,
        "czxid": stat.czxid,
        "mzxid": stat.mzxid,
        "pzxid": stat.pzxid,
    }
