"""
Input validation functions for the ZooKeeper MCP server.

Provides validation for node paths and node data so that user input is
rejected before any remote call is made.
"""

# ZooKeeper's default jute.maxbuffer
MAX_NODE_DATA_SIZE = 1024 * 1024


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Path")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def _is_disallowed_char(char: str) -> bool:
    code = ord(char)
    return (
        0x0000 < code <= 0x001F
        or 0x007F <= code <= 0x009F
        or 0xD800 <= code <= 0xF8FF
        or 0xFFF0 <= code <= 0xFFFF
    )


def validate_path(path: str) -> tuple[bool, str]:
    """
    Validate an absolute node path.

    Args:
        path: The path to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules (same as the ZooKeeper server):
        - Cannot be empty
        - Must start with '/'
        - Cannot end with '/' (except the root path itself)
        - Cannot have empty segments (e.g., '/a//b')
        - Cannot have '.' or '..' segments
        - Cannot contain the null character or control/private-use characters
    """
    if not path:
        return (False, format_validation_error("Path", "cannot be empty"))

    if not path.startswith("/"):
        return (
            False,
            format_validation_error("Path", "must start with '/'"),
        )

    if path == "/":
        return (True, "")

    if path.endswith("/"):
        return (
            False,
            format_validation_error("Path", "must not end with '/'"),
        )

    for segment in path[1:].split("/"):
        if not segment:
            return (
                False,
                format_validation_error(
                    "Path", "cannot have empty segments"
                ),
            )
        if segment in (".", ".."):
            return (
                False,
                format_validation_error(
                    "Path", "cannot contain relative segments '.' or '..'"
                ),
            )
        for char in segment:
            if char == "\u0000":
                return (
                    False,
                    format_validation_error(
                        "Path", "cannot contain the null character"
                    ),
                )
            if _is_disallowed_char(char):
                return (
                    False,
                    format_validation_error(
                        "Path",
                        f"contains invalid character U+{ord(char):04X}",
                    ),
                )

    return (True, "")


def validate_node_data(
    data: bytes, max_size: int = MAX_NODE_DATA_SIZE
) -> tuple[bool, str]:
    """
    Validate a node payload.

    Args:
        data: The payload to validate
        max_size: Maximum size in bytes (default: 1 MiB)

    Returns:
        Tuple of (is_valid, error_message).
    """
    if len(data) > max_size:
        return (
            False,
            format_validation_error(
                "Data", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
