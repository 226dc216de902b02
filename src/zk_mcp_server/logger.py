import json
import logging
import os
import sys


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, thread, msg[, exc].

    ``thread`` separates kazoo watch callbacks from executor threads.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    fmt = (
        "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
        if with_name
        else "[%(asctime)s] [%(levelname)s] %(message)s"
    )
    return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Configure logging based on execution mode.

    Args:
        mode: "mcp" for file logging (never stdout), "cli" for stderr logging.
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Custom log file path (overrides LOG_FILE env var).
        debug_format: "text" (default) or "json" for structured output.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: WARNING for MCP mode, INFO for CLI mode.
        LOG_FILE: Custom log file path for MCP mode.
                  Default: /tmp/zk-mcp-server.log
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    env_level = os.getenv("LOG_LEVEL", default_level).upper()

    # debug parameter overrides environment
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    if mode == "mcp":
        # stdio transport uses stdout for JSON-RPC messages
        final_log_file = log_file or os.getenv(
            "LOG_FILE", "/tmp/zk-mcp-server.log"
        )
        logging.basicConfig(
            level=log_level,
            format="[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            filename=final_log_file,
            filemode="a",
        )
    else:
        handlers: list[logging.Handler] = []
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            _make_formatter(debug_format, with_name=False)
        )
        handlers.append(stderr_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(
                _make_formatter(debug_format, with_name=True)
            )
            handlers.append(file_handler)

        logging.basicConfig(
            level=log_level,
            handlers=handlers,
        )

    # kazoo logs every connection attempt at INFO
    if log_level != logging.DEBUG:
        logging.getLogger("kazoo").setLevel(logging.WARNING)
        logging.getLogger("kazoo.client").setLevel(logging.WARNING)
