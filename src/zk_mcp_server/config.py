"""Configuration for the ZooKeeper MCP server.

Reads ZooKeeper connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    ZK_HOSTS: Connection string, e.g. "zk1:2181,zk2:2181/chroot" (default: localhost:2181)
    ZK_ALIAS: Name of a connection alias from the config file (optional)
    ZK_TIMEOUT: Session/connect timeout in seconds (optional, default: 10)
    ZK_READ_ONLY: Allow connecting to read-only servers (optional, default: false)
    ZK_CONNECTION_RETRY_PERIOD: Milliseconds between reconnect attempts (optional, default: 5000)
    ZK_MAX_PARALLEL_REQUESTS: Max parallel ZooKeeper calls from tool handlers (optional, default: 5)
    ZK_EVENT_HISTORY: Number of classified events kept for zk_events (optional, default: 1000)
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_HOSTS = "localhost:2181"


@dataclass
class Config:
    hosts: str = DEFAULT_HOSTS
    timeout: float = 10.0
    read_only: bool = False
    debug: bool = False
    connection_retry_period: int = 5000
    max_parallel_requests: int = 5
    event_history: int = 1000


def _validate_hosts(hosts: str) -> None:
    """Validate a ZooKeeper connection string (host list plus optional chroot)."""
    host_list, _, chroot = hosts.partition("/")
    if not host_list.strip():
        raise ValueError(
            f"Invalid ZooKeeper hosts '{hosts}': no host given"
        )
    if chroot and (chroot.endswith("/") or "//" in chroot):
        raise ValueError(
            f"Invalid ZooKeeper hosts '{hosts}': malformed chroot '/{chroot}'"
        )

    for entry in host_list.split(","):
        entry = entry.strip()
        if not entry:
            raise ValueError(
                f"Invalid ZooKeeper hosts '{hosts}': empty host entry"
            )
        host, sep, port = entry.rpartition(":")
        if not sep:
            # Port omitted: kazoo defaults to 2181
            continue
        if not host:
            raise ValueError(
                f"Invalid ZooKeeper hosts '{hosts}': missing host in '{entry}'"
            )
        if not port.isdigit() or not (1 <= int(port) <= 65535):
            raise ValueError(
                f"Invalid ZooKeeper hosts '{hosts}': bad port in '{entry}'"
            )


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the connection string is malformed or a numeric
            setting is out of range.
    """
    # Normalize: strip whitespace
    config.hosts = config.hosts.strip()

    _validate_hosts(config.hosts)

    if config.timeout <= 0:
        raise ValueError(
            f"Invalid timeout '{config.timeout}': must be greater than 0"
        )

    if config.connection_retry_period < 0:
        raise ValueError(
            f"Invalid connection retry period '{config.connection_retry_period}': must not be negative"
        )

    if config.read_only:
        logger.info(
            "Read-only servers allowed (read_only=True); writes may fail while connected to one."
        )


def resolve_alias(alias: str, aliases: dict[str, str]) -> str:
    """Return the connection string registered under *alias*.

    Raises:
        ValueError: If the alias is not defined.
    """
    try:
        return aliases[alias]
    except KeyError:
        known = ", ".join(sorted(aliases)) or "none defined"
        raise ValueError(
            f"Unknown connection alias '{alias}' (known aliases: {known})"
        ) from None


def _get_int_env(key: str, low: int, high: int) -> int | None:
    """Return an int from env var *key*, or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    hosts: str | None = None,
    alias: str | None = None,
    timeout: float | None = None,
    read_only: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    An explicit connection string always beats an alias at the same level;
    an alias is resolved through ``yaml_fallbacks["aliases"]``.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        hosts: Override connection string.
        alias: Override connection alias name.
        timeout: Override timeout in seconds.
        read_only: Allow read-only servers (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``zookeeper`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If an alias is unknown or a value is invalid.
    """
    fb = yaml_fallbacks or {}
    aliases: dict[str, str] = fb.get("aliases") or {}

    # --- Connection string: CLI hosts > CLI alias > env > YAML > default ---

    def pick_hosts() -> str:
        if hosts:
            return hosts
        if alias:
            return resolve_alias(alias, aliases)
        if os.getenv("ZK_HOSTS"):
            return os.environ["ZK_HOSTS"]
        if os.getenv("ZK_ALIAS"):
            return resolve_alias(os.environ["ZK_ALIAS"], aliases)
        if fb.get("hosts"):
            return fb["hosts"]
        if fb.get("alias"):
            return resolve_alias(fb["alias"], aliases)
        return DEFAULT_HOSTS

    final_hosts = pick_hosts().strip()

    # --- Boolean fields: CLI > env > YAML > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if read_only:
        final_read_only = True
    else:
        env_read_only = get_bool_env("ZK_READ_ONLY")
        if env_read_only is not None:
            final_read_only = env_read_only
        else:
            final_read_only = bool(fb.get("read_only", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("ZK_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: CLI > env > YAML > default ---

    if timeout is not None:
        final_timeout = float(timeout)
    elif os.getenv("ZK_TIMEOUT") is not None:
        raw = os.environ["ZK_TIMEOUT"]
        try:
            final_timeout = float(raw)
        except ValueError:
            raise ValueError(
                f"Invalid ZK_TIMEOUT '{raw}': must be a number of seconds"
            ) from None
    else:
        final_timeout = float(fb.get("timeout", 10.0))

    retry_period = _get_int_env("ZK_CONNECTION_RETRY_PERIOD", 0, 3_600_000)
    if retry_period is None:
        retry_period = int(fb.get("connection_retry_period", 5000))

    max_parallel = _get_int_env("ZK_MAX_PARALLEL_REQUESTS", 1, 100)
    if max_parallel is None:
        max_parallel = int(fb.get("max_parallel_requests", 5))

    event_history = _get_int_env("ZK_EVENT_HISTORY", 1, 1_000_000)
    if event_history is None:
        event_history = int(fb.get("event_history", 1000))

    config = Config(
        hosts=final_hosts,
        timeout=final_timeout,
        read_only=final_read_only,
        debug=final_debug,
        connection_retry_period=retry_period,
        max_parallel_requests=max_parallel,
        event_history=event_history,
    )

    validate_config(config)

    return config
