"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..core.async_utils import init_semaphore, run_sync
from ..core.client import ZooKeeperClient
from ..sync import EventRecorder, SyncEngine, WatchList

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def _resync_callback(engine: SyncEngine) -> Callable[[], None]:
    """Wrap ``engine.watch`` for the client's session-restored thread."""

    def resync() -> None:
        try:
            engine.watch()
        except Exception:
            logger.exception("Re-sync after session loss failed")

    return resync


def resolve_config(
    config_overrides: dict[str, Any] | None = None,
) -> tuple[Config, list[str]]:
    """Merge CLI overrides, env vars, .env and YAML into a validated Config.

    Returns:
        The config and a list of the sources that contributed.

    Raises:
        ValueError: If configuration is invalid.
    """
    # .env first, so ${VAR} interpolation in YAML can use its values
    load_dotenv()

    yaml_fallbacks: dict[str, Any] | None = None
    sources = []
    config_files = discover_config_files()
    if config_files:
        raw = load_hierarchical_config()
        unified = build_config(raw)
        yaml_fallbacks = {
            k: v
            for k, v in unified.zookeeper.model_dump().items()
            if v is not None
        }
        sources.append(f"config file: {config_files[0]}")

    overrides = config_overrides or {}
    config = load_config(
        hosts=overrides.get("hosts"),
        alias=overrides.get("alias"),
        timeout=overrides.get("timeout"),
        read_only=overrides.get("read_only", False),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )

    if overrides:
        sources.append("CLI arguments")
    sources.append("environment variables")
    return config, sources


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Resolve configuration: CLI > env vars > .env > YAML > defaults
    - Connect to ZooKeeper, failing fast if no server answers in time
    - Create the SyncEngine with its EventRecorder and WatchList listeners
    - Mirror the whole tree (watch) and re-mirror after session loss

    On shutdown:
    - Close the ZooKeeper session (ephemeral nodes it owns disappear)

    Args:
        config_overrides: Optional dict with config values from CLI
            (hosts, alias, timeout, read_only, debug)

    Yields:
        Dict with 'client', 'engine', 'recorder' and 'watches' keys

    Raises:
        RuntimeError: If configuration is invalid or ZooKeeper is unreachable.
    """
    logger.info("MCP server starting...")
    _stderr_print("ZooKeeper MCP Server starting...")

    try:
        config, sources = resolve_config(config_overrides)
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("ZooKeeper hosts: %s", config.hosts)
        _stderr_print(f"  ZooKeeper hosts: {config.hosts}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure ZK_HOSTS or a valid ZK_ALIAS is set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure ZK_HOSTS or a valid ZK_ALIAS is set."
        ) from e

    logger.info("Connecting to ZooKeeper...")
    _stderr_print("  Connecting to ZooKeeper...")
    client = ZooKeeperClient(config)
    try:
        await run_sync(client.start)
    except Exception as e:
        logger.error("Failed to connect to ZooKeeper: %s", e)
        _stderr_print("ERROR: ZooKeeper connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check ZK_HOSTS and that the ensemble is reachable.")
        raise RuntimeError(
            f"ZooKeeper connection failed: {e}. Check ZK_HOSTS and that the ensemble is reachable."
        ) from e

    try:
        engine = SyncEngine(client)
        recorder = EventRecorder(config.event_history)
        engine.add_listener(recorder)
        watches = WatchList(engine)

        await run_sync(engine.watch)
        client.add_session_restored_callback(_resync_callback(engine))
        node_count = len(engine.snapshot())
        logger.info("Mirrored %d nodes", node_count)
        _stderr_print(f"  Mirrored {node_count} nodes")

        init_semaphore(config.max_parallel_requests)
        _stderr_print(
            f"  Parallel requests: {config.max_parallel_requests}"
        )
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("Failed to mirror ZooKeeper tree: %s", e)
        _stderr_print(f"ERROR: Failed to mirror ZooKeeper tree: {e}")
        await run_sync(client.stop)
        raise RuntimeError(f"Failed to mirror ZooKeeper tree: {e}") from e

    try:
        yield {
            "client": client,
            "engine": engine,
            "recorder": recorder,
            "watches": watches,
        }
    finally:
        logger.info("MCP server shutting down")
        _stderr_print("ZooKeeper MCP Server shutting down.")
        await run_sync(client.stop)
