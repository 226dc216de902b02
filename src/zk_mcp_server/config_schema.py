"""Unified configuration schema for zk_mcp_server.

Defines Pydantic models for the unified config structure with dedicated
sections for the ZooKeeper connection and logging.

Usage:
    from zk_mcp_server.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ZooKeeperConfig(BaseModel):
    """ZooKeeper connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    hosts: str | None = Field(
        default=None,
        description="Connection string, e.g. zk1:2181,zk2:2181/chroot",
    )
    alias: str | None = Field(
        default=None, description="Name of the alias to connect to"
    )
    aliases: dict[str, str] = Field(
        default_factory=dict,
        description="Named connection strings",
    )
    timeout: float = Field(
        default=10.0, gt=0, description="Session timeout in seconds"
    )
    read_only: bool = Field(
        default=False, description="Allow read-only servers"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    connection_retry_period: int = Field(
        default=5000,
        ge=0,
        description="Milliseconds to wait between reconnect attempts",
    )
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent ZooKeeper calls from tool handlers (1-100)",
    )
    event_history: int = Field(
        default=1000,
        ge=1,
        description="Number of classified events retained for zk_events",
    )

    model_config = {"frozen": True}

    @field_validator("aliases")
    @classmethod
    def _aliases_not_blank(cls, value: dict[str, str]) -> dict[str, str]:
        for name, hosts in value.items():
            if not name.strip():
                raise ValueError("alias names cannot be empty")
            if not hosts or not hosts.strip():
                raise ValueError(
                    f"alias '{name}' has an empty connection string"
                )
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` (zero-config)
    is always valid.
    """

    zookeeper: ZooKeeperConfig = Field(default_factory=ZooKeeperConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
