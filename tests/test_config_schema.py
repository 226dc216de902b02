"""Tests for the unified config schema and the build_config() factory."""

import pytest
from pydantic import ValidationError

from zk_mcp_server.config_schema import (
    LoggingConfig,
    UnifiedConfig,
    ZooKeeperConfig,
    build_config,
)

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    def test_zero_config_defaults(self):
        config = UnifiedConfig()
        assert config.zookeeper.hosts is None
        assert config.zookeeper.aliases == {}
        assert config.zookeeper.timeout == 10.0
        assert config.logging.level == "INFO"
        assert config.logging.file is None

    def test_full_config(self):
        config = UnifiedConfig(
            zookeeper=ZooKeeperConfig(
                hosts="zk1:2181,zk2:2181/app",
                aliases={"local": "localhost:2181"},
                timeout=3,
                read_only=True,
                event_history=50,
            ),
            logging=LoggingConfig(level="DEBUG", file="/tmp/zk.log"),
        )
        assert config.zookeeper.hosts == "zk1:2181,zk2:2181/app"
        assert config.zookeeper.aliases["local"] == "localhost:2181"
        assert config.zookeeper.read_only is True
        assert config.zookeeper.event_history == 50
        assert config.logging.file == "/tmp/zk.log"

    def test_frozen(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.logging = LoggingConfig(level="DEBUG")


# ---------------------------------------------------------------------------
# ZooKeeperConfig tests
# ---------------------------------------------------------------------------


class TestZooKeeperConfig:
    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ZooKeeperConfig(timeout=0)

    def test_negative_retry_period_rejected(self):
        with pytest.raises(ValidationError):
            ZooKeeperConfig(connection_retry_period=-5)

    @pytest.mark.parametrize("value", [0, 101])
    def test_max_parallel_bounds(self, value):
        with pytest.raises(ValidationError):
            ZooKeeperConfig(max_parallel_requests=value)

    def test_event_history_must_be_positive(self):
        with pytest.raises(ValidationError):
            ZooKeeperConfig(event_history=0)

    def test_blank_alias_name_rejected(self):
        with pytest.raises(ValidationError, match="alias names"):
            ZooKeeperConfig(aliases={"  ": "zk1:2181"})

    def test_blank_alias_hosts_rejected(self):
        with pytest.raises(ValidationError, match="empty connection string"):
            ZooKeeperConfig(aliases={"prod": " "})

    def test_dump_round_trips_through_load_config_fallbacks(self):
        dumped = ZooKeeperConfig(hosts="zk1:2181").model_dump()
        assert dumped["hosts"] == "zk1:2181"
        assert dumped["alias"] is None
        assert dumped["max_parallel_requests"] == 5


# ---------------------------------------------------------------------------
# build_config() tests
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def test_empty_dict(self):
        assert build_config({}) == UnifiedConfig()

    def test_missing_sections_get_defaults(self):
        config = build_config({"zookeeper": {"hosts": "zk1:2181"}})
        assert config.zookeeper.hosts == "zk1:2181"
        assert config.logging.level == "INFO"

    def test_nested_dicts_parsed(self):
        config = build_config(
            {
                "zookeeper": {
                    "alias": "prod",
                    "aliases": {"prod": "prod1:2181"},
                    "timeout": 2.5,
                },
                "logging": {"level": "WARNING"},
            }
        )
        assert config.zookeeper.alias == "prod"
        assert config.zookeeper.timeout == 2.5
        assert config.logging.level == "WARNING"

    def test_invalid_value_raises(self):
        with pytest.raises(ValidationError):
            build_config({"zookeeper": {"timeout": "never"}})
