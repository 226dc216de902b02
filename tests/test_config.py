"""Tests for zk_mcp_server.config — env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the standalone
server bootstrap path: validate_config() and load_config().
"""

import logging

import pytest

from zk_mcp_server.config import (
    DEFAULT_HOSTS,
    Config,
    load_config,
    resolve_alias,
    validate_config,
)

_ENV_KEYS = (
    "ZK_HOSTS",
    "ZK_ALIAS",
    "ZK_TIMEOUT",
    "ZK_READ_ONLY",
    "ZK_DEBUG",
    "ZK_CONNECTION_RETRY_PERIOD",
    "ZK_MAX_PARALLEL_REQUESTS",
    "ZK_EVENT_HISTORY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config() — connection string and ranges."""

    @pytest.mark.parametrize(
        "hosts",
        [
            "localhost:2181",
            "localhost",
            "zk1:2181,zk2:2181,zk3:2181",
            "zk1:2181,zk2:2181/app/chroot",
            "10.0.0.1:2181",
        ],
    )
    def test_valid_hosts(self, hosts):
        validate_config(Config(hosts=hosts))  # should not raise

    def test_strips_whitespace(self):
        config = Config(hosts="  zk1:2181  ")
        validate_config(config)
        assert config.hosts == "zk1:2181"

    def test_empty_hosts(self):
        with pytest.raises(ValueError, match="no host given"):
            validate_config(Config(hosts="   "))

    def test_chroot_only(self):
        with pytest.raises(ValueError, match="no host given"):
            validate_config(Config(hosts="/app"))

    def test_empty_host_entry(self):
        with pytest.raises(ValueError, match="empty host entry"):
            validate_config(Config(hosts="zk1:2181,,zk2:2181"))

    def test_missing_host_before_port(self):
        with pytest.raises(ValueError, match="missing host"):
            validate_config(Config(hosts=":2181"))

    @pytest.mark.parametrize("port", ["abc", "0", "65536"])
    def test_bad_port(self, port):
        with pytest.raises(ValueError, match="bad port"):
            validate_config(Config(hosts=f"zk1:{port}"))

    @pytest.mark.parametrize("chroot", ["/app/", "/app//x"])
    def test_malformed_chroot(self, chroot):
        with pytest.raises(ValueError, match="malformed chroot"):
            validate_config(Config(hosts=f"zk1:2181{chroot}"))

    def test_non_positive_timeout(self):
        with pytest.raises(ValueError, match="must be greater than 0"):
            validate_config(Config(timeout=0))

    def test_negative_retry_period(self):
        with pytest.raises(ValueError, match="must not be negative"):
            validate_config(Config(connection_retry_period=-1))

    def test_read_only_logs_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="zk_mcp_server.config"):
            validate_config(Config(read_only=True))
        assert "Read-only servers allowed" in caplog.text


# -------------------------------------------------------------------------
# resolve_alias()
# -------------------------------------------------------------------------


class TestResolveAlias:
    def test_known_alias(self):
        assert resolve_alias("prod", {"prod": "zk1:2181"}) == "zk1:2181"

    def test_unknown_alias_lists_known(self):
        with pytest.raises(ValueError, match="known aliases: a, b"):
            resolve_alias("c", {"b": "zk2", "a": "zk1"})

    def test_unknown_alias_none_defined(self):
        with pytest.raises(ValueError, match="none defined"):
            resolve_alias("c", {})


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfigDefaults:
    def test_zero_config(self):
        config = load_config()

        assert config.hosts == DEFAULT_HOSTS
        assert config.timeout == 10.0
        assert config.read_only is False
        assert config.debug is False
        assert config.connection_retry_period == 5000
        assert config.max_parallel_requests == 5
        assert config.event_history == 1000


class TestLoadConfigHosts:
    """Connection string precedence: CLI hosts > CLI alias > env > YAML."""

    ALIASES = {"aliases": {"prod": "prod1:2181", "dev": "dev1:2181"}}

    def test_cli_hosts_win(self, monkeypatch):
        monkeypatch.setenv("ZK_HOSTS", "env:2181")
        config = load_config(
            hosts="cli:2181",
            alias="prod",
            yaml_fallbacks={**self.ALIASES, "hosts": "yaml:2181"},
        )
        assert config.hosts == "cli:2181"

    def test_cli_alias_beats_env(self, monkeypatch):
        monkeypatch.setenv("ZK_HOSTS", "env:2181")
        config = load_config(alias="prod", yaml_fallbacks=self.ALIASES)
        assert config.hosts == "prod1:2181"

    def test_env_hosts_beat_env_alias(self, monkeypatch):
        monkeypatch.setenv("ZK_HOSTS", "env:2181")
        monkeypatch.setenv("ZK_ALIAS", "dev")
        config = load_config(yaml_fallbacks=self.ALIASES)
        assert config.hosts == "env:2181"

    def test_env_alias(self, monkeypatch):
        monkeypatch.setenv("ZK_ALIAS", "dev")
        config = load_config(yaml_fallbacks=self.ALIASES)
        assert config.hosts == "dev1:2181"

    def test_env_alias_beats_yaml_hosts(self, monkeypatch):
        monkeypatch.setenv("ZK_ALIAS", "dev")
        config = load_config(
            yaml_fallbacks={**self.ALIASES, "hosts": "yaml:2181"}
        )
        assert config.hosts == "dev1:2181"

    def test_yaml_hosts(self):
        config = load_config(yaml_fallbacks={"hosts": "yaml:2181"})
        assert config.hosts == "yaml:2181"

    def test_yaml_alias(self):
        config = load_config(
            yaml_fallbacks={**self.ALIASES, "alias": "prod"}
        )
        assert config.hosts == "prod1:2181"

    def test_unknown_alias_raises(self):
        with pytest.raises(ValueError, match="Unknown connection alias"):
            load_config(alias="staging", yaml_fallbacks=self.ALIASES)

    def test_invalid_hosts_raise(self):
        with pytest.raises(ValueError, match="bad port"):
            load_config(hosts="zk1:notaport")


class TestLoadConfigFlags:
    def test_cli_read_only_beats_env(self, monkeypatch):
        monkeypatch.setenv("ZK_READ_ONLY", "false")
        assert load_config(read_only=True).read_only is True

    @pytest.mark.parametrize("raw", ["true", "1", "yes", "on", "TRUE"])
    def test_env_read_only_truthy(self, monkeypatch, raw):
        monkeypatch.setenv("ZK_READ_ONLY", raw)
        assert load_config().read_only is True

    def test_env_read_only_false_beats_yaml(self, monkeypatch):
        monkeypatch.setenv("ZK_READ_ONLY", "no")
        config = load_config(yaml_fallbacks={"read_only": True})
        assert config.read_only is False

    def test_yaml_debug(self):
        assert load_config(yaml_fallbacks={"debug": True}).debug is True

    def test_env_debug(self, monkeypatch):
        monkeypatch.setenv("ZK_DEBUG", "1")
        assert load_config().debug is True


class TestLoadConfigNumbers:
    def test_cli_timeout(self, monkeypatch):
        monkeypatch.setenv("ZK_TIMEOUT", "30")
        assert load_config(timeout=2.5).timeout == 2.5

    def test_env_timeout(self, monkeypatch):
        monkeypatch.setenv("ZK_TIMEOUT", "30")
        config = load_config(yaml_fallbacks={"timeout": 20})
        assert config.timeout == 30.0

    def test_env_timeout_not_a_number(self, monkeypatch):
        monkeypatch.setenv("ZK_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="Invalid ZK_TIMEOUT"):
            load_config()

    def test_yaml_timeout(self):
        assert load_config(yaml_fallbacks={"timeout": 20}).timeout == 20.0

    def test_env_retry_period(self, monkeypatch):
        monkeypatch.setenv("ZK_CONNECTION_RETRY_PERIOD", "250")
        assert load_config().connection_retry_period == 250

    def test_yaml_retry_period(self):
        config = load_config(
            yaml_fallbacks={"connection_retry_period": 1000}
        )
        assert config.connection_retry_period == 1000

    def test_env_max_parallel(self, monkeypatch):
        monkeypatch.setenv("ZK_MAX_PARALLEL_REQUESTS", "12")
        assert load_config().max_parallel_requests == 12

    @pytest.mark.parametrize("raw", ["0", "101", "many"])
    def test_env_max_parallel_out_of_range(self, monkeypatch, raw):
        monkeypatch.setenv("ZK_MAX_PARALLEL_REQUESTS", raw)
        with pytest.raises(
            ValueError, match="must be a number between 1 and 100"
        ):
            load_config()

    def test_env_event_history(self, monkeypatch):
        monkeypatch.setenv("ZK_EVENT_HISTORY", "50")
        assert load_config().event_history == 50

    def test_yaml_event_history(self):
        config = load_config(yaml_fallbacks={"event_history": 10})
        assert config.event_history == 10
