"""
Hierarchical configuration loader for zk_mcp_server.

Provides convention-based config file discovery, YAML !include support,
env var interpolation, hierarchical merge with "project wins" semantics,
and persistence of connection aliases.

Usage:
    from zk_mcp_server.config_loader import load_hierarchical_config

    config = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` is replaced with ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    * Literal ``${`` with no closing ``}`` is left untouched.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)  # None when no :- clause
        env_val = os.environ.get(var_name)
        if env_val is not None and env_val != "":
            return env_val
        if default is not None:
            return default
        return ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Walk a nested dict/list and interpolate env vars in all strings."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. YAML !include support (dedicated SafeLoader subclass)
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """YAML SafeLoader subclass with ``!include`` support.

    Uses a dedicated subclass so the global ``yaml.SafeLoader`` is never
    modified.  Tracks an *include stack* per-load to detect circular includes.
    """


def _include_constructor(
    loader: ConfigLoader, node: yaml.ScalarNode
) -> Any:
    """Handle ``!include path/to/file.yml`` directives."""
    include_path_str: str = loader.construct_scalar(node)

    # Resolve relative to the file that contains the !include
    if os.path.isabs(include_path_str):
        include_path = Path(include_path_str)
    else:
        parent_dir = Path(loader.name).resolve().parent
        include_path = parent_dir / include_path_str

    include_path = include_path.resolve()

    include_stack: list[Path] = getattr(loader, "_include_stack", [])
    if include_path in include_stack:
        chain = (
            " -> ".join(str(p) for p in include_stack)
            + f" -> {include_path}"
        )
        raise ValueError(f"Circular include detected: {chain}")

    if not include_path.exists():
        source_file = Path(loader.name).resolve()
        raise FileNotFoundError(
            f"Include file not found: {include_path} (referenced from {source_file})"
        )

    new_stack = include_stack + [include_path]
    return _load_yaml_with_includes(
        include_path, _include_stack=new_stack
    )


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    """Load a YAML file using the ``ConfigLoader`` (with ``!include``)."""
    path = path.resolve()
    if _include_stack is None:
        _include_stack = [path]

    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# 3. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``ZK_MCP_CONFIG`` env var (explicit single path)
        2. ``.zk_mcp/config.yml`` in CWD (project-level)
        3. ``.zk_mcp/config.yaml`` in CWD (alternate extension)
        4. ``~/.config/zk_mcp/config.yml`` (XDG global)

    Only paths that exist on disk are returned.
    """
    candidates: list[Path] = []

    env_path = os.environ.get("ZK_MCP_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    cwd = Path.cwd()
    candidates.append(cwd / ".zk_mcp" / "config.yml")
    candidates.append(cwd / ".zk_mcp" / "config.yaml")

    candidates.append(Path.home() / ".config" / "zk_mcp" / "config.yml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# 3a. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# zk-mcp-server configuration
#
# Connection settings can also be set via environment variables:
#   ZK_HOSTS, ZK_ALIAS, ZK_TIMEOUT, ZK_READ_ONLY
#
# zookeeper:
#   hosts: localhost:2181
#   alias: null
#   aliases:
#     local: localhost:2181
#     staging: zk1.staging:2181,zk2.staging:2181/app
#   timeout: 10
#   read_only: false
#   connection_retry_period: 5000
#   max_parallel_requests: 5
#   event_history: 1000
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """Return the single config file path that should be used.

    If config files already exist (per ``discover_config_files()``), return
    the highest-precedence one (first in the list).

    If no config files exist, return the default project-level path:
    ``CWD / .zk_mcp / config.yml``.

    This does NOT create the file -- use ``ensure_config()`` for that.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / ".zk_mcp" / "config.yml"


def ensure_config(target: Path | None = None) -> Path:
    """Ensure a config file exists, creating directory and starter file if needed.

    If a config file already exists (per ``discover_config_files()``),
    return its path without modification.

    Args:
        target: Explicit path to create. If ``None``, uses
            ``resolve_config_path()``.

    Returns:
        Path to the config file (existing or newly created).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)

    return config_path


def save_connection_alias(
    name: str, hosts: str, target: Path | None = None
) -> Path:
    """Persist a connection alias into the active config file.

    The alias is written under ``zookeeper.aliases``; an existing alias of
    the same name is replaced. The file is created if needed. Any
    ``!include`` directives in the target file are inlined on rewrite.

    Args:
        name: Alias name.
        hosts: ZooKeeper connection string for the alias.
        target: Config file to update (default: ``resolve_config_path()``).

    Returns:
        Path to the updated config file.

    Raises:
        ValueError: If name or hosts is empty, or the file's root or
            ``zookeeper`` section is not a mapping.
    """
    if not name or not name.strip():
        raise ValueError("Alias name cannot be empty")
    if not hosts or not hosts.strip():
        raise ValueError("Alias connection string cannot be empty")

    config_path = target or resolve_config_path()
    data: Any = None
    if config_path.exists():
        data = _load_yaml_with_includes(config_path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file {config_path} has non-dict root ({type(data).__name__})"
        )

    section = data.setdefault("zookeeper", {}) or {}
    if not isinstance(section, dict):
        raise ValueError(
            f"Config file {config_path} has a non-dict 'zookeeper' section"
        )
    data["zookeeper"] = section
    aliases = section.get("aliases") or {}
    aliases[name.strip()] = hosts.strip()
    section["aliases"] = dict(sorted(aliases.items()))

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.safe_dump(data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    logger.info("Saved connection alias '%s' to %s", name, config_path)
    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Merge strategy ("project wins"):
        Files are loaded from lowest precedence to highest.  Each file's
        top-level keys **replace** (not deep-merge) those from earlier files.

    After merging, env var interpolation is applied to all string values.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()

    if not paths:
        logger.debug(
            "No config files found, using zero-config defaults"
        )
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    merged = _interpolate_recursive(merged)  # type: ignore[assignment]

    return merged
