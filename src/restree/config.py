"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for restree:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.restree/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~restree.models.GlobalConfig`
  JSON file storing defaults (output format, cache settings, parse options).
* **Project config** -- An optional ``./restree.json`` holding a partial
  :class:`~restree.models.GlobalConfig` for one repository.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from restree.exceptions import ConfigError
from restree.models import GlobalConfig

_APP_NAME = "restree"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "restree.json"

ENV_FORMAT = "RESTREE_FORMAT"
ENV_SCHEMA_STRATEGY = "RESTREE_SCHEMA_STRATEGY"
ENV_MAX_DEPTH = "RESTREE_MAX_DEPTH"
ENV_BASE_URL = "RESTREE_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/restree/`` (default ``~/.config/restree/``).
    On macOS/Windows: ``~/.restree/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Used to persist analyses between invocations. Cached data can be safely
    deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/restree/`` (default ``~/.cache/restree/``).
    On macOS/Windows: ``~/.restree/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/restree/`` (default ``~/.local/share/restree/``).
    On macOS/Windows: ``~/.restree/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~restree.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *value*.

    The string *value* is coerced to the type of the current setting:
    booleans accept ``true/1/yes``, integers are parsed, lists are split on
    commas, and an empty string clears an optional setting.

    Raises:
        ConfigError: If the key does not exist or the result fails validation.
    """
    data = config.model_dump(mode="json")

    *parents, final_key = key.split(".")
    target = data
    for part in parents:
        if not isinstance(target.get(part), dict):
            raise ConfigError(f"Invalid config key: {key}")
        target = target[part]
    if final_key not in target or isinstance(target[final_key], dict):
        raise ConfigError(f"Unknown config key: {key}")

    current = target[final_key]
    if isinstance(current, bool):
        coerced: Any = value.lower() in ("true", "1", "yes")
    elif isinstance(current, list):
        coerced = [item.strip() for item in value.split(",") if item.strip()]
    elif value == "":
        coerced = None
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            raise ConfigError(f"Expected integer for {key}, got: {value}") from None
    else:
        coerced = value
    target[final_key] = coerced

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Validation error for {key}: {exc}") from exc


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./restree.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain.  It holds any subset of the global config
    structure, e.g. ``{"parse": {"strip_prefix": "/api/v1"}}``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_format: Optional[str] = None,
    cli_strategy: Optional[str] = None,
    cli_max_depth: Optional[int] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_format``, ``cli_strategy``, ``cli_max_depth``)
        2. Environment variables (``RESTREE_FORMAT``,
           ``RESTREE_SCHEMA_STRATEGY``, ``RESTREE_MAX_DEPTH``,
           ``RESTREE_BASE_URL``)
        3. Project config (``./restree.json``)
        4. User config (``~/.config/restree/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    # 5 + 4
    data = load_global_config().model_dump(mode="json")

    # 3
    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)

    # 2
    env_max_depth = os.environ.get(ENV_MAX_DEPTH)
    if env_max_depth:
        try:
            data["parse"]["max_depth"] = int(env_max_depth)
        except ValueError:
            raise ConfigError(f"{ENV_MAX_DEPTH} must be an integer, got: {env_max_depth}") from None
    if os.environ.get(ENV_SCHEMA_STRATEGY):
        data["parse"]["schema_strategy"] = os.environ[ENV_SCHEMA_STRATEGY]
    if os.environ.get(ENV_BASE_URL):
        data["parse"]["base_url"] = os.environ[ENV_BASE_URL]
    if os.environ.get(ENV_FORMAT):
        data["output"]["format"] = os.environ[ENV_FORMAT]

    # 1
    if cli_format is not None:
        data["output"]["format"] = cli_format
    if cli_strategy is not None:
        data["parse"]["schema_strategy"] = cli_strategy
    if cli_max_depth is not None:
        data["parse"]["max_depth"] = cli_max_depth

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
