"""Configuration loading and merging for tasktrail.

Handles TOML loading, config discovery, deep merging, and environment overlay.
"""

from __future__ import annotations

import os
import sys
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

# TOML loading: tomllib (3.11+) with tomli fallback
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore

from pydantic import ValidationError

from .config_schema import TasktrailConfig


# Config file names
CONFIG_FILENAME = "config.toml"

# Directory names
USER_CONFIG_DIR = ".tasktrail"
PROJECT_CONFIG_DIR = ".tasktrail"

# Environment variable -> (section path, key)
ENV_MAPPING: Dict[str, tuple[list[str], str]] = {
    "TASKTRAIL_PROJECT_NAME": ([], "project_name"),
    # Tasks
    "TASKTRAIL_BACKLOG_DIR": (["tasks"], "backlog_dir"),
    "TASKTRAIL_RESOLUTION_STRATEGY": (["tasks"], "resolution_strategy"),
    "TASKTRAIL_ZERO_PADDED_IDS": (["tasks"], "zero_padded_ids"),
    # Git
    "TASKTRAIL_REMOTE_OPERATIONS": (["git"], "remote_operations"),
    "TASKTRAIL_REMOTE": (["git"], "remote"),
    "TASKTRAIL_ACTIVE_BRANCH_DAYS": (["git"], "active_branch_days"),
    "TASKTRAIL_CHECK_ACTIVE_BRANCHES": (["git"], "check_active_branches"),
    # Concurrency
    "TASKTRAIL_INDEX_WORKERS": (["concurrency"], "index_workers"),
    "TASKTRAIL_HYDRATE_WORKERS": (["concurrency"], "hydrate_workers"),
    "TASKTRAIL_BRANCH_BATCH_SIZE": (["concurrency"], "branch_batch_size"),
    # Logging
    "TASKTRAIL_LOG_LEVEL": (["logging"], "level"),
    "TASKTRAIL_LOG_DIR": (["logging"], "dir"),
    "TASKTRAIL_LOG_MAX_BYTES": (["logging"], "max_bytes"),
    "TASKTRAIL_LOG_BACKUP_COUNT": (["logging"], "backup_count"),
    "TASKTRAIL_LOG_DISABLE_FILE": (["logging"], "disable_file"),
}


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


def _get_user_config_dir() -> Path:
    """Get user-level config directory (~/.tasktrail/)."""
    return Path.home() / USER_CONFIG_DIR


def _get_project_config_dir(project_path: Optional[Path] = None) -> Optional[Path]:
    """Get project-level config directory (.tasktrail/).

    Searches upward from project_path to find .tasktrail/ directory.
    """
    if project_path is None:
        project_path = Path.cwd()

    if not project_path.is_absolute():
        project_path = project_path.resolve()

    current = project_path
    while current != current.parent:
        config_dir = current / PROJECT_CONFIG_DIR
        if config_dir.is_dir():
            return config_dir
        current = current.parent

    return None


def _load_toml(path: Path) -> Dict[str, Any]:
    """Load a TOML file.

    Raises:
        ConfigError: If file cannot be loaded or parsed
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries.

    Override values take precedence. Nested dicts are merged recursively.
    Lists are replaced, not merged.
    """
    result = base.copy()

    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _env_to_config_key(env_var: str) -> tuple[Optional[list[str]], str]:
    """Map environment variable to config path.

    Examples:
        TASKTRAIL_ZERO_PADDED_IDS -> (["tasks"], "zero_padded_ids")
        TASKTRAIL_REMOTE_OPERATIONS -> (["git"], "remote_operations")
        TASKTRAIL_PROJECT_NAME -> ([], "project_name")
    """
    return ENV_MAPPING.get(env_var, (None, env_var))


def _apply_env_overlay(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to config dict.

    Type conversion happens during Pydantic validation.
    """
    result = _deep_merge({}, config_dict)

    for env_var in ENV_MAPPING:
        value = os.getenv(env_var)
        if value is None:
            continue

        section_path, key_name = _env_to_config_key(env_var)

        current = result
        for section in section_path:
            if not isinstance(current.get(section), dict):
                current[section] = {}
            current = current[section]

        current[key_name] = value

    return result


def load_config(
    project_path: Optional[Path] = None,
    skip_env: bool = False,
) -> TasktrailConfig:
    """Load and merge tasktrail configuration.

    Discovery order (later sources override earlier):
    1. Built-in defaults
    2. User config (~/.tasktrail/config.toml)
    3. Project config (.tasktrail/config.toml)
    4. Environment variables (unless skip_env=True)

    Raises:
        ConfigError: If the project config or the merged result is invalid
    """
    config_dict: Dict[str, Any] = {}

    # 1. User config
    user_config_path = _get_user_config_dir() / CONFIG_FILENAME
    if user_config_path.exists():
        try:
            user_config = _load_toml(user_config_path)
            config_dict = _deep_merge(config_dict, user_config)
        except ConfigError as e:
            # User config is optional, warn but continue
            warnings.warn(
                f"Skipping invalid user config at {user_config_path}: {e}",
                UserWarning,
            )

    # 2. Project config
    project_config_dir = _get_project_config_dir(project_path)
    if project_config_dir:
        project_config_path = project_config_dir / CONFIG_FILENAME
        if project_config_path.exists():
            try:
                project_config = _load_toml(project_config_path)
                config_dict = _deep_merge(config_dict, project_config)
            except ConfigError as e:
                raise ConfigError(f"Invalid project config: {e}")

    # 3. Environment overlay
    if not skip_env:
        config_dict = _apply_env_overlay(config_dict)

    # 4. Validate and create config object
    try:
        return TasktrailConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed:\n{e}")


# Global cached config (thread-safe)
_cached_config: Optional[TasktrailConfig] = None
_cached_project_path: Optional[Path] = None
_config_lock = threading.Lock()


def get_config(project_path: Optional[Path] = None, force_reload: bool = False) -> TasktrailConfig:
    """Get cached config, loading if necessary.

    Thread-safe: Uses a lock to prevent race conditions when multiple
    threads access the config cache concurrently.
    """
    global _cached_config, _cached_project_path

    if project_path and str(project_path):
        normalized_path = project_path.resolve()
    else:
        normalized_path = None

    with _config_lock:
        if (
            force_reload
            or _cached_config is None
            or _cached_project_path != normalized_path
        ):
            _cached_config = load_config(project_path)
            _cached_project_path = normalized_path

        return _cached_config


def clear_config_cache() -> None:
    """Clear cached config (thread-safe)."""
    global _cached_config, _cached_project_path
    with _config_lock:
        _cached_config = None
        _cached_project_path = None
