"""
Configuration loader — reads bwpatch.yml into a Settings model.

The file is optional: without one every setting takes its default.
Environment variables override file values so packagers and tests can
redirect the cache without writing a config file.
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from bwpatch.core.services.patcher.data.constants import DEFAULT_TIMEOUTS

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "bwpatch.yml"
CONFIG_DIR_NAME = "bwpatch"

# Environment overrides
ENV_CONFIG = "BWP_CONFIG"
ENV_CACHE_DIR = "BWP_CACHE_DIR"
ENV_TEMP_DIR = "BWP_TEMP_DIR"
ENV_JAVA_HOME = "BWP_JAVA_HOME"


class ConfigError(Exception):
    """Raised when bwpatch configuration is invalid or unreadable."""


class Timeouts(BaseModel):
    """Subprocess timeouts in seconds."""

    probe: int = Field(default=DEFAULT_TIMEOUTS["probe"], gt=0)
    download: int = Field(default=DEFAULT_TIMEOUTS["download"], gt=0)
    tool: int = Field(default=DEFAULT_TIMEOUTS["tool"], gt=0)
    elevation: int = Field(default=DEFAULT_TIMEOUTS["elevation"], gt=0)


class Settings(BaseModel):
    """Validated bwpatch settings."""

    cache_dir: Path | None = None
    temp_dir: Path | None = None
    java_home: Path | None = None
    backup_policy: Literal["best_effort", "required"] = "best_effort"
    keep_backups: int = Field(default=5, ge=1)
    timeouts: Timeouts = Field(default_factory=Timeouts)


def user_config_dir(env: Mapping[str, str] | None = None, system: str | None = None) -> Path:
    """Platform config directory (XDG / Application Support / APPDATA)."""
    env = os.environ if env is None else env
    system = (system or platform.system()).lower()
    home = Path(env.get("HOME") or env.get("USERPROFILE") or Path.home())

    if system == "windows":
        return Path(env.get("APPDATA") or home / "AppData" / "Roaming")
    if system == "darwin":
        return home / "Library" / "Application Support"
    return Path(env.get("XDG_CONFIG_HOME") or home / ".config")


def find_config_file(
    explicit: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path | None:
    """Locate bwpatch.yml.

    Precedence: explicit path > ``BWP_CONFIG`` > user config dir.

    Returns:
        Path to the config file, or None when there is none.
    """
    env = os.environ if env is None else env

    if explicit is not None:
        return explicit

    from_env = env.get(ENV_CONFIG)
    if from_env:
        return Path(from_env)

    candidate = user_config_dir(env) / CONFIG_DIR_NAME / CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, searches the usual places.
        env: Environment mapping used for lookup and overrides.

    Returns:
        Validated Settings (defaults when no file exists).

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    env = os.environ if env is None else env
    explicit = path is not None or bool(env.get(ENV_CONFIG))
    path = find_config_file(path, env)

    data: dict = {}
    if path is not None:
        if not path.is_file():
            if explicit:
                raise ConfigError(f"Config file not found: {path}")
        else:
            data = _read_yaml(path)

    for key, var in (
        ("cache_dir", ENV_CACHE_DIR),
        ("temp_dir", ENV_TEMP_DIR),
        ("java_home", ENV_JAVA_HOME),
    ):
        if env.get(var):
            data[key] = env[var]

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid bwpatch configuration: {e}") from e

    logger.debug("Settings loaded (file=%s, policy=%s)", path, settings.backup_policy)
    return settings


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "bwpatch" key or be flat
    inner = data.get("bwpatch", data)
    if not isinstance(inner, dict):
        raise ConfigError(f"Expected a mapping under 'bwpatch' in {path}")
    return dict(inner)
