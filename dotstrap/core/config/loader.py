"""
Configuration loader — reads bootstrap.yml into BootstrapSettings.

The settings file is optional. Lookup order:
    --config PATH  >  $DOTSTRAP_CONFIG  >  ~/.config/dotstrap/bootstrap.yml

When none exists the built-in defaults are used.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml

from dotstrap.core.config.settings import BootstrapSettings
from dotstrap.core.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "bootstrap.yml"
CONFIG_ENV_VAR = "DOTSTRAP_CONFIG"


def default_settings_path(home: Path) -> Path:
    """The per-user settings location."""
    return home / ".config" / "dotstrap" / SETTINGS_FILE


def find_settings_file(
    explicit: Path | None = None,
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path | None:
    """Locate the settings file.

    An explicit path is returned even if it doesn't exist, so that
    ``load_settings`` can report it. The env var and default location
    are only returned when the file is present.
    """
    if explicit is not None:
        return explicit

    env = environ if environ is not None else os.environ
    from_env = env.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)

    candidate = default_settings_path(home or Path.home())
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> BootstrapSettings:
    """Load and validate bootstrap settings.

    Args:
        path: Path to bootstrap.yml. None → built-in defaults.

    Returns:
        Validated BootstrapSettings.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    if path is None:
        logger.debug("No settings file — using built-in defaults")
        return BootstrapSettings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return BootstrapSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to be nested under a top-level "bootstrap" key
    if "bootstrap" in data and isinstance(data["bootstrap"], dict):
        data = data["bootstrap"]

    try:
        settings = BootstrapSettings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
