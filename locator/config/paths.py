from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

# Single source of truth for the tool's home directory layout.
HOME_ENV = "LOCATOR_HOME"
HOME_DIR = ".locator"
CONFIG_FILE = "config.yaml"
CACHE_DIR = "cache"


def home_dir(home: Optional[str | Path] = None, env: Optional[Mapping[str, str]] = None) -> Path:
    """
    Absolute home directory: explicit value, then $LOCATOR_HOME, then ~/.locator.
    """
    env = os.environ if env is None else env
    if home:
        return Path(home).expanduser().absolute()
    raw = env.get(HOME_ENV)
    if raw:
        return Path(raw).expanduser().absolute()
    return (Path.home() / HOME_DIR).absolute()


def config_path(home: Path) -> Path:
    """Path to the optional settings file <home>/config.yaml."""
    return home / CONFIG_FILE


def default_cache_dir(home: Path) -> Path:
    """Default content cache root <home>/cache."""
    return home / CACHE_DIR


__all__ = ["HOME_ENV", "HOME_DIR", "CONFIG_FILE", "CACHE_DIR", "home_dir", "config_path", "default_cache_dir"]
