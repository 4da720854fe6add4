from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

import httpx
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..cache import ContentCache
from ..resolver import Resolver
from ..vcs import GitTransport
from .model import LocatorConfig
from .paths import config_path, default_cache_dir, home_dir
from .typed import ConfigLoadError, load_typed

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")

ENV_CACHE_DIR = "LOCATOR_CACHE_DIR"
ENV_FETCH_TIMEOUT = "LOCATOR_FETCH_TIMEOUT"
ENV_LOCK_WAIT_TIMEOUT = "LOCATOR_LOCK_WAIT_TIMEOUT"
ENV_LOCK_STALE_SEC = "LOCATOR_LOCK_STALE_SEC"


@dataclass(frozen=True)
class Settings:
    """Effective settings: resolved home and cache directories plus typed config."""
    home: Path
    cache_dir: Path
    config: LocatorConfig


def _read_yaml_map(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except (OSError, YAMLError) as e:
        raise ConfigLoadError(f"{path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigLoadError(f"{path}: YAML must be a mapping")
    return raw


def read_config_file(path: Path) -> LocatorConfig:
    """
    Load <home>/config.yaml into LocatorConfig (defaults when the file is absent).

    Host hints from the file are merged over the built-in ones.
    """
    raw = _read_yaml_map(path)
    cfg = load_typed(LocatorConfig, raw, path=path.name)
    if "repo_segments" in raw:
        cfg.repo_segments = {**LocatorConfig().repo_segments, **cfg.repo_segments}
    return cfg


def _env_value(env: Mapping[str, str], name: str, conv: Callable[[str], object]):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return conv(raw.strip())
    except ValueError:
        raise ConfigLoadError(f"env:{name}: invalid value {raw!r}")


def load_settings(
    *,
    home: Optional[str | Path] = None,
    cache_dir: Optional[str | Path] = None,
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build effective settings with the precedence: explicit argument (CLI flag) >
    environment variable > config.yaml > built-in default.

    Args:
        home: Home directory override (--home)
        cache_dir: Cache root override (--cache-dir)
        timeout: Fetch and download timeout override in seconds (--timeout)
        env: Environment mapping (os.environ when omitted)

    Raises:
        ConfigLoadError: Invalid config.yaml or environment value
    """
    env = os.environ if env is None else env
    home_path = home_dir(home, env)
    cfg = read_config_file(config_path(home_path))
    logger.debug("Config loaded from %s: %r", config_path(home_path), cfg)

    overrides: dict = {}
    env_fetch = _env_value(env, ENV_FETCH_TIMEOUT, float)
    if env_fetch is not None:
        overrides["fetch_timeout"] = env_fetch
    env_wait = _env_value(env, ENV_LOCK_WAIT_TIMEOUT, float)
    if env_wait is not None:
        overrides["lock_wait_timeout"] = env_wait
    env_stale = _env_value(env, ENV_LOCK_STALE_SEC, int)
    if env_stale is not None:
        overrides["lock_stale_seconds"] = env_stale
    if timeout is not None:
        overrides["fetch_timeout"] = float(timeout)
        overrides["download_timeout"] = float(timeout)
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    if cache_dir:
        cache_root = Path(cache_dir).expanduser()
    elif env.get(ENV_CACHE_DIR):
        cache_root = Path(env[ENV_CACHE_DIR]).expanduser()
    elif cfg.cache_dir:
        cache_root = Path(cfg.cache_dir).expanduser()
        if not cache_root.is_absolute():
            cache_root = home_path / cache_root
    else:
        cache_root = default_cache_dir(home_path)

    return Settings(home=home_path, cache_dir=cache_root.absolute(), config=cfg)


def build_cache(
    settings: Settings,
    *,
    git: Optional[GitTransport] = None,
    http_client: Optional[httpx.Client] = None,
) -> ContentCache:
    cfg = settings.config
    kwargs = {}
    if git is not None:
        kwargs["git"] = git
    return ContentCache(
        root=settings.cache_dir,
        http_client=http_client,
        default_ref=cfg.default_ref,
        fetch_timeout=cfg.fetch_timeout,
        download_timeout=cfg.download_timeout,
        lock_wait_timeout=cfg.lock_wait_timeout,
        lock_stale_seconds=cfg.lock_stale_seconds,
        **kwargs,
    )


def build_resolver(settings: Settings, **cache_kwargs) -> Resolver:
    """ContentCache + Resolver wired from settings (keyword args go to build_cache)."""
    return Resolver(build_cache(settings, **cache_kwargs), host_hints=settings.config.repo_segments)


__all__ = [
    "Settings",
    "read_config_file",
    "load_settings",
    "build_cache",
    "build_resolver",
    "ENV_CACHE_DIR",
    "ENV_FETCH_TIMEOUT",
    "ENV_LOCK_WAIT_TIMEOUT",
    "ENV_LOCK_STALE_SEC",
]
