from .load import Settings, build_cache, build_resolver, load_settings, read_config_file
from .model import LocatorConfig
from .paths import config_path, default_cache_dir, home_dir
from .typed import ConfigLoadError, load_typed

__all__ = [
    "LocatorConfig",
    "Settings",
    "ConfigLoadError",
    "load_typed",
    "load_settings",
    "read_config_file",
    "build_cache",
    "build_resolver",
    "home_dir",
    "config_path",
    "default_cache_dir",
]
