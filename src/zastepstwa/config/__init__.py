"""Configuration models and loaders for the substitution mirror."""

from .loader import ConfigError, DEFAULT_CONFIG_PATH, dump_example_config, load_config
from .models import (
    BlackoutRange,
    CacheConfig,
    CalendarConfig,
    MirrorConfig,
    RuntimeConfig,
    UpstreamConfig,
)

__all__ = [
    "BlackoutRange",
    "CacheConfig",
    "CalendarConfig",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "MirrorConfig",
    "RuntimeConfig",
    "UpstreamConfig",
    "dump_example_config",
    "load_config",
]
