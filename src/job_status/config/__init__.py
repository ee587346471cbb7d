"""
Configuration system for job-status.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import DEFAULT_TTL_SECONDS, LogFormat, LogLevel
from .logging import LoggingConfig
from .settings import Settings, load_env
from .store import StoreConfig

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "DEFAULT_TTL_SECONDS",
    # Section configs
    "StoreConfig",
    "LoggingConfig",
    # Master config
    "Settings",
    # Helpers
    "load_env",
]
