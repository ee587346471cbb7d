"""
Settings master configuration and helpers.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import InvalidConfigError
from .logging import LoggingConfig
from .store import StoreConfig


@dataclass
class Settings:
    """
    Master configuration for job-status.

    This aggregates all configuration sections into a single object
    that can be loaded from environment variables, files, or constructed
    programmatically. Settings are passed explicitly to whatever needs
    them; there is no process-wide instance.
    """

    # Store configuration
    store: StoreConfig = field(default_factory=StoreConfig)

    # Logging configuration
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "JOB_STATUS_") -> Settings:
        """
        Load settings from environment variables.

        Environment variables are prefixed (default: JOB_STATUS_) and use
        underscore-separated paths for nested settings.

        Example:
            JOB_STATUS_REDIS_URL=redis://cache:6379/1
            JOB_STATUS_TTL_SECONDS=86400
            JOB_STATUS_LOG_LEVEL=DEBUG
        """
        store: dict[str, Any] = {}
        if url := os.getenv(f"{prefix}REDIS_URL"):
            store["redis_url"] = url
        if key_prefix := os.getenv(f"{prefix}KEY_PREFIX"):
            store["key_prefix"] = key_prefix
        if statuses_key := os.getenv(f"{prefix}STATUSES_KEY"):
            store["statuses_key"] = statuses_key
        if kill_key := os.getenv(f"{prefix}KILL_KEY"):
            store["kill_key"] = kill_key
        if ttl := os.getenv(f"{prefix}TTL_SECONDS"):
            try:
                store["ttl_seconds"] = int(ttl)
            except ValueError as exc:
                raise InvalidConfigError(f"{prefix}TTL_SECONDS must be an integer, got {ttl!r}") from exc

        log: dict[str, Any] = {}
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            log["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            log["format"] = log_format.lower()
        if log_operations := os.getenv(f"{prefix}LOG_OPERATIONS"):
            log["log_operations"] = log_operations.lower() == "true"

        return cls(store=StoreConfig(**store), logging=LoggingConfig(**log))

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise InvalidConfigError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema
        before any section is built.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        return cls(
            store=StoreConfig(**data.get("store", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return dataclasses.asdict(self)


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "load_env"]
