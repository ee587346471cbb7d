"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

# Thirty days, shared by record keys, the status index and the kill registry
DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 30


__all__ = ["LogLevel", "LogFormat", "DEFAULT_TTL_SECONDS"]
