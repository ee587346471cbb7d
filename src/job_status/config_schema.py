"""
JSON schemas for configuration validation.
"""

STORE_SCHEMA = {
    "type": "object",
    "properties": {
        "redis_url": {"type": "string"},
        "key_prefix": {"type": "string", "minLength": 1},
        "statuses_key": {"type": "string", "minLength": 1},
        "kill_key": {"type": "string", "minLength": 1},
        "ttl_seconds": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "logger_name": {"type": "string", "minLength": 1},
        "log_operations": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "job-status configuration",
    "type": "object",
    "properties": {
        "store": STORE_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}


__all__ = ["CONFIG_SCHEMA", "STORE_SCHEMA", "LOGGING_SCHEMA"]
