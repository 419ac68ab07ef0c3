"""YAML configuration."""

from .loader import ConfigError, DatabaseConfig, RosterConfig, default_config, load_config

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "RosterConfig",
    "default_config",
    "load_config",
]
