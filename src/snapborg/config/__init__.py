"""Configuration system for snapborg.

This module provides TOML-based configuration loading, validation,
and schema definitions for the backup runs.
"""

from .loader import ConfigError, find_config_file, load_config, validate_pairing
from .schema import Config, GlobalConfig, SourceConfig

__all__ = [
    "GlobalConfig",
    "SourceConfig",
    "Config",
    "load_config",
    "find_config_file",
    "validate_pairing",
    "ConfigError",
]
