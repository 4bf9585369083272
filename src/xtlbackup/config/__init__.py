"""Configuration system for xtlbackup.

This module provides TOML-based job declaration loading, validation,
and schema definitions.
"""

from .loader import (
    ConfigError,
    find_config_files,
    generate_example_config,
    load_config,
)
from .schema import Config, GlobalConfig, JobConfig, RemoteConfig

__all__ = [
    "Config",
    "GlobalConfig",
    "JobConfig",
    "RemoteConfig",
    "load_config",
    "find_config_files",
    "ConfigError",
    "generate_example_config",
]
