"""Configuration system for probekit."""

from probekit.config.loader import env_overrides, find_config_file, load_config, read_config_file
from probekit.config.models import (
    MAX_THREADS,
    MIN_THREADS,
    CatalogConfig,
    EnvironmentProfile,
    ExecutionConfig,
    ProbekitConfig,
    ServerConfig,
)

__all__ = [
    "CatalogConfig",
    "EnvironmentProfile",
    "ExecutionConfig",
    "MAX_THREADS",
    "MIN_THREADS",
    "ProbekitConfig",
    "ServerConfig",
    "env_overrides",
    "find_config_file",
    "load_config",
    "read_config_file",
]
