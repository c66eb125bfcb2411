"""
Runtime Configuration Module

Provides configuration loading and management for the server and client.
"""

from .runtime import (
    ClientConfig,
    RuntimeConfig,
    ServerConfig,
    get_default_config_template,
    load_runtime_config,
)

__all__ = [
    "ClientConfig",
    "RuntimeConfig",
    "ServerConfig",
    "get_default_config_template",
    "load_runtime_config",
]
