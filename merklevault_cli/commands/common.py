"""
Shared helpers for CLI commands.
"""

from __future__ import annotations

from argparse import Namespace

from client.connection import HttpServerConnection, ServerConnection
from core.config.runtime import RuntimeConfig
from core.crypto.hashing import HashAlgorithm, get_hash_algorithm
from core.storage import UploadIndex


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_INTEGRITY_FAILED = 2


def runtime_config(args: Namespace) -> RuntimeConfig:
    """The RuntimeConfig attached by main(), with --server applied."""
    config: RuntimeConfig = args.runtime_config
    server = getattr(args, "server", None)
    if server:
        config.client.server_url = server
    return config


def build_connection(config: RuntimeConfig) -> ServerConnection:
    """Open a connection to the configured server."""
    return HttpServerConnection(config.client.server_url, timeout=config.client.timeout)


def open_index(config: RuntimeConfig) -> UploadIndex:
    return UploadIndex(config.client.index_path)


def hasher_for(config: RuntimeConfig) -> HashAlgorithm:
    return get_hash_algorithm(config.hash_algorithm)
