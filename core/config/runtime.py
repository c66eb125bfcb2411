"""
Runtime Configuration

Central configuration for the server store, the client and logging.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from core.crypto.hashing import DEFAULT_HASH_ALGORITHM

load_dotenv()

logger = logging.getLogger(__name__)


# Environment variable prefix
ENV_PREFIX = "MERKLEVAULT_"

DEFAULT_SERVER_URL = "http://127.0.0.1:2345"


@dataclass
class ServerConfig:
    """Configuration for the HTTP server and its blob store."""
    host: str = "127.0.0.1"
    port: int = 2345
    store_dir: str = "server_store"
    verify_uploads: bool = True


@dataclass
class ClientConfig:
    """Configuration for the upload/download client."""
    server_url: str = DEFAULT_SERVER_URL
    index_path: str = "uploads.json"
    download_dir: str = "."
    timeout: float = 30.0


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration.

    Can be loaded from:
    - Environment variables
    - JSON or YAML file
    - Programmatic construction
    """
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        Supported variables:
        - MERKLEVAULT_HOST / MERKLEVAULT_PORT: server bind address
        - MERKLEVAULT_STORE_DIR: server blob store directory
        - MERKLEVAULT_VERIFY_UPLOADS: recompute roots on upload (true/false)
        - MERKLEVAULT_SERVER_URL: base URL the client talks to
        - MERKLEVAULT_INDEX_PATH: client upload index file
        - MERKLEVAULT_DOWNLOAD_DIR: default download directory
        - MERKLEVAULT_TIMEOUT: client request timeout in seconds
        - MERKLEVAULT_HASH_ALGORITHM: hash algorithm for new uploads
        - MERKLEVAULT_LOG_LEVEL / MERKLEVAULT_LOG_FILE: logging
        """
        overrides: dict[str, Any] = {}

        # Server settings
        if os.getenv(f"{ENV_PREFIX}HOST"):
            overrides.setdefault("server", {})["host"] = os.getenv(f"{ENV_PREFIX}HOST")
        if os.getenv(f"{ENV_PREFIX}PORT"):
            overrides.setdefault("server", {})["port"] = int(os.getenv(f"{ENV_PREFIX}PORT", "2345"))
        if os.getenv(f"{ENV_PREFIX}STORE_DIR"):
            overrides.setdefault("server", {})["store_dir"] = os.getenv(f"{ENV_PREFIX}STORE_DIR")
        if os.getenv(f"{ENV_PREFIX}VERIFY_UPLOADS"):
            overrides.setdefault("server", {})["verify_uploads"] = (
                os.getenv(f"{ENV_PREFIX}VERIFY_UPLOADS", "true").lower() == "true"
            )

        # Client settings
        if os.getenv(f"{ENV_PREFIX}SERVER_URL"):
            overrides.setdefault("client", {})["server_url"] = os.getenv(f"{ENV_PREFIX}SERVER_URL")
        if os.getenv(f"{ENV_PREFIX}INDEX_PATH"):
            overrides.setdefault("client", {})["index_path"] = os.getenv(f"{ENV_PREFIX}INDEX_PATH")
        if os.getenv(f"{ENV_PREFIX}DOWNLOAD_DIR"):
            overrides.setdefault("client", {})["download_dir"] = os.getenv(f"{ENV_PREFIX}DOWNLOAD_DIR")
        if os.getenv(f"{ENV_PREFIX}TIMEOUT"):
            overrides.setdefault("client", {})["timeout"] = float(os.getenv(f"{ENV_PREFIX}TIMEOUT", "30"))

        # Top-level settings
        if os.getenv(f"{ENV_PREFIX}HASH_ALGORITHM"):
            overrides["hash_algorithm"] = os.getenv(f"{ENV_PREFIX}HASH_ALGORITHM")
        if os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
            overrides["log_level"] = os.getenv(f"{ENV_PREFIX}LOG_LEVEL")
        if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
            overrides["log_file"] = os.getenv(f"{ENV_PREFIX}LOG_FILE")

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RuntimeConfig":
        """Load from JSON or YAML depending on the file extension."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        server_data = data.get("server", {}) or {}
        client_data = data.get("client", {}) or {}

        server = ServerConfig(**server_data) if server_data else ServerConfig()
        client = ClientConfig(**client_data) if client_data else ClientConfig()

        return cls(
            server=server,
            client=client,
            hash_algorithm=data.get("hash_algorithm", DEFAULT_HASH_ALGORITHM),
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)

        for section in ("server", "client"):
            if section in overrides:
                target = getattr(new_config, section)
                for key, value in overrides[section].items():
                    setattr(target, key, value)

        for key in ("hash_algorithm", "log_level", "log_file"):
            if key in overrides:
                setattr(new_config, key, overrides[key])

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "store_dir": self.server.store_dir,
                "verify_uploads": self.server.verify_uploads,
            },
            "client": {
                "server_url": self.client.server_url,
                "index_path": self.client.index_path,
                "download_dir": self.client.download_dir,
                "timeout": self.client.timeout,
            },
            "hash_algorithm": self.hash_algorithm,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }


def default_config_paths() -> list[Path]:
    """Config file search order when no explicit path is given."""
    return [
        Path.cwd() / "merklevault.json",
        Path.cwd() / ".merklevault.json",
        Path.home() / ".config" / "merklevault" / "config.json",
    ]


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    """
    Load RuntimeConfig from a config file, then overlay environment variables.

    Search order for config file (when ``config_path`` is None):
      1. ./merklevault.json
      2. ./.merklevault.json
      3. ~/.config/merklevault/config.json

    Environment variables ALWAYS override config file values.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
    """
    config: RuntimeConfig | None = None

    if config_path is not None:
        config = RuntimeConfig.from_file(config_path)
        logger.debug(f"Loaded config from {config_path}")
    else:
        for path in default_config_paths():
            if path.exists():
                try:
                    config = RuntimeConfig.from_file(path)
                    logger.debug(f"Loaded config from {path}")
                    break
                except (ValueError, TypeError) as e:
                    logger.warning(f"Failed to parse {path}: {e}")

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


def get_default_config_template() -> str:
    """Get a template configuration file."""
    return json.dumps(RuntimeConfig().to_dict(), indent=2) + "\n"
