"""
Pytest configuration and shared fixtures for MerkleVault tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

write_files = _common.write_files
make_store = _common.make_store
make_index = _common.make_index
TamperingConnection = _common.TamperingConnection


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep MERKLEVAULT_* variables from the developer's shell out of tests."""
    import os
    for key in list(os.environ):
        if key.startswith("MERKLEVAULT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def store(tmp_path):
    """Provide an empty ServerStore with upload verification enabled."""
    return make_store(tmp_path / "server_store")


@pytest.fixture
def index(tmp_path):
    """Provide an empty client UploadIndex."""
    return make_index(tmp_path / "client" / "uploads.json")


@pytest.fixture
def connection(store):
    """Provide an in-process connection to the store fixture."""
    from client.connection import LocalServerConnection
    return LocalServerConnection(store)


@pytest.fixture
def hello_world(tmp_path):
    """Two files "a" and "b" holding b"hello" and b"world"."""
    return write_files(tmp_path / "src", {"a": b"hello", "b": b"world"})


@pytest.fixture
def download_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
