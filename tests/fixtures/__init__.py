"""
Test fixtures package for MerkleVault tests.

Usage:
    from fixtures.common import write_files, make_store

    def test_something(tmp_path):
        paths = write_files(tmp_path, {"a.txt": b"hello"})
        store = make_store(tmp_path / "store")
"""

from .common import (
    TamperingConnection,
    TestClientHttpClient,
    make_index,
    make_store,
    write_files,
)

__all__ = [
    "write_files",
    "make_store",
    "make_index",
    "TamperingConnection",
    "TestClientHttpClient",
]
