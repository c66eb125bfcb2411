"""
Hashing Utilities
Pluggable digest functions for Merkle leaves and internal nodes.

This module provides:
- HashAlgorithm: capability interface (anything with ``digest(bytes)``)
- Sha256Hasher: the default algorithm
- HashlibHasher: any fixed-size algorithm from ``hashlib``
- get_hash_algorithm: name -> algorithm resolution
- Hex encoding/decoding of digests

Determinism Notes:
- Raw bytes are hashed exactly as given, no prefixes or domain tags
- Digests are rendered as lowercase hex without a prefix
"""
from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

from core.schemas.errors import InvalidDigestException, UnsupportedHashAlgorithmException


DEFAULT_HASH_ALGORITHM = "sha256"


@runtime_checkable
class HashAlgorithm(Protocol):
    """
    Capability interface for a digest function.

    Any object exposing ``name``, ``digest_size`` and ``digest(data)``
    can be passed to tree construction and proof verification.
    """

    name: str
    digest_size: int

    def digest(self, data: bytes) -> bytes:
        """Return the fixed-size digest of ``data``."""
        ...


class Sha256Hasher:
    """SHA-256 digest function."""

    name = "sha256"
    digest_size = 32

    def digest(self, data: bytes) -> bytes:
        """
        Compute SHA-256 hash of raw bytes.

        Example:
            >>> Sha256Hasher().digest(b"hello").hex()
            '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
        """
        return hashlib.sha256(data).digest()

    def __repr__(self) -> str:
        return "Sha256Hasher()"


class HashlibHasher:
    """
    Digest function backed by any fixed-size ``hashlib`` algorithm.

    Args:
        name: hashlib algorithm name (e.g. "sha512", "blake2b", "sha3_256")

    Raises:
        UnsupportedHashAlgorithmException: If hashlib does not know the name,
            or the algorithm has variable-length output (shake_*)
    """

    def __init__(self, name: str) -> None:
        normalized = name.lower()
        try:
            sample = hashlib.new(normalized)
        except ValueError as e:
            raise UnsupportedHashAlgorithmException(name) from e
        if sample.digest_size == 0 or normalized.startswith("shake"):
            raise UnsupportedHashAlgorithmException(
                name, reason="variable-length digests are not supported"
            )
        self.name = normalized
        self.digest_size = sample.digest_size

    def digest(self, data: bytes) -> bytes:
        return hashlib.new(self.name, data).digest()

    def __repr__(self) -> str:
        return f"HashlibHasher({self.name!r})"


SHA256 = Sha256Hasher()


def get_hash_algorithm(name: str | None = None) -> HashAlgorithm:
    """
    Resolve a hash algorithm by name.

    Args:
        name: Algorithm name; None or "sha256" gives the default

    Returns:
        A HashAlgorithm instance
    """
    if name is None or name.lower() == DEFAULT_HASH_ALGORITHM:
        return SHA256
    return HashlibHasher(name)


def hash_concat(hasher: HashAlgorithm, left: bytes, right: bytes) -> bytes:
    """
    Hash the concatenation of two digests.

    This is the Merkle parent rule: parent = H(left + right).
    Order is positional and never sorted.
    """
    return hasher.digest(left + right)


def to_hex(data: bytes) -> str:
    """
    Convert a digest to a lowercase hex string (no prefix).

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        'deadbeef'
    """
    return data.hex()


def from_hex(hex_string: str, *, digest_size: int | None = None) -> bytes:
    """
    Convert a hex string to bytes.

    An optional ``0x`` prefix is accepted.

    Args:
        hex_string: Hex digest
        digest_size: If given, the decoded length must match

    Raises:
        InvalidDigestException: If the string is not valid hex, has odd
            length, or has the wrong length for ``digest_size``
    """
    hex_content = hex_string.strip()
    if hex_content[:2].lower() == "0x":
        hex_content = hex_content[2:]

    if not hex_content:
        raise InvalidDigestException(hex_string, reason="empty digest")

    if len(hex_content) % 2 != 0:
        raise InvalidDigestException(
            hex_string, reason=f"odd length {len(hex_content)}"
        )

    try:
        data = bytes.fromhex(hex_content)
    except ValueError as e:
        raise InvalidDigestException(hex_string, reason=str(e)) from e

    if digest_size is not None and len(data) != digest_size:
        raise InvalidDigestException(
            hex_string,
            reason=f"expected {digest_size} bytes, got {len(data)}",
        )
    return data


def normalize_hex(hex_string: str) -> str:
    """Canonical form of a hex digest: lowercase, no prefix."""
    return to_hex(from_hex(hex_string))


__all__ = [
    "DEFAULT_HASH_ALGORITHM",
    "HashAlgorithm",
    "Sha256Hasher",
    "HashlibHasher",
    "SHA256",
    "get_hash_algorithm",
    "hash_concat",
    "to_hex",
    "from_hex",
    "normalize_hex",
]
