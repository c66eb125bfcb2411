"""
Core cryptographic utilities.

Pluggable hash algorithms and digest hex helpers.
"""
from .hashing import (
    DEFAULT_HASH_ALGORITHM,
    HashAlgorithm,
    Sha256Hasher,
    HashlibHasher,
    SHA256,
    get_hash_algorithm,
    hash_concat,
    to_hex,
    from_hex,
    normalize_hex,
)

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
