"""
Schemas

Error taxonomy shared across the project. Transport messages and persisted
records live in ``core.schemas.transport`` and ``core.schemas.records`` and
are imported from there directly.
"""

from .errors import (
    BatchConflictException,
    EmptyInputException,
    ErrorCodes,
    IndexOutOfRangeException,
    IntegrityMismatchException,
    InvalidDigestException,
    InvalidProofException,
    InvalidRequestException,
    MerkleVaultError,
    MerkleVaultException,
    NotFoundException,
    RootMismatchException,
    SourceReadException,
    StorageException,
    TransportException,
    UnsupportedHashAlgorithmException,
)

__all__ = [
    "BatchConflictException",
    "EmptyInputException",
    "ErrorCodes",
    "IndexOutOfRangeException",
    "IntegrityMismatchException",
    "InvalidDigestException",
    "InvalidProofException",
    "InvalidRequestException",
    "MerkleVaultError",
    "MerkleVaultException",
    "NotFoundException",
    "RootMismatchException",
    "SourceReadException",
    "StorageException",
    "TransportException",
    "UnsupportedHashAlgorithmException",
]
