"""
Error Taxonomy

Standard error taxonomy shared by the client, the server store and the
HTTP API. Defines both a Pydantic model for structured error communication
over the wire and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes."""

    # Tree construction
    EMPTY_INPUT = "EMPTY_INPUT"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"

    # Integrity
    INTEGRITY_MISMATCH = "INTEGRITY_MISMATCH"
    ROOT_MISMATCH = "ROOT_MISMATCH"
    INVALID_PROOF = "INVALID_PROOF"
    INVALID_DIGEST = "INVALID_DIGEST"
    UNSUPPORTED_HASH_ALGORITHM = "UNSUPPORTED_HASH_ALGORITHM"

    # Storage
    NOT_FOUND = "NOT_FOUND"
    BATCH_CONFLICT = "BATCH_CONFLICT"
    STORAGE_ERROR = "STORAGE_ERROR"
    SOURCE_READ_ERROR = "SOURCE_READ_ERROR"

    # Requests & transport
    INVALID_REQUEST = "INVALID_REQUEST"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class MerkleVaultError(BaseModel):
    """
    Error model for structured error communication.

    This is the wire form of every MerkleVaultException: the server
    serializes it into error responses and the client turns it back into
    the matching exception with ``to_exception``.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.NOT_FOUND],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the caller may retry the operation",
    )

    def to_exception(self) -> "MerkleVaultException":
        """Convert this error model to the matching exception type."""
        exc_type = EXCEPTIONS_BY_CODE.get(self.code, MerkleVaultException)
        exc = MerkleVaultException.__new__(exc_type)
        MerkleVaultException.__init__(
            exc,
            message=self.message,
            code=self.code,
            details=dict(self.details),
            retryable=self.retryable,
        )
        return exc


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class MerkleVaultException(Exception):
    """
    Base exception for all MerkleVault errors.

    Carries structured error information and can be converted to/from
    MerkleVaultError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "MERKLEVAULT_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> MerkleVaultError:
        """Convert this exception to a MerkleVaultError model."""
        return MerkleVaultError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class EmptyInputException(MerkleVaultException):
    """Raised when a tree or batch is built from zero blocks."""

    def __init__(self, message: str = "Cannot build a Merkle tree from zero blocks") -> None:
        super().__init__(message=message, code=ErrorCodes.EMPTY_INPUT)


class IndexOutOfRangeException(MerkleVaultException):
    """Raised when a proof is requested for a leaf that does not exist."""

    def __init__(self, index: int, leaf_count: int) -> None:
        super().__init__(
            message=f"Leaf index {index} out of range for {leaf_count} leaves",
            code=ErrorCodes.INDEX_OUT_OF_RANGE,
            details={"index": index, "leaf_count": leaf_count},
        )


class IntegrityMismatchException(MerkleVaultException):
    """
    Raised when downloaded (or stored) bytes fail proof verification.

    This is a security-relevant event, never a transient fault.
    """

    def __init__(
        self,
        message: str,
        root: str | None = None,
        filename: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if root:
            full_details["root"] = root
        if filename:
            full_details["filename"] = filename
        super().__init__(
            message=message,
            code=ErrorCodes.INTEGRITY_MISMATCH,
            details=full_details,
            retryable=False,
        )


class RootMismatchException(MerkleVaultException):
    """Raised when a recomputed root disagrees with the claimed root."""

    def __init__(self, claimed: str, computed: str) -> None:
        super().__init__(
            message=f"Root mismatch: claimed {claimed}, computed {computed}",
            code=ErrorCodes.ROOT_MISMATCH,
            details={"claimed": claimed, "computed": computed},
        )


class InvalidProofException(MerkleVaultException):
    """Raised when a serialized proof cannot be parsed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_PROOF,
            details=details,
        )


class InvalidDigestException(MerkleVaultException):
    """Raised when a hex digest string is malformed."""

    def __init__(self, value: str, reason: str = "") -> None:
        shown = value if len(value) <= 80 else value[:77] + "..."
        message = f"Invalid digest {shown!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_DIGEST,
            details={"value": shown, "reason": reason},
        )


class UnsupportedHashAlgorithmException(MerkleVaultException):
    """Raised when a hash algorithm name cannot be resolved."""

    def __init__(self, name: str, reason: str = "unknown algorithm") -> None:
        super().__init__(
            message=f"Unsupported hash algorithm {name!r}: {reason}",
            code=ErrorCodes.UNSUPPORTED_HASH_ALGORITHM,
            details={"name": name},
        )


class NotFoundException(MerkleVaultException):
    """Raised when no blob (or record) exists for the requested key."""

    def __init__(
        self,
        message: str,
        root: str | None = None,
        filename: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if root:
            details["root"] = root
        if filename:
            details["filename"] = filename
        super().__init__(
            message=message,
            code=ErrorCodes.NOT_FOUND,
            details=details,
            retryable=False,
        )


class BatchConflictException(MerkleVaultException):
    """Raised when an upload would change a file already stored under its root."""

    def __init__(
        self,
        root: str,
        existing: list[str],
        incoming: list[str],
        reason: str | None = None,
    ) -> None:
        message = f"Batch {root} conflicts with the stored batch"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code=ErrorCodes.BATCH_CONFLICT,
            details={"root": root, "existing": existing, "incoming": incoming},
        )


class StorageException(MerkleVaultException):
    """Raised when the blob store cannot read or write its files."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.STORAGE_ERROR,
            details=details,
        )


class SourceReadException(MerkleVaultException):
    """Raised when a local file of an upload batch cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message=f"Cannot read {path}: {reason}",
            code=ErrorCodes.SOURCE_READ_ERROR,
            details={"path": path},
        )


class InvalidRequestException(MerkleVaultException):
    """Raised when a request is structurally invalid."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_REQUEST,
            details=details,
        )


class TransportException(MerkleVaultException):
    """
    Raised when the connection to the server fails (refused, timeout, ...).

    Marked retryable; the core itself never retries.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if status_code is not None:
            full_details["status_code"] = status_code
        super().__init__(
            message=message,
            code=ErrorCodes.TRANSPORT_ERROR,
            details=full_details,
            retryable=True,
        )


EXCEPTIONS_BY_CODE: dict[str, type[MerkleVaultException]] = {
    ErrorCodes.EMPTY_INPUT: EmptyInputException,
    ErrorCodes.INDEX_OUT_OF_RANGE: IndexOutOfRangeException,
    ErrorCodes.INTEGRITY_MISMATCH: IntegrityMismatchException,
    ErrorCodes.ROOT_MISMATCH: RootMismatchException,
    ErrorCodes.INVALID_PROOF: InvalidProofException,
    ErrorCodes.INVALID_DIGEST: InvalidDigestException,
    ErrorCodes.UNSUPPORTED_HASH_ALGORITHM: UnsupportedHashAlgorithmException,
    ErrorCodes.NOT_FOUND: NotFoundException,
    ErrorCodes.BATCH_CONFLICT: BatchConflictException,
    ErrorCodes.STORAGE_ERROR: StorageException,
    ErrorCodes.SOURCE_READ_ERROR: SourceReadException,
    ErrorCodes.INVALID_REQUEST: InvalidRequestException,
    ErrorCodes.TRANSPORT_ERROR: TransportException,
}
