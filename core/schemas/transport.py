"""
Transport Schemas

Messages exchanged between the client and the server:

- UploadRequest{root, [(filename, bytes)]} -> UploadAck
- DownloadRequest{root, filename} -> DownloadResponse{bytes, proof}
- ListRequest{} -> ListResponse{[(root, [filenames])]}

File bytes travel base64-encoded; digests travel as lowercase hex.
"""

import base64
import binascii
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.merkle.merkle_proofs import MerkleProof, ProofStep, Side
from core.crypto.hashing import DEFAULT_HASH_ALGORITHM, from_hex, to_hex
from core.schemas.errors import InvalidDigestException


def encode_content(content: bytes) -> str:
    """Base64-encode raw file bytes for the wire."""
    return base64.b64encode(content).decode("ascii")


def decode_content(value: str) -> bytes:
    """Decode base64 file bytes, rejecting malformed input."""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"content is not valid base64: {e}") from e


def is_safe_filename(name: str) -> bool:
    """
    Check that ``name`` is a bare file name.

    Files are addressed by name inside a batch, so names must not carry
    path components.
    """
    if not name or name in (".", ".."):
        return False
    return not any(ch in name for ch in ("/", "\\", "\0"))


def _check_hex(value: str) -> str:
    try:
        return to_hex(from_hex(value))
    except InvalidDigestException as e:
        raise ValueError(e.message) from e


class FileEntry(BaseModel):
    """One file of an upload batch."""

    model_config = ConfigDict(extra="forbid")

    filename: str = Field(
        ...,
        description="Bare file name, unique within the batch",
        min_length=1,
        max_length=255,
    )
    content_b64: str = Field(
        ...,
        description="Raw file bytes, base64-encoded",
    )

    @field_validator("content_b64")
    @classmethod
    def _validate_content(cls, value: str) -> str:
        decode_content(value)
        return value

    @property
    def content(self) -> bytes:
        return decode_content(self.content_b64)

    @classmethod
    def from_bytes(cls, filename: str, content: bytes) -> "FileEntry":
        return cls(filename=filename, content_b64=encode_content(content))


class UploadRequest(BaseModel):
    """
    A whole batch, in leaf order.

    The order of ``files`` is the order the tree was built in; it determines
    every leaf index and must be preserved end to end.
    """

    model_config = ConfigDict(extra="forbid")

    root: str = Field(
        ...,
        description="Hex root digest computed by the client",
    )
    hash_algorithm: str = Field(
        default=DEFAULT_HASH_ALGORITHM,
        description="Name of the hash algorithm used to build the tree",
    )
    files: list[FileEntry] = Field(
        default_factory=list,
        description="Batch files in leaf order",
    )

    @field_validator("root")
    @classmethod
    def _validate_root(cls, value: str) -> str:
        return _check_hex(value)

    @property
    def filenames(self) -> list[str]:
        return [f.filename for f in self.files]


class UploadAck(BaseModel):
    """Server acknowledgment of a stored batch."""

    model_config = ConfigDict(extra="forbid")

    ok: bool = True
    root: str = Field(..., description="Root the batch was stored under")
    file_count: int = Field(..., ge=0)
    created: bool = Field(
        default=True,
        description="False when the batch was already stored (idempotent repeat)",
    )


class ProofStepModel(BaseModel):
    """Wire form of one proof step."""

    model_config = ConfigDict(extra="forbid")

    sibling: str = Field(..., description="Hex sibling digest")
    side: Literal["left", "right"]

    @field_validator("sibling")
    @classmethod
    def _validate_sibling(cls, value: str) -> str:
        return _check_hex(value)


class ProofModel(BaseModel):
    """Wire form of an inclusion proof, sides tagged explicitly."""

    model_config = ConfigDict(extra="forbid")

    leaf_index: int = Field(..., ge=0)
    steps: list[ProofStepModel] = Field(default_factory=list)

    def to_proof(self) -> MerkleProof:
        return MerkleProof(
            leaf_index=self.leaf_index,
            steps=tuple(
                ProofStep(sibling=from_hex(s.sibling), side=Side(s.side))
                for s in self.steps
            ),
        )

    @classmethod
    def from_proof(cls, proof: MerkleProof) -> "ProofModel":
        return cls.model_validate(proof.to_dict())


class DownloadRequest(BaseModel):
    """Request for one file of a batch."""

    model_config = ConfigDict(extra="forbid")

    root: str
    filename: str = Field(..., min_length=1)

    @field_validator("root")
    @classmethod
    def _validate_root(cls, value: str) -> str:
        return _check_hex(value)


class DownloadResponse(BaseModel):
    """File bytes plus the inclusion proof the client must check."""

    model_config = ConfigDict(extra="forbid")

    root: str
    filename: str
    leaf_index: int = Field(..., ge=0)
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    content_b64: str
    proof: ProofModel

    @field_validator("content_b64")
    @classmethod
    def _validate_content(cls, value: str) -> str:
        decode_content(value)
        return value

    @property
    def content(self) -> bytes:
        return decode_content(self.content_b64)


class BatchSummary(BaseModel):
    """A stored batch: its root and filenames in leaf order."""

    model_config = ConfigDict(extra="forbid")

    root: str
    filenames: list[str] = Field(default_factory=list)
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM


class ListResponse(BaseModel):
    """All batches known to the server."""

    model_config = ConfigDict(extra="forbid")

    batches: list[BatchSummary] = Field(default_factory=list)
