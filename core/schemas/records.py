"""
Persisted Record Schemas

Durable metadata owned by each side:

- UploadRecord / UploadIndexData: the client's trusted roots and the
  filenames uploaded under each (append-only, one record per distinct
  root and filename list)
- ManifestEntry / BatchManifest: the server's per-batch leaf order and leaf
  digests, enough to regenerate any proof without trusting list order
"""

from datetime import datetime, timezone
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.hashing import DEFAULT_HASH_ALGORITHM


INDEX_FORMAT_VERSION = 1
MANIFEST_FORMAT_VERSION = 1


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class UploadRecord(BaseModel):
    """
    A successfully uploaded batch, as remembered by the client.

    Never mutated once created.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = Field(..., description="Hex root digest of the batch")
    filenames: tuple[str, ...] = Field(
        ...,
        description="Filenames in leaf order",
    )
    hash_algorithm: str = Field(default=DEFAULT_HASH_ALGORITHM)
    uploaded_at: str = Field(default_factory=utc_now_iso)


class UploadIndexData(BaseModel):
    """On-disk shape of the client upload index."""

    model_config = ConfigDict(extra="forbid")

    version: int = INDEX_FORMAT_VERSION
    uploads: list[UploadRecord] = Field(default_factory=list)


class ManifestEntry(BaseModel):
    """One leaf of a stored batch."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(..., ge=0)
    filename: str
    leaf: str = Field(..., description="Hex digest of the file bytes")
    size: int = Field(..., ge=0)


class BatchManifest(BaseModel):
    """
    Server-side description of one stored batch.

    ``entries`` are kept in leaf order and carry their own index and digest,
    so the tree can be rebuilt exactly as it was hashed at upload time.
    ``aliases`` holds the filename lists of later uploads of the same bytes
    under other names; each list names the same leaves in the same order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: int = MANIFEST_FORMAT_VERSION
    root: str
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    entries: tuple[ManifestEntry, ...] = Field(default_factory=tuple)
    aliases: tuple[tuple[str, ...], ...] = Field(default_factory=tuple)
    stored_at: str = Field(default_factory=utc_now_iso)

    @property
    def filenames(self) -> list[str]:
        return [e.filename for e in self.entries]

    @property
    def filename_lists(self) -> list[list[str]]:
        """Every uploaded filename list, first upload first."""
        return [self.filenames, *(list(names) for names in self.aliases)]

    def entry_for(self, filename: str) -> ManifestEntry | None:
        for names in self.filename_lists:
            if filename in names:
                entry = self.entries[names.index(filename)]
                if entry.filename != filename:
                    entry = entry.model_copy(update={"filename": filename})
                return entry
        return None

    def with_alias(self, filenames: Sequence[str]) -> "BatchManifest":
        return self.model_copy(update={"aliases": (*self.aliases, tuple(filenames))})
