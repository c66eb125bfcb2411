"""
Upload Protocol

Client-side batching: hash a set of local files into one tree, send the
files to the server in leaf order, and record the root once the server has
acknowledged the batch.

Batches are all-or-nothing at the client boundary:
- any unreadable file aborts before anything is sent
- any transport or server failure leaves the upload index untouched
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from core.crypto.hashing import SHA256, HashAlgorithm, normalize_hex
from core.merkle import MerkleTree
from core.schemas.errors import (
    EmptyInputException,
    InvalidRequestException,
    RootMismatchException,
    SourceReadException,
)
from core.schemas.records import UploadRecord
from core.schemas.transport import FileEntry, UploadRequest, is_safe_filename
from core.storage import UploadIndex

from client.connection import ServerConnection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""
    root: str
    filenames: tuple[str, ...]
    hash_algorithm: str
    created: bool = True


def read_batch(paths: Sequence[str | Path]) -> list[tuple[str, bytes]]:
    """
    Read every file of a batch fully, in order.

    Files are named by their basename.

    Raises:
        SourceReadException: If any file cannot be read
        InvalidRequestException: If two paths share a basename
    """
    batch: list[tuple[str, bytes]] = []
    seen: set[str] = set()
    for path in paths:
        p = Path(path)
        try:
            content = p.read_bytes()
        except OSError as e:
            raise SourceReadException(str(p), e.strerror or str(e)) from e

        name = p.name
        if not is_safe_filename(name):
            raise InvalidRequestException(f"Invalid filename {name!r}", details={"path": str(p)})
        if name in seen:
            raise InvalidRequestException(
                f"Duplicate filename {name!r} in batch",
                details={"filename": name},
            )
        seen.add(name)
        batch.append((name, content))
    return batch


class UploadProtocol:
    """
    Uploads batches and records their roots.

    Args:
        connection: Server binding
        index: Local upload index (trusted roots)
        hasher: Hash algorithm for new trees
    """

    def __init__(
        self,
        connection: ServerConnection,
        index: UploadIndex,
        hasher: HashAlgorithm = SHA256,
    ) -> None:
        self.connection = connection
        self.index = index
        self.hasher = hasher

    def upload(self, paths: Sequence[str | Path]) -> UploadResult:
        """
        Upload ``paths`` as one batch.

        Returns:
            UploadResult carrying the batch root

        Raises:
            EmptyInputException: If ``paths`` is empty
            SourceReadException: If a file cannot be read (nothing is sent)
            RootMismatchException: If the server acknowledges another root
            TransportException: If the server cannot be reached
        """
        if not paths:
            raise EmptyInputException("No files given for upload")

        batch = read_batch(paths)
        tree = MerkleTree.build((content for _, content in batch), self.hasher)
        root_hex = tree.root_hex

        request = UploadRequest(
            root=root_hex,
            hash_algorithm=self.hasher.name,
            files=[FileEntry.from_bytes(name, content) for name, content in batch],
        )

        logger.info(f"Uploading {len(batch)} files as batch {root_hex}")
        ack = self.connection.upload(request)

        acked_root = normalize_hex(ack.root)
        if acked_root != root_hex:
            raise RootMismatchException(claimed=root_hex, computed=acked_root)

        filenames = tuple(name for name, _ in batch)
        self.index.append(
            UploadRecord(root=root_hex, filenames=filenames, hash_algorithm=self.hasher.name)
        )
        logger.info(f"Batch {root_hex} uploaded")
        return UploadResult(
            root=root_hex,
            filenames=filenames,
            hash_algorithm=self.hasher.name,
            created=ack.created,
        )
