"""
Download Protocol

Client-side retrieval: request one file under a trusted root, verify the
returned proof against that root, and only then write the bytes locally.

A failed verification raises IntegrityMismatchException and nothing is
written. It is never retried or downgraded to a warning.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from core.crypto.hashing import SHA256, HashAlgorithm, from_hex, get_hash_algorithm, normalize_hex
from core.merkle import verify_proof
from core.schemas.errors import (
    IntegrityMismatchException,
    InvalidRequestException,
    StorageException,
)
from core.schemas.transport import is_safe_filename
from core.storage import UploadIndex

from client.connection import ServerConnection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadResult:
    """A verified and written download."""
    path: Path
    root: str
    filename: str
    leaf_index: int
    size: int


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_atomic(path: Path, content: bytes) -> None:
    """
    Write ``content`` to ``path`` via a temp file and an atomic rename.

    The file gets the mode a plain ``open()`` would give it, not the 0600
    of the temp file.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    except OSError as e:
        raise StorageException(f"Cannot write {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise StorageException(f"Cannot write {path}: {e}") from e


class DownloadProtocol:
    """
    Downloads files and checks them against trusted roots.

    Args:
        connection: Server binding
        index: Local upload index, used to resolve roots by filename
        hasher: Hash algorithm for roots the index does not know
        download_dir: Default directory for downloaded files
    """

    def __init__(
        self,
        connection: ServerConnection,
        index: UploadIndex,
        hasher: HashAlgorithm = SHA256,
        download_dir: str | Path = ".",
    ) -> None:
        self.connection = connection
        self.index = index
        self.hasher = hasher
        self.download_dir = Path(download_dir)

    def _target_path(self, filename: str, dest: str | Path | None) -> Path:
        if dest is not None:
            target = Path(dest)
            if target.is_dir():
                target = target / filename
            return target
        if not is_safe_filename(filename):
            raise InvalidRequestException(
                f"Refusing to write unsafe filename {filename!r}",
                details={"filename": filename},
            )
        return self.download_dir / filename

    def download(
        self,
        filename: str,
        root: str | None = None,
        dest: str | Path | None = None,
    ) -> DownloadResult:
        """
        Download ``filename`` from the batch ``root`` and verify it.

        Args:
            filename: Name of the file inside the batch
            root: Trusted root; looked up in the upload index when omitted
            dest: Output file or directory (default: download_dir/filename)

        Returns:
            DownloadResult with the resolved local path

        Raises:
            NotFoundException: If no root is known for the file, or the
                server has no such file
            IntegrityMismatchException: If verification fails
            TransportException: If the server cannot be reached
        """
        if root is None:
            record = self.index.resolve_root(filename)
            root_hex = record.root
        else:
            root_hex = normalize_hex(root)
            record = self.index.get(root_hex, filename) or self.index.get(root_hex)

        hasher = get_hash_algorithm(record.hash_algorithm) if record else self.hasher
        target = self._target_path(filename, dest)

        logger.info(f"Downloading {filename!r} from batch {root_hex}")
        response = self.connection.download(root_hex, filename)
        content = response.content
        proof = response.proof.to_proof()

        expected_index = None
        if record is not None and filename in record.filenames:
            expected_index = record.filenames.index(filename)

        problems: list[str] = []
        if response.filename != filename:
            problems.append(f"server answered for {response.filename!r}")
        if response.leaf_index != proof.leaf_index:
            problems.append("response leaf index disagrees with proof")
        if expected_index is not None and proof.leaf_index != expected_index:
            problems.append(
                f"proof is for leaf {proof.leaf_index}, file was uploaded as leaf {expected_index}"
            )
        if not verify_proof(proof, hasher.digest(content), from_hex(root_hex), hasher):
            problems.append("proof does not reproduce the trusted root")

        if problems:
            logger.error(
                f"Integrity check failed for {filename!r} under {root_hex}: {'; '.join(problems)}"
            )
            raise IntegrityMismatchException(
                f"Downloaded {filename!r} failed verification against root {root_hex}",
                root=root_hex,
                filename=filename,
                details={"problems": problems},
            )

        write_atomic(target, content)
        logger.info(f"Verified {filename!r} ({len(content)} bytes) -> {target}")
        return DownloadResult(
            path=target,
            root=root_hex,
            filename=filename,
            leaf_index=proof.leaf_index,
            size=len(content),
        )
