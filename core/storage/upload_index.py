"""
Client Upload Index

The client's local source of truth for trusted roots: which batches it
uploaded and the filenames in each, in leaf order.

The index is loaded once at startup and rewritten in full after every
successful upload (temp file + atomic rename), so a crash mid-write never
corrupts previously recorded entries.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from core.crypto.hashing import normalize_hex
from core.schemas.errors import NotFoundException, StorageException
from core.schemas.records import UploadIndexData, UploadRecord


logger = logging.getLogger(__name__)


class UploadIndex:
    """
    Append-only, file-backed list of UploadRecords.

    Usage:
        index = UploadIndex("uploads.json")
        index.append(UploadRecord(root=root_hex, filenames=("a.txt",)))
        record = index.resolve_root("a.txt")
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data = self._read()

    def _read(self) -> UploadIndexData:
        if not self.path.exists():
            return UploadIndexData()
        try:
            data = UploadIndexData.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            raise StorageException(
                f"Upload index {self.path} is unreadable: {e}",
                details={"path": str(self.path)},
            ) from e
        logger.debug(f"Loaded {len(data.uploads)} upload records from {self.path}")
        return data

    def _write(self, data: UploadIndexData) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise StorageException(f"Cannot write upload index {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageException(f"Cannot write upload index {self.path}: {e}") from e

    def load(self) -> None:
        """Re-read the index from disk, dropping the in-memory copy."""
        data = self._read()
        with self._lock:
            self._data = data

    @property
    def records(self) -> list[UploadRecord]:
        with self._lock:
            return list(self._data.uploads)

    def get(self, root: str, filename: str | None = None) -> UploadRecord | None:
        """
        The most recent upload under ``root``.

        The same bytes may have been uploaded under several filename lists;
        with ``filename`` given, only records naming that file match.
        """
        root_hex = normalize_hex(root)
        with self._lock:
            for record in reversed(self._data.uploads):
                if record.root != root_hex:
                    continue
                if filename is None or filename in record.filenames:
                    return record
        return None

    def append(self, record: UploadRecord) -> bool:
        """
        Record a completed upload.

        Returns:
            False if this root was already recorded with the same filenames
            (nothing written)

        Raises:
            StorageException: If the index file cannot be written; the
                in-memory index is left unchanged
        """
        with self._lock:
            if any(
                r.root == record.root and r.filenames == record.filenames
                for r in self._data.uploads
            ):
                return False
            updated = UploadIndexData(
                version=self._data.version,
                uploads=[*self._data.uploads, record],
            )
            self._write(updated)
            self._data = updated
        logger.info(f"Recorded upload {record.root} ({len(record.filenames)} files)")
        return True

    def find_roots(self, filename: str) -> list[str]:
        """Roots whose batch contains ``filename``, newest first."""
        with self._lock:
            roots = [
                r.root for r in reversed(self._data.uploads) if filename in r.filenames
            ]
        return list(dict.fromkeys(roots))

    def resolve_root(self, filename: str) -> UploadRecord:
        """
        The most recent upload containing ``filename``.

        Raises:
            NotFoundException: If no recorded batch contains the file
        """
        with self._lock:
            for record in reversed(self._data.uploads):
                if filename in record.filenames:
                    return record
        raise NotFoundException(
            f"No uploaded batch contains {filename!r}", filename=filename
        )
