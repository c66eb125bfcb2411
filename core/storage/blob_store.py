"""
Server Blob Store

Persists uploaded batches and answers download requests with the file
bytes plus a freshly rebuilt inclusion proof.

On-disk layout:

    <store>/<root hex>/manifest.json     BatchManifest (leaf order + digests)
    <store>/<root hex>/blobs/<index>     raw file bytes

Write Rules:
- A batch is written to a staging directory, fsynced, then published with
  a single directory rename; readers never observe a partially written batch
- Each (root, filename) key is written once and never changed. The first
  published batch fixes the leaves of a root. A later upload of the same
  bytes under other names is recorded as an alias of that batch; an upload
  that would move a stored name to another leaf is a BatchConflictException
- Writes are serialized per root through a fixed set of lock stripes
"""
from __future__ import annotations

import logging
import os
import shutil
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from core.crypto.hashing import (
    DEFAULT_HASH_ALGORITHM,
    from_hex,
    get_hash_algorithm,
    normalize_hex,
    to_hex,
)
from core.merkle import MerkleProof, MerkleTree
from core.schemas.errors import (
    BatchConflictException,
    EmptyInputException,
    IntegrityMismatchException,
    InvalidRequestException,
    NotFoundException,
    RootMismatchException,
    StorageException,
)
from core.schemas.records import BatchManifest, ManifestEntry
from core.schemas.transport import is_safe_filename


logger = logging.getLogger(__name__)


MANIFEST_FILE = "manifest.json"
BLOBS_DIR = "blobs"
STAGING_PREFIX = ".staging-"
TEMP_SUFFIX = ".tmp"
LOCK_STRIPES = 64


@dataclass(frozen=True)
class StoredFile:
    """A file served from the store, with the proof for its leaf."""
    root: str
    filename: str
    leaf_index: int
    hash_algorithm: str
    content: bytes
    proof: MerkleProof


@dataclass(frozen=True)
class StoreResult:
    """Outcome of ``store_batch``."""
    manifest: BatchManifest
    created: bool


def _root_key(root: str | bytes) -> str:
    if isinstance(root, bytes):
        return to_hex(root)
    return normalize_hex(root)


def _write_synced(path: Path, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def _sync_dir(path: Path) -> None:
    """Flush a directory entry table to disk (POSIX only)."""
    if os.name != "posix":
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _alias_conflict(existing: BatchManifest, incoming: BatchManifest) -> str | None:
    """
    Why ``incoming`` cannot be added as an alias of ``existing``, if it can't.

    The leaves must be identical, and every name already stored under the
    root must keep its leaf.
    """
    if existing.hash_algorithm != incoming.hash_algorithm:
        return f"stored with {existing.hash_algorithm}, not {incoming.hash_algorithm}"
    if [e.leaf for e in existing.entries] != [e.leaf for e in incoming.entries]:
        return "stored leaves differ from the uploaded files"
    for entry in incoming.entries:
        current = existing.entry_for(entry.filename)
        if current is not None and current.index != entry.index:
            return f"{entry.filename!r} is stored as leaf {current.index}, not {entry.index}"
    return None


class ServerStore:
    """
    Filesystem-backed store of uploaded batches.

    Usage:
        store = ServerStore("server_store")
        store.store_batch(root_hex, [("a.txt", b"hello"), ("b.txt", b"world")])
        stored = store.fetch(root_hex, "a.txt")
    """

    def __init__(self, root_dir: str | Path, *, verify_uploads: bool = True) -> None:
        """
        Open (or create) a store and load every published manifest.

        Args:
            root_dir: Directory holding one sub-directory per batch
            verify_uploads: Recompute each uploaded tree and reject batches
                whose claimed root disagrees
        """
        self.root_dir = Path(root_dir)
        self.verify_uploads = verify_uploads
        self._index_lock = threading.Lock()
        self._root_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        self._manifests: dict[str, BatchManifest] = {}
        self._open()

    # ------------------------------------------------------------------
    # Startup

    def _open(self) -> None:
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageException(
                f"Cannot create store directory {self.root_dir}: {e}"
            ) from e

        for child in sorted(self.root_dir.iterdir()):
            if child.name.startswith(STAGING_PREFIX):
                logger.warning(f"Removing stale staging directory {child.name}")
                shutil.rmtree(child, ignore_errors=True)
                continue
            if not child.is_dir():
                continue
            for leftover in child.glob(f".{MANIFEST_FILE}.*{TEMP_SUFFIX}"):
                logger.warning(f"Removing unfinished manifest write {child.name}/{leftover.name}")
                leftover.unlink(missing_ok=True)
            manifest = self._read_manifest(child)
            if manifest is not None:
                self._manifests[manifest.root] = manifest

        logger.info(
            f"Opened blob store at {self.root_dir} with {len(self._manifests)} batches"
        )

    def _read_manifest(self, batch_dir: Path) -> BatchManifest | None:
        manifest_path = batch_dir / MANIFEST_FILE
        if not manifest_path.exists():
            logger.warning(f"Skipping {batch_dir.name}: no manifest")
            return None
        try:
            manifest = BatchManifest.model_validate_json(manifest_path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error(f"Skipping {batch_dir.name}: unreadable manifest: {e}")
            return None

        if manifest.root != batch_dir.name:
            logger.error(
                f"Skipping {batch_dir.name}: manifest root {manifest.root} does not match directory"
            )
            return None
        if [e.index for e in manifest.entries] != list(range(len(manifest.entries))):
            logger.error(f"Skipping {batch_dir.name}: manifest entries out of order")
            return None
        for names in manifest.aliases:
            if len(names) != len(manifest.entries) or len(set(names)) != len(names):
                logger.error(f"Skipping {batch_dir.name}: malformed alias {list(names)}")
                return None
        return manifest

    # ------------------------------------------------------------------
    # Upload

    def _lock_for(self, root_hex: str) -> threading.Lock:
        return self._root_locks[hash(root_hex) % LOCK_STRIPES]

    def store_batch(
        self,
        root: str | bytes,
        files: Sequence[tuple[str, bytes]],
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> StoreResult:
        """
        Persist a batch under its root.

        Args:
            root: Root claimed by the client (hex or raw digest)
            files: (filename, bytes) pairs in leaf order
            hash_algorithm: Algorithm the client built the tree with

        Returns:
            StoreResult with the published manifest; ``created`` is False
            only when this exact file list was already stored

        Raises:
            EmptyInputException: If ``files`` is empty
            InvalidRequestException: For unsafe or duplicate filenames
            RootMismatchException: If uploads are verified and the
                recomputed root disagrees with ``root``
            BatchConflictException: If a name is already stored under the
                root at another leaf, or the root holds other leaves
            StorageException: If the batch cannot be written
        """
        root_hex = _root_key(root)
        if not files:
            raise EmptyInputException("Upload batch contains no files")

        filenames = [name for name, _ in files]
        for name in filenames:
            if not is_safe_filename(name):
                raise InvalidRequestException(
                    f"Invalid filename {name!r}", details={"filename": name}
                )
        if len(set(filenames)) != len(filenames):
            raise InvalidRequestException(
                "Duplicate filenames in batch", details={"filenames": filenames}
            )

        hasher = get_hash_algorithm(hash_algorithm)
        tree = MerkleTree.build((content for _, content in files), hasher)
        if tree.root_hex != root_hex:
            if self.verify_uploads:
                logger.warning(
                    f"Rejecting batch: claimed root {root_hex}, computed {tree.root_hex}"
                )
                raise RootMismatchException(claimed=root_hex, computed=tree.root_hex)
            logger.warning(
                f"Storing batch under unverified root {root_hex} (computed {tree.root_hex})"
            )

        manifest = BatchManifest(
            root=root_hex,
            hash_algorithm=hasher.name,
            entries=tuple(
                ManifestEntry(
                    index=i,
                    filename=name,
                    leaf=to_hex(leaf),
                    size=len(content),
                )
                for i, ((name, content), leaf) in enumerate(zip(files, tree.leaves))
            ),
        )

        with self._lock_for(root_hex):
            existing = self.get_manifest(root_hex)
            if existing is None:
                existing = self._publish(manifest, [content for _, content in files])
                if existing is manifest:
                    with self._index_lock:
                        self._manifests[root_hex] = manifest
                    logger.info(f"Stored batch {root_hex} ({len(files)} files)")
                    return StoreResult(manifest=manifest, created=True)

            if filenames in existing.filename_lists:
                logger.info(f"Batch {root_hex} already stored, upload is a no-op")
                return StoreResult(manifest=existing, created=False)

            reason = _alias_conflict(existing, manifest)
            if reason is not None:
                logger.warning(f"Rejecting batch {root_hex}: {reason}")
                raise BatchConflictException(
                    root=root_hex,
                    existing=existing.filenames,
                    incoming=filenames,
                    reason=reason,
                )

            updated = self._add_alias(existing, filenames)
            with self._index_lock:
                self._manifests[root_hex] = updated
            logger.info(f"Stored batch {root_hex} under new names {filenames}")
            return StoreResult(manifest=updated, created=True)

    def _add_alias(self, manifest: BatchManifest, filenames: list[str]) -> BatchManifest:
        """Record another filename list for a published batch."""
        batch_dir = self.root_dir / manifest.root
        updated = manifest.with_alias(filenames)
        tmp_path = batch_dir / f".{MANIFEST_FILE}.{uuid.uuid4().hex}{TEMP_SUFFIX}"
        try:
            _write_synced(tmp_path, updated.model_dump_json(indent=2).encode("utf-8"))
            os.replace(tmp_path, batch_dir / MANIFEST_FILE)
            _sync_dir(batch_dir)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageException(
                f"Failed to update manifest of batch {manifest.root}: {e}",
                details={"root": manifest.root},
            ) from e
        return updated

    def _publish(self, manifest: BatchManifest, contents: list[bytes]) -> BatchManifest:
        """
        Write a batch to staging and rename it into place.

        Returns ``manifest`` when this call published the batch, or the
        manifest already on disk when another writer got there first.
        """
        final_dir = self.root_dir / manifest.root
        staging_dir = self.root_dir / f"{STAGING_PREFIX}{manifest.root}-{uuid.uuid4().hex}"
        try:
            blobs_dir = staging_dir / BLOBS_DIR
            blobs_dir.mkdir(parents=True)
            for entry, content in zip(manifest.entries, contents):
                _write_synced(blobs_dir / str(entry.index), content)
            _write_synced(
                staging_dir / MANIFEST_FILE,
                manifest.model_dump_json(indent=2).encode("utf-8"),
            )
            _sync_dir(blobs_dir)
            _sync_dir(staging_dir)
        except OSError as e:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise StorageException(
                f"Failed to write batch {manifest.root}: {e}",
                details={"root": manifest.root},
            ) from e

        try:
            os.rename(staging_dir, final_dir)
        except OSError as e:
            shutil.rmtree(staging_dir, ignore_errors=True)
            if final_dir.is_dir():
                # Another process published the same root first
                winner = self._read_manifest(final_dir)
                if winner is not None:
                    with self._index_lock:
                        self._manifests[winner.root] = winner
                    return winner
            raise StorageException(
                f"Failed to publish batch {manifest.root}: {e}",
                details={"root": manifest.root},
            ) from e

        try:
            _sync_dir(self.root_dir)
        except OSError as e:
            logger.warning(f"Published batch {manifest.root} but could not sync {self.root_dir}: {e}")
        return manifest

    # ------------------------------------------------------------------
    # Download

    def get_manifest(self, root: str | bytes) -> BatchManifest | None:
        root_hex = _root_key(root)
        with self._index_lock:
            return self._manifests.get(root_hex)

    def list_batches(self) -> list[BatchManifest]:
        """All published batches, oldest first."""
        with self._index_lock:
            manifests = list(self._manifests.values())
        return sorted(manifests, key=lambda m: (m.stored_at, m.root))

    def fetch(self, root: str | bytes, filename: str) -> StoredFile:
        """
        Read one file and rebuild the proof for its leaf.

        The tree is rebuilt from the persisted leaf digests. Before serving,
        the rebuilt root is checked against the batch root and the blob is
        checked against its recorded leaf.

        Raises:
            NotFoundException: If the root or filename is unknown
            IntegrityMismatchException: If the stored data is inconsistent
        """
        root_hex = _root_key(root)
        manifest = self.get_manifest(root_hex)
        if manifest is None:
            raise NotFoundException(
                f"No batch stored under root {root_hex}", root=root_hex, filename=filename
            )

        entry = manifest.entry_for(filename)
        if entry is None:
            raise NotFoundException(
                f"File {filename!r} not found under root {root_hex}",
                root=root_hex,
                filename=filename,
            )

        blob_path = self.root_dir / root_hex / BLOBS_DIR / str(entry.index)
        try:
            content = blob_path.read_bytes()
        except FileNotFoundError as e:
            logger.error(f"Blob missing for {root_hex}/{filename} at {blob_path}")
            raise NotFoundException(
                f"Blob for {filename!r} is missing from the store",
                root=root_hex,
                filename=filename,
            ) from e
        except OSError as e:
            raise StorageException(
                f"Failed to read blob {blob_path}: {e}",
                details={"root": root_hex, "filename": filename},
            ) from e

        hasher = get_hash_algorithm(manifest.hash_algorithm)
        leaves = [from_hex(e.leaf) for e in manifest.entries]
        tree = MerkleTree.from_leaves(leaves, hasher)

        if tree.root_hex != root_hex:
            logger.error(f"Stored leaves for {root_hex} rebuild to {tree.root_hex}")
            raise IntegrityMismatchException(
                "Stored batch does not rebuild to its root",
                root=root_hex,
                details={"computed": tree.root_hex},
            )
        if hasher.digest(content) != leaves[entry.index]:
            logger.error(f"Blob {root_hex}/{filename} does not match its leaf digest")
            raise IntegrityMismatchException(
                "Stored blob does not match its leaf digest",
                root=root_hex,
                filename=filename,
            )

        return StoredFile(
            root=root_hex,
            filename=filename,
            leaf_index=entry.index,
            hash_algorithm=hasher.name,
            content=content,
            proof=tree.proof(entry.index),
        )
