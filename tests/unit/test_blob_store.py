"""
Server Store Unit Tests
Tests for core/storage/blob_store.py

Tests:
1. Store then fetch returns the same bytes and a verifying proof
2. Hardened ingestion rejects a wrong claimed root
3. First write wins per (root, filename); same-list repeats are idempotent,
   renamed copies are stored, names moved to another leaf conflict
4. Restart reloads published batches and drops stale staging directories
5. On-disk corruption is detected at fetch time
"""
import json
import os
import threading

import pytest

from core.crypto.hashing import SHA256, from_hex, to_hex
from core.merkle import MerkleTree, verify_proof
from core.schemas.errors import (
    BatchConflictException,
    EmptyInputException,
    IntegrityMismatchException,
    InvalidRequestException,
    NotFoundException,
    RootMismatchException,
)
from core.storage import ServerStore
from core.storage.blob_store import (
    BLOBS_DIR,
    LOCK_STRIPES,
    MANIFEST_FILE,
    STAGING_PREFIX,
    TEMP_SUFFIX,
)


FILES = [("a", b"hello"), ("b", b"world"), ("c.txt", b"third file")]


def root_of(files):
    return MerkleTree.build(content for _, content in files).root_hex


class TestStoreAndFetch:
    def test_fetch_returns_content_and_proof(self, store):
        root = root_of(FILES)
        result = store.store_batch(root, FILES)

        assert result.created is True
        assert result.manifest.filenames == ["a", "b", "c.txt"]

        for i, (name, content) in enumerate(FILES):
            stored = store.fetch(root, name)
            assert stored.content == content
            assert stored.leaf_index == i
            assert verify_proof(stored.proof, SHA256.digest(content), from_hex(root))

    def test_root_accepts_prefix_and_bytes(self, store):
        root = root_of(FILES)
        store.store_batch("0x" + root.upper(), FILES)

        assert store.fetch(from_hex(root), "a").content == b"hello"

    def test_layout_on_disk(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)

        batch_dir = store.root_dir / root
        assert (batch_dir / MANIFEST_FILE).exists()
        assert (batch_dir / BLOBS_DIR / "1").read_bytes() == b"world"
        assert not any(p.name.startswith(STAGING_PREFIX) for p in store.root_dir.iterdir())

    def test_unknown_root(self, store):
        with pytest.raises(NotFoundException):
            store.fetch("ab" * 32, "a")

    def test_unknown_filename(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)

        with pytest.raises(NotFoundException, match="'d'"):
            store.fetch(root, "d")

    def test_list_batches(self, store):
        first = [("a", b"1")]
        second = [("b", b"2"), ("c", b"3")]
        store.store_batch(root_of(first), first)
        store.store_batch(root_of(second), second)

        roots = {m.root for m in store.list_batches()}
        assert roots == {root_of(first), root_of(second)}


class TestIngestion:
    def test_empty_batch(self, store):
        with pytest.raises(EmptyInputException):
            store.store_batch("00" * 32, [])

    def test_root_mismatch_rejected(self, store):
        wrong = to_hex(SHA256.digest(b"not the root"))

        with pytest.raises(RootMismatchException):
            store.store_batch(wrong, FILES)
        assert store.list_batches() == []

    def test_unverified_store_refuses_to_serve(self, tmp_path):
        """Without upload verification, a bad root is stored but never served."""
        store = ServerStore(tmp_path / "s", verify_uploads=False)
        wrong = to_hex(SHA256.digest(b"not the root"))
        store.store_batch(wrong, FILES)

        with pytest.raises(IntegrityMismatchException):
            store.fetch(wrong, "a")

    @pytest.mark.parametrize("files", [
        [("a", b"1"), ("a", b"2")],
        [("../evil", b"1")],
        [("dir/a", b"1")],
    ])
    def test_bad_filenames(self, store, files):
        with pytest.raises(InvalidRequestException):
            store.store_batch(root_of(files), files)

    def test_repeat_upload_is_idempotent(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)
        again = store.store_batch(root, FILES)

        assert again.created is False
        assert len(store.list_batches()) == 1

    def test_renamed_files_stored_under_same_root(self, store):
        """Same bytes under new names is a new batch sharing the root."""
        root = root_of(FILES)
        store.store_batch(root, FILES)
        renamed = [("x", b"hello"), ("y", b"world"), ("z", b"third file")]

        result = store.store_batch(root, renamed)

        assert result.created is True
        assert result.manifest.filename_lists == [["a", "b", "c.txt"], ["x", "y", "z"]]
        assert store.fetch(root, "a").content == b"hello"
        stored = store.fetch(root, "y")
        assert (stored.filename, stored.leaf_index, stored.content) == ("y", 1, b"world")
        assert verify_proof(stored.proof, SHA256.digest(b"world"), from_hex(root))

        assert store.store_batch(root, renamed).created is False
        assert len(store.list_batches()) == 1

    def test_partially_renamed_batch(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)

        store.store_batch(root, [("a", b"hello"), ("b2", b"world"), ("c.txt", b"third file")])
        assert store.fetch(root, "b2").leaf_index == 1
        assert store.fetch(root, "b").leaf_index == 1

    def test_stored_name_cannot_move_to_other_leaf(self, store):
        """First write wins for each (root, filename) key."""
        root = root_of(FILES)
        store.store_batch(root, FILES)
        swapped = [("b", b"hello"), ("a", b"world"), ("c.txt", b"third file")]

        with pytest.raises(BatchConflictException, match="'b' is stored as leaf 1"):
            store.store_batch(root, swapped)
        assert store.fetch(root, "a").content == b"hello"
        assert store.get_manifest(root).aliases == ()

    def test_unverified_root_with_other_leaves_conflicts(self, tmp_path):
        store = ServerStore(tmp_path / "s", verify_uploads=False)
        claimed = to_hex(SHA256.digest(b"claimed"))
        store.store_batch(claimed, [("a", b"1")])

        with pytest.raises(BatchConflictException, match="leaves differ"):
            store.store_batch(claimed, [("b", b"2")])

    def test_concurrent_uploads_of_same_root(self, store):
        root = root_of(FILES)
        results = []

        def upload():
            results.append(store.store_batch(root, FILES))

        threads = [threading.Thread(target=upload) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(r.created for r in results) == 1
        assert len(store.list_batches()) == 1

    def test_lock_stripes_are_bounded(self, store):
        roots = [to_hex(SHA256.digest(bytes([i]))) for i in range(200)]

        locks = {id(store._lock_for(root)) for root in roots}

        assert len(locks) <= LOCK_STRIPES
        assert store._lock_for(roots[0]) is store._lock_for(roots[0])
        assert len(store._root_locks) == LOCK_STRIPES

    def test_staged_files_are_synced(self, store, monkeypatch):
        synced = []
        real_fsync = os.fsync

        def recording_fsync(fd):
            synced.append(fd)
            real_fsync(fd)

        monkeypatch.setattr(os, "fsync", recording_fsync)
        store.store_batch(root_of(FILES), FILES)

        # three blobs, the manifest, both staging directories and the store root
        expected = len(FILES) + 1 + (3 if os.name == "posix" else 0)
        assert len(synced) == expected


class TestRestart:
    def test_batches_survive_reopen(self, tmp_path):
        path = tmp_path / "store"
        root = root_of(FILES)
        ServerStore(path).store_batch(root, FILES)

        reopened = ServerStore(path)
        assert reopened.fetch(root, "c.txt").content == b"third file"

    def test_aliases_survive_reopen(self, tmp_path):
        path = tmp_path / "store"
        root = root_of(FILES)
        store = ServerStore(path)
        store.store_batch(root, FILES)
        store.store_batch(root, [("x", b"hello"), ("y", b"world"), ("z", b"third file")])

        reopened = ServerStore(path)
        assert reopened.fetch(root, "z").content == b"third file"
        assert not list((path / root).glob(f".{MANIFEST_FILE}.*"))

    def test_unfinished_manifest_update_removed(self, tmp_path):
        path = tmp_path / "store"
        root = root_of(FILES)
        ServerStore(path).store_batch(root, FILES)
        leftover = path / root / f".{MANIFEST_FILE}.abc{TEMP_SUFFIX}"
        leftover.write_text("{")

        reopened = ServerStore(path)
        assert not leftover.exists()
        assert reopened.fetch(root, "a").content == b"hello"

    def test_stale_staging_removed(self, tmp_path):
        path = tmp_path / "store"
        stale = path / f"{STAGING_PREFIX}deadbeef-123"
        (stale / BLOBS_DIR).mkdir(parents=True)

        ServerStore(path)
        assert not stale.exists()

    def test_manifest_for_wrong_directory_skipped(self, tmp_path):
        path = tmp_path / "store"
        root = root_of(FILES)
        ServerStore(path).store_batch(root, FILES)
        (path / root).rename(path / ("ab" * 32))

        assert ServerStore(path).list_batches() == []


class TestCorruption:
    def test_modified_blob_detected(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)
        (store.root_dir / root / BLOBS_DIR / "0").write_bytes(b"HELLO")

        with pytest.raises(IntegrityMismatchException):
            store.fetch(root, "a")

    def test_modified_manifest_detected(self, tmp_path):
        path = tmp_path / "store"
        root = root_of(FILES)
        ServerStore(path).store_batch(root, FILES)

        manifest_path = path / root / MANIFEST_FILE
        data = json.loads(manifest_path.read_text())
        data["entries"][0]["leaf"] = to_hex(SHA256.digest(b"HELLO"))
        manifest_path.write_text(json.dumps(data))
        (path / root / BLOBS_DIR / "0").write_bytes(b"HELLO")

        with pytest.raises(IntegrityMismatchException):
            ServerStore(path).fetch(root, "a")

    def test_missing_blob(self, store):
        root = root_of(FILES)
        store.store_batch(root, FILES)
        (store.root_dir / root / BLOBS_DIR / "2").unlink()

        with pytest.raises(NotFoundException):
            store.fetch(root, "c.txt")
