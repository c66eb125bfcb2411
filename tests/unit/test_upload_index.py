"""
Upload Index Unit Tests
Tests for core/storage/upload_index.py
"""
import json
import os

import pytest

from core.schemas.errors import NotFoundException, StorageException
from core.schemas.records import UploadRecord
from core.storage import UploadIndex


ROOT_A = "aa" * 32
ROOT_B = "bb" * 32


class TestUploadIndex:
    def test_missing_file_is_empty(self, index):
        assert index.records == []
        assert index.get(ROOT_A) is None

    def test_append_persists(self, tmp_path):
        path = tmp_path / "uploads.json"
        UploadIndex(path).append(UploadRecord(root=ROOT_A, filenames=("a", "b")))

        reloaded = UploadIndex(path)
        assert reloaded.get(ROOT_A).filenames == ("a", "b")
        assert json.loads(path.read_text())["version"] == 1

    def test_append_same_root_is_noop(self, index):
        assert index.append(UploadRecord(root=ROOT_A, filenames=("a",))) is True
        assert index.append(UploadRecord(root=ROOT_A, filenames=("a",))) is False
        assert len(index.records) == 1

    def test_same_root_with_other_filenames(self, index):
        """The same bytes uploaded under new names get their own record."""
        assert index.append(UploadRecord(root=ROOT_A, filenames=("a.txt",))) is True
        assert index.append(UploadRecord(root=ROOT_A, filenames=("b.txt",))) is True

        assert len(index.records) == 2
        assert index.get(ROOT_A).filenames == ("b.txt",)
        assert index.get(ROOT_A, "a.txt").filenames == ("a.txt",)
        assert index.get(ROOT_A, "c.txt") is None
        assert index.find_roots("a.txt") == [ROOT_A]

    def test_find_roots_lists_each_root_once(self, index):
        index.append(UploadRecord(root=ROOT_A, filenames=("a", "b")))
        index.append(UploadRecord(root=ROOT_A, filenames=("a", "c")))

        assert index.find_roots("a") == [ROOT_A]

    def test_get_normalizes_root(self, index):
        index.append(UploadRecord(root=ROOT_A, filenames=("a",)))
        assert index.get("0x" + ROOT_A.upper()) is not None

    def test_resolve_prefers_newest(self, index):
        index.append(UploadRecord(root=ROOT_A, filenames=("a", "shared")))
        index.append(UploadRecord(root=ROOT_B, filenames=("shared",)))

        assert index.resolve_root("shared").root == ROOT_B
        assert index.resolve_root("a").root == ROOT_A
        assert index.find_roots("shared") == [ROOT_B, ROOT_A]

    def test_resolve_unknown(self, index):
        with pytest.raises(NotFoundException):
            index.resolve_root("nope")

    def test_load_picks_up_other_writers(self, tmp_path):
        path = tmp_path / "uploads.json"
        reader = UploadIndex(path)
        UploadIndex(path).append(UploadRecord(root=ROOT_A, filenames=("a",)))

        assert reader.get(ROOT_A) is None
        reader.load()
        assert reader.get(ROOT_A).filenames == ("a",)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "uploads.json"
        path.write_text("{not json")

        with pytest.raises(StorageException):
            UploadIndex(path)

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "uploads.json"
        index = UploadIndex(path)
        index.append(UploadRecord(root=ROOT_A, filenames=("a",)))
        index.append(UploadRecord(root=ROOT_B, filenames=("b",)))

        assert os.listdir(tmp_path) == ["uploads.json"]

    def test_failed_write_keeps_memory_state(self, tmp_path, monkeypatch):
        index = UploadIndex(tmp_path / "uploads.json")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(StorageException):
            index.append(UploadRecord(root=ROOT_A, filenames=("a",)))

        assert index.records == []
        assert not (tmp_path / "uploads.json").exists()
