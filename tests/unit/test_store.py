"""Tests for the file-backed record store."""

import os

import pytest

from vow.store import FileRecordStore, RecordStoreError


class TestFileRecordStore:
    """Read/write/delete of single-slot text records."""

    def test_missing_record_reads_none(self, tmp_path):
        assert FileRecordStore(tmp_path).read(".vow-challenge") is None

    def test_write_then_read(self, tmp_path):
        store = FileRecordStore(tmp_path)
        store.write(".vow-challenge", "123")
        assert (tmp_path / ".vow-challenge").read_text(encoding="utf-8") == "123"
        assert store.read(".vow-challenge") == "123"

    def test_write_is_verbatim(self, tmp_path):
        store = FileRecordStore(tmp_path)
        store.write(".vow-consent", "  7\n")
        assert store.read(".vow-consent") == "  7\n"

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = FileRecordStore(tmp_path)
        store.write(".vow-challenge", "1")
        store.write(".vow-challenge", "2")
        assert store.read(".vow-challenge") == "2"
        assert sorted(p.name for p in tmp_path.iterdir()) == [".vow-challenge"]

    def test_delete(self, tmp_path):
        store = FileRecordStore(tmp_path)
        store.write(".vow-consent", "1")
        store.delete(".vow-consent")
        assert not (tmp_path / ".vow-consent").exists()

    def test_delete_missing_is_noop(self, tmp_path):
        FileRecordStore(tmp_path).delete(".vow-consent")

    def test_unreadable_record_raises(self, tmp_path):
        (tmp_path / ".vow-challenge").mkdir()
        with pytest.raises(RecordStoreError):
            FileRecordStore(tmp_path).read(".vow-challenge")

    def test_undecodable_record_raises(self, tmp_path):
        (tmp_path / ".vow-consent").write_bytes("42\r\n".encode("utf-16"))
        with pytest.raises(RecordStoreError):
            FileRecordStore(tmp_path).read(".vow-consent")

    def test_write_into_missing_dir_raises(self, tmp_path):
        store = FileRecordStore(tmp_path / "nope")
        with pytest.raises(RecordStoreError):
            store.write(".vow-challenge", "1")

    def test_record_store_error_is_oserror(self):
        assert issubclass(RecordStoreError, OSError)

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_refuses_symlink(self, tmp_path):
        target = tmp_path / "elsewhere"
        target.write_text("x", encoding="utf-8")
        (tmp_path / ".vow-challenge").symlink_to(target)
        with pytest.raises(RecordStoreError):
            FileRecordStore(tmp_path).write(".vow-challenge", "1")
        assert target.read_text(encoding="utf-8") == "x"
