"""Tests for modules/auth/storage.py."""

import json
import os
import stat

import pytest

from modules.auth.exceptions import StorageError
from modules.auth.storage import FileStorage, KeyValueStorage, MemoryStorage


class TestMemoryStorage:
    def test_implements_protocol(self):
        """MemoryStorage should satisfy KeyValueStorage."""
        assert isinstance(MemoryStorage(), KeyValueStorage)

    def test_get_and_update(self):
        """update should set and delete keys together."""
        storage = MemoryStorage({"a": "1", "b": "2"})
        storage.update({"a": "10", "b": None, "c": "3"})
        assert storage.get("a") == "10"
        assert storage.get("b") is None
        assert sorted(storage.keys()) == ["a", "c"]

    def test_disabled_raises(self):
        """A disabled storage should fail every operation."""
        storage = MemoryStorage()
        storage.disabled = True
        with pytest.raises(StorageError):
            storage.get("a")
        with pytest.raises(StorageError):
            storage.update({"a": "1"})


class TestFileStorage:
    def test_implements_protocol(self, tmp_path):
        """FileStorage should satisfy KeyValueStorage."""
        assert isinstance(FileStorage(tmp_path / "s.json"), KeyValueStorage)

    def test_missing_file_reads_empty(self, tmp_path):
        """A missing file should read as empty."""
        assert FileStorage(tmp_path / "missing.json").get("a") is None

    def test_update_persists(self, tmp_path):
        """Values should survive a new FileStorage instance."""
        path = tmp_path / "nested" / "session.json"
        FileStorage(path).update({"a": "1", "b": "2"})
        FileStorage(path).update({"b": None})

        storage = FileStorage(path)
        assert storage.get("a") == "1"
        assert storage.get("b") is None
        assert json.loads(path.read_text()) == {"a": "1"}

    def test_file_is_owner_only(self, tmp_path):
        """The session file should be readable by its owner only."""
        path = tmp_path / "session.json"
        FileStorage(path).update({"a": "1"})
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path):
        """Atomic writes should not leave temp files behind."""
        path = tmp_path / "session.json"
        FileStorage(path).update({"a": "1"})
        assert [p.name for p in tmp_path.iterdir()] == ["session.json"]

    def test_corrupt_file_raises_on_read(self, tmp_path):
        """A corrupt document should raise StorageError on read."""
        path = tmp_path / "session.json"
        path.write_text("{not json")
        with pytest.raises(StorageError) as exc_info:
            FileStorage(path).get("a")
        assert exc_info.value.details["operation"] == "read"

    def test_non_object_document_raises(self, tmp_path):
        """A JSON document that is not an object should raise StorageError."""
        path = tmp_path / "session.json"
        path.write_text("[1, 2]")
        with pytest.raises(StorageError):
            FileStorage(path).get("a")

    def test_corrupt_file_replaced_on_update(self, tmp_path):
        """Writing should replace a corrupt document."""
        path = tmp_path / "session.json"
        path.write_text("{not json")
        storage = FileStorage(path)
        storage.update({"a": "1"})
        assert storage.get("a") == "1"

    def test_write_failure_raises(self, tmp_path):
        """An unwritable location should raise StorageError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        storage = FileStorage(blocker / "session.json")
        with pytest.raises(StorageError) as exc_info:
            storage.update({"a": "1"})
        assert exc_info.value.code == "STORAGE_ERROR"
        assert exc_info.value.details["operation"] == "write"
