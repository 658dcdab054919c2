"""
Unit tests for the storage backends.
"""

import json

from pixelpilot.chat.store import ChatStore
from pixelpilot.core.storage import STORAGE_VERSION, FileStorage, MemoryStorage


class TestMemoryStorage:
    """Tests for MemoryStorage and the shared envelope helpers."""

    def test_item_lifecycle(self) -> None:
        storage = MemoryStorage()

        assert storage.get_item("k") is None
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"
        storage.remove_item("k")
        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_write_state_wraps_in_envelope(self) -> None:
        storage = MemoryStorage()

        storage.write_state("chat-storage", {"chatrooms": []})

        envelope = json.loads(storage.get_item("chat-storage"))
        assert envelope == {"state": {"chatrooms": []}, "version": STORAGE_VERSION}
        assert storage.read_state("chat-storage") == {"chatrooms": []}

    def test_read_missing_state(self) -> None:
        assert MemoryStorage().read_state("nope") is None

    def test_unreadable_blob_is_ignored(self) -> None:
        storage = MemoryStorage({"auth-storage": "{not json"})

        assert storage.read_state("auth-storage") is None

    def test_blob_without_state_is_ignored(self) -> None:
        storage = MemoryStorage({"auth-storage": json.dumps({"state": [1, 2]})})

        assert storage.read_state("auth-storage") is None

    def test_other_version_is_ignored(self) -> None:
        storage = MemoryStorage(
            {"auth-storage": json.dumps({"state": {"isAuthenticated": True}, "version": 99})}
        )

        assert storage.read_state("auth-storage") is None


class TestFileStorage:
    """Tests for FileStorage."""

    def test_writes_one_file_per_key(self, tmp_path) -> None:
        storage = FileStorage(tmp_path / "state")

        storage.set_item("auth-storage", "hello")

        assert (tmp_path / "state" / "auth-storage.json").read_text() == "hello"
        assert storage.get_item("auth-storage") == "hello"

    def test_overwrite_leaves_no_temp_files(self, tmp_path) -> None:
        storage = FileStorage(tmp_path)

        storage.set_item("chat-storage", "one")
        storage.set_item("chat-storage", "two")

        assert storage.get_item("chat-storage") == "two"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["chat-storage.json"]

    def test_missing_and_remove(self, tmp_path) -> None:
        storage = FileStorage(tmp_path)

        assert storage.get_item("missing") is None
        storage.set_item("k", "v")
        storage.remove_item("k")
        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_state_round_trip_between_instances(self, tmp_path) -> None:
        FileStorage(tmp_path).write_state("auth-storage", {"isAuthenticated": False, "user": None})

        assert FileStorage(tmp_path).read_state("auth-storage") == {
            "isAuthenticated": False,
            "user": None,
        }

    def test_undecodable_file_is_ignored(self, tmp_path) -> None:
        (tmp_path / "chat-storage.json").write_bytes(
            b'{"state": {"chatrooms": []}, "version": 0}\xff\xfe'
        )

        assert FileStorage(tmp_path).read_state("chat-storage") is None

    def test_undecodable_file_does_not_break_rehydrate(self, tmp_path) -> None:
        (tmp_path / "chat-storage.json").write_bytes(b"\xff")
        store = ChatStore(FileStorage(tmp_path))

        store.rehydrate()

        assert store.chatrooms == ()
