"""Tests for client-local session state and its key/value store."""
import json
import pytest

from core.session_state import PINNED_CHATS_KEY, SessionState
from database.local_store import LocalKeyValueStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "state" / "session.json"


@pytest.fixture
def local_store(store_path):
    return LocalKeyValueStore(store_path)


class TestLocalKeyValueStore:
    def test_missing_file_returns_default(self, local_store):
        assert local_store.get("anything", "fallback") == "fallback"

    def test_set_get_delete(self, local_store, store_path):
        local_store.set("a", [1, 2])
        local_store.set("b", {"x": True})
        assert local_store.get("a") == [1, 2]
        assert json.loads(store_path.read_text())["b"] == {"x": True}

        local_store.delete("a")
        assert local_store.get("a") is None
        assert local_store.get("b") == {"x": True}

    def test_corrupt_file_reads_as_empty(self, local_store, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json")
        assert local_store.get("a") is None

        local_store.set("a", 1)
        assert local_store.get("a") == 1


class TestSessionState:
    def test_load_empty(self, local_store):
        state = SessionState(local_store)
        state.load()
        assert state.loaded
        assert state.pinned_chats == []
        assert not state.dirty

    def test_pins_survive_reload(self, local_store):
        state = SessionState(local_store)
        state.load()
        state.pin_chat("c1")
        state.pin_chat("c2")
        assert state.flush() is True

        reloaded = SessionState(local_store)
        reloaded.load()
        assert reloaded.pinned_chats == ["c1", "c2"]

    def test_flush_without_changes_writes_nothing(self, local_store, store_path):
        state = SessionState(local_store)
        state.load()
        assert state.flush() is False
        assert not store_path.exists()

    def test_repeated_pin_is_not_a_change(self, local_store):
        state = SessionState(local_store)
        state.load()
        state.pin_chat("c1")
        state.flush()

        state.pin_chat("c1")
        assert not state.dirty

    def test_fifo_cap(self, local_store):
        state = SessionState(local_store)
        state.load()
        for cid in ["A", "B", "C", "D"]:
            state.pin_chat(cid)
        assert state.pinned_chats == ["B", "C", "D"]
        assert not state.is_pinned("A")

    def test_load_trims_to_newest(self, local_store):
        local_store.set(PINNED_CHATS_KEY, ["a", "b", "c", "d", "e"])
        state = SessionState(local_store, max_pinned=3)
        state.load()
        assert state.pinned_chats == ["c", "d", "e"]

    def test_load_ignores_malformed_value(self, local_store):
        local_store.set(PINNED_CHATS_KEY, {"oops": 1})
        state = SessionState(local_store)
        state.load()
        assert state.pinned_chats == []

    def test_unpin(self, local_store):
        state = SessionState(local_store)
        state.load()
        state.pin_chat("a")
        state.pin_chat("b")
        assert state.unpin_chat("a") == ["b"]
        assert state.dirty

    def test_pinned_chats_is_a_copy(self, local_store):
        state = SessionState(local_store)
        state.load()
        state.pin_chat("a")
        state.pinned_chats.append("z")
        assert state.pinned_chats == ["a"]
