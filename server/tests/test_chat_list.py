"""Tests for the conversation list projection."""
import pytest
from datetime import datetime, timedelta, timezone

from core.chat_list import ChatListController, matches_query, sort_conversations
from core.session_state import SessionState
from database.local_store import LocalKeyValueStore
from models.conversation import Conversation, Message

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _make_conversation(cid, minutes_ago=None, name=None, text=None, **kwargs):
    data = {"id": cid, "name": name or f"Chat {cid}", **kwargs}
    if minutes_ago is not None:
        data["timestamp_date"] = T0 - timedelta(minutes=minutes_ago)
    if text is not None:
        data["messages"] = [Message(id=f"{cid}-1", text=text)]
    return Conversation(**data)


@pytest.fixture
def session_state(tmp_path):
    state = SessionState(LocalKeyValueStore(tmp_path / "session.json"))
    state.load()
    return state


@pytest.fixture
def controller(session_state):
    return ChatListController(session_state)


class TestSortConversations:
    def test_pinned_then_recency(self):
        """A(1m), B(1h, pinned), C(no timestamp), D(2m) -> B, A, D, C."""
        conversations = [
            _make_conversation("A", minutes_ago=1),
            _make_conversation("B", minutes_ago=60),
            _make_conversation("C"),
            _make_conversation("D", minutes_ago=2),
        ]
        ordered = sort_conversations(conversations, ["B"])
        assert [c.id for c in ordered] == ["B", "A", "D", "C"]

    def test_two_pinned_then_newest_unpinned(self):
        conversations = [
            _make_conversation("C", minutes_ago=20),
            _make_conversation("D", minutes_ago=10),
            _make_conversation("B", minutes_ago=1),
            _make_conversation("A", minutes_ago=30),
        ]
        ordered = sort_conversations(conversations, ["A", "B"])
        assert [c.id for c in ordered] == ["A", "B", "D", "C"]

    def test_pinned_follow_pin_order(self):
        conversations = [
            _make_conversation("A", minutes_ago=1),
            _make_conversation("B", minutes_ago=2),
            _make_conversation("C", minutes_ago=3),
        ]
        ordered = sort_conversations(conversations, ["C", "A"])
        assert [c.id for c in ordered] == ["C", "A", "B"]

    def test_ties_keep_input_order(self):
        conversations = [
            _make_conversation("X", minutes_ago=5),
            _make_conversation("Y", minutes_ago=5),
            _make_conversation("Z"),
            _make_conversation("W"),
        ]
        ordered = sort_conversations(conversations, [])
        assert [c.id for c in ordered] == ["X", "Y", "Z", "W"]

    def test_unknown_pinned_ids_are_ignored(self):
        ordered = sort_conversations([_make_conversation("A", minutes_ago=1)], ["gone"])
        assert [c.id for c in ordered] == ["A"]


class TestMatchesQuery:
    def test_empty_query_matches(self):
        assert matches_query(_make_conversation("A"), "  ")

    def test_name_case_insensitive(self):
        assert matches_query(_make_conversation("A", name="Bike Seller"), "bIKe")

    def test_last_message_preview(self):
        conversation = _make_conversation("A", name="Sam", text="Is the lamp still available?")
        assert matches_query(conversation, "LAMP")
        assert not matches_query(conversation, "sofa")

    def test_only_preview_text_is_searched(self):
        conversation = _make_conversation("A", name="Sam", text="x" * 50 + "needle")
        assert not matches_query(conversation, "needle")


class TestChatListController:
    def test_hides_deleted_and_splits_archived(self, controller):
        conversations = [
            _make_conversation("A", minutes_ago=1),
            _make_conversation("B", minutes_ago=2, archived=True),
            _make_conversation("C", minutes_ago=3, deleted=True),
        ]
        assert [c.id for c in controller.visible(conversations)] == ["A"]
        assert [c.id for c in controller.visible(conversations, show_archived=True)] == ["B"]

    def test_search_filters(self, controller):
        conversations = [
            _make_conversation("A", name="Alice", minutes_ago=1),
            _make_conversation("B", name="Bob", minutes_ago=2),
        ]
        assert [c.id for c in controller.visible(conversations, query="bob")] == ["B"]

    def test_memoized_until_inputs_change(self, controller):
        conversations = [_make_conversation("A", minutes_ago=1), _make_conversation("B", minutes_ago=2)]

        controller.visible(conversations)
        controller.visible(conversations)
        assert controller.recomputations == 1

        conversations[1].timestamp_date = T0
        assert [c.id for c in controller.visible(conversations)] == ["B", "A"]
        assert controller.recomputations == 2

    def test_pin_changes_invalidate_cache(self, controller):
        conversations = [_make_conversation("A", minutes_ago=1), _make_conversation("B", minutes_ago=2)]
        controller.visible(conversations)

        controller.pin_chat("B")
        assert [c.id for c in controller.visible(conversations)] == ["B", "A"]
        assert controller.recomputations == 2
        assert controller.is_pinned("B")

    def test_pin_cap_through_controller(self, controller):
        for cid in ["A", "B", "C", "D"]:
            controller.pin_chat(cid)
        assert controller.session_state.pinned_chats == ["B", "C", "D"]
        assert controller.unpin_chat("C") == ["B", "D"]

    def test_does_not_mutate_input(self, controller):
        conversations = [_make_conversation("A", minutes_ago=5), _make_conversation("B", minutes_ago=1)]
        controller.visible(conversations)
        assert [c.id for c in conversations] == ["A", "B"]
