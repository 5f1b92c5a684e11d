"""Tests for archive, unarchive and confirmed delete."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.archive import ArchiveOrchestrator
from core.chat_state import ChatState
from core.conversation_controller import ConversationController
from core.events import ChatEventBus, CONVERSATION_ARCHIVED, CONVERSATION_DELETED
from integrations.phoenix_store.client import ConversationStoreError
from models.conversation import Conversation, Message


def _make_conversation(cid, **kwargs):
    return Conversation(id=cid, name=f"Chat {cid}", **kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def state():
    state = ChatState()
    state.conversations = [
        _make_conversation("c1"),
        _make_conversation("c2"),
        _make_conversation("c3", archived=True),
    ]
    return state


@pytest.fixture
def store(state):
    store = MagicMock()

    async def get_conversation(conversation_id):
        return state.find(conversation_id).model_copy(deep=True)

    store.get_conversation = AsyncMock(side_effect=get_conversation)
    store.update_conversation = AsyncMock(return_value={})
    return store


@pytest.fixture
def events():
    return ChatEventBus()


@pytest.fixture
def controller(store, state, events):
    return ConversationController(store, state, identity=lambda: "me", events=events)


@pytest.fixture
def orchestrator(store, state, controller, events):
    return ArchiveOrchestrator(store, state, controller, events=events)


def _patches(store):
    return [call.args for call in store.update_conversation.await_args_list]


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

class TestArchive:
    @pytest.mark.asyncio
    async def test_moves_to_archived_view(self, orchestrator, state, store):
        assert await orchestrator.archive("c2") is True

        assert state.find("c2").archived is True
        assert ("c2", {"archived": True}) in _patches(store)

    @pytest.mark.asyncio
    async def test_selected_conversation_falls_back(self, orchestrator, controller, state, store):
        await controller.select("c1")

        await orchestrator.archive("c1")

        assert state.selected_id == "c2"
        assert [c.is_active for c in state.conversations] == [False, True, False]

    @pytest.mark.asyncio
    async def test_last_active_archived_clears_selection(self, orchestrator, controller, state):
        state.conversations = [_make_conversation("only")]
        await controller.select("only")

        await orchestrator.archive("only")

        assert state.selected is None
        assert not state.conversations[0].is_active

    @pytest.mark.asyncio
    async def test_store_failure_keeps_local_archive(self, orchestrator, state, store):
        store.update_conversation.side_effect = ConversationStoreError("down")
        assert await orchestrator.archive("c1") is True
        assert state.find("c1").archived is True

    @pytest.mark.asyncio
    async def test_unknown_id_is_noop(self, orchestrator, store):
        assert await orchestrator.archive("missing") is False
        store.update_conversation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publishes(self, orchestrator, events):
        seen = []
        events.subscribe(CONVERSATION_ARCHIVED, seen.append)
        await orchestrator.archive("c1")
        assert seen == ["c1"]


class TestUnarchive:
    @pytest.mark.asyncio
    async def test_restores_and_opens(self, orchestrator, state, store):
        state.show_archived = True

        assert await orchestrator.unarchive("c3") is True

        assert state.find("c3").archived is False
        assert state.show_archived is False
        assert state.selected_id == "c3"
        assert ("c3", {"archived": False}) in _patches(store)

    @pytest.mark.asyncio
    async def test_archive_round_trip(self, orchestrator, controller, state):
        state.conversations[0] = _make_conversation(
            "c1", messages=[Message(id="m1", sender_id="them", text="still here")], unread=1
        )

        await orchestrator.archive("c1")
        assert "c1" not in [c.id for c in state.conversations if not c.archived]

        await orchestrator.unarchive("c1")
        assert "c1" in [c.id for c in state.conversations if not c.archived]
        assert state.selected_id == "c1"
        assert [m.text for m in state.selected.messages] == ["still here"]
        # Selected at unarchive time, so it has been read
        assert state.find("c1").unread == 0


class TestToggleView:
    @pytest.mark.asyncio
    async def test_closes_conversation_outside_new_view(self, orchestrator, controller, state):
        await controller.select("c1")

        assert orchestrator.toggle_archived_view() is True
        assert state.selected is None
        assert not any(c.is_active for c in state.conversations)

        assert orchestrator.toggle_archived_view() is False


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    @pytest.mark.asyncio
    async def test_requires_confirmation(self, orchestrator, state, store):
        confirmation = orchestrator.request_delete("c2")

        assert confirmation.conversation_id == "c2"
        assert confirmation.conversation_name == "Chat c2"
        assert state.find("c2") is not None
        store.update_conversation.assert_not_awaited()

        assert await orchestrator.confirm_delete() is True
        assert state.find("c2") is None
        assert ("c2", {"deleted": True}) in _patches(store)

    @pytest.mark.asyncio
    async def test_cancel(self, orchestrator, state, store):
        orchestrator.request_delete("c2")
        orchestrator.cancel_delete()

        assert await orchestrator.confirm_delete() is False
        assert state.find("c2") is not None
        store.update_conversation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleting_selected_selects_next(self, orchestrator, controller, state):
        await controller.select("c1")

        orchestrator.request_delete("c1")
        await orchestrator.confirm_delete()

        assert state.selected_id == "c2"

    @pytest.mark.asyncio
    async def test_deleting_last_clears_selection(self, orchestrator, controller, state):
        state.conversations = [_make_conversation("solo")]
        await controller.select("solo")

        orchestrator.request_delete("solo")
        await orchestrator.confirm_delete()

        assert state.selected is None
        assert state.conversations == []

    @pytest.mark.asyncio
    async def test_deleted_is_terminal(self, orchestrator, state):
        orchestrator.request_delete("c1")
        await orchestrator.confirm_delete()

        assert orchestrator.request_delete("c1") is None
        assert await orchestrator.archive("c1") is False
        assert await orchestrator.unarchive("c1") is False

    @pytest.mark.asyncio
    async def test_publishes(self, orchestrator, events):
        seen = []
        events.subscribe(CONVERSATION_DELETED, seen.append)
        orchestrator.request_delete("c1")
        await orchestrator.confirm_delete()
        assert seen == ["c1"]
