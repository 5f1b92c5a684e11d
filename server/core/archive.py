"""Archive/Delete Orchestrator: conversation visibility transitions.

    Active --archive()--> Archived --unarchive()--> Active
    Active | Archived --request_delete() + confirm_delete()--> Deleted (terminal)
"""
import logging
from typing import Optional

from core.chat_state import ChatState, DeleteConfirmation
from core.conversation_controller import ConversationController
from core.events import (
    ChatEventBus,
    CONVERSATION_ARCHIVED,
    CONVERSATION_DELETED,
    CONVERSATION_UNARCHIVED,
)
from integrations.phoenix_store.client import ConversationStoreClient, ConversationStoreError
from models.conversation import Conversation

logger = logging.getLogger(__name__)


class ArchiveOrchestrator:
    """Archive, unarchive and soft-delete conversations, with selection fallback."""

    def __init__(
        self,
        store: ConversationStoreClient,
        state: ChatState,
        conversation_controller: ConversationController,
        events: Optional[ChatEventBus] = None,
    ):
        self.store = store
        self.state = state
        self.conversation_controller = conversation_controller
        self.events = events

    def _live(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self.state.find(conversation_id)
        if conversation is None or conversation.deleted:
            logger.warning(f"Conversation {conversation_id} is deleted or unknown; ignoring")
            return None
        return conversation

    async def _persist(self, conversation_id: str, fields: dict) -> bool:
        try:
            await self.store.update_conversation(conversation_id, fields)
            return True
        except ConversationStoreError as e:
            logger.error(f"Error updating conversation {conversation_id} with {fields}: {e}")
            return False

    async def _publish(self, topic: str, conversation_id: str) -> None:
        if self.events is not None:
            await self.events.publish(topic, conversation_id)

    async def _select_fallback(self, exclude_id: str) -> Optional[Conversation]:
        """Select the next conversation, preferring the current view; else clear selection."""
        candidates = [
            c for c in self.state.conversations
            if c.id != exclude_id and not c.deleted
        ]
        in_view = [c for c in candidates if c.archived == self.state.show_archived]
        pool = in_view or candidates
        if pool:
            return await self.conversation_controller.select(pool[0].id)

        self.state.selected = None
        self.state.mark_active(None)
        return None

    # ------------------------------------------------------------------
    # Archive
    # ------------------------------------------------------------------

    async def archive(self, conversation_id: str) -> bool:
        conversation_id = str(conversation_id)
        conversation = self._live(conversation_id)
        if conversation is None:
            return False

        conversation.archived = True
        if self.state.selected_id == conversation_id:
            self.state.selected.archived = True
        await self._persist(conversation_id, {"archived": True})

        if self.state.selected_id == conversation_id and not self.state.show_archived:
            await self._select_fallback(exclude_id=conversation_id)

        await self._publish(CONVERSATION_ARCHIVED, conversation_id)
        return True

    async def unarchive(self, conversation_id: str) -> bool:
        """Restore to the active list, switch to the active view and open it."""
        conversation_id = str(conversation_id)
        conversation = self._live(conversation_id)
        if conversation is None:
            return False

        conversation.archived = False
        await self._persist(conversation_id, {"archived": False})

        self.state.show_archived = False
        await self.conversation_controller.select(conversation_id)

        await self._publish(CONVERSATION_UNARCHIVED, conversation_id)
        return True

    def toggle_archived_view(self) -> bool:
        """Flip between active and archived views; close a conversation not in the new view."""
        self.state.show_archived = not self.state.show_archived
        selected = self.state.selected
        if selected is not None and selected.archived != self.state.show_archived:
            self.state.selected = None
            self.state.mark_active(None)
        return self.state.show_archived

    # ------------------------------------------------------------------
    # Delete (requires confirmation)
    # ------------------------------------------------------------------

    def request_delete(self, conversation_id: str) -> Optional[DeleteConfirmation]:
        conversation = self._live(conversation_id)
        if conversation is None:
            return None
        self.state.pending_delete = DeleteConfirmation(
            conversation_id=conversation.id,
            conversation_name=conversation.name,
        )
        return self.state.pending_delete

    def cancel_delete(self) -> None:
        self.state.pending_delete = None

    async def confirm_delete(self) -> bool:
        pending = self.state.pending_delete
        if pending is None:
            logger.warning("confirm_delete called without a pending delete request")
            return False
        self.state.pending_delete = None

        conversation = self._live(pending.conversation_id)
        if conversation is None:
            return False

        conversation.deleted = True
        self.state.conversations.remove(conversation)
        await self._persist(conversation.id, {"deleted": True})

        if self.state.selected_id == conversation.id:
            await self._select_fallback(exclude_id=conversation.id)

        await self._publish(CONVERSATION_DELETED, conversation.id)
        return True
