"""Conversation Controller: the open conversation's messages, pins and deletes."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from core.chat_state import ChatState, overlay_pending
from core.errors import ChatValidationError
from core.events import ChatEventBus, CONVERSATION_SELECTED, MESSAGE_SENT
from core.pinning import MAX_PINNED, pin_id, unpin_id
from integrations.phoenix_store.client import ConversationStoreClient, ConversationStoreError
from models.conversation import (
    DELETED_MESSAGE_TEXT,
    NO_MESSAGES_TEXT,
    Conversation,
    Message,
    next_message_id,
)

logger = logging.getLogger(__name__)

DELETE_FOR_EVERYONE_WINDOW = timedelta(minutes=5)
DELETE_WINDOW_NOTICE = "You can only delete messages for everyone within {minutes} minutes of sending."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationController:
    """
    Owns ``state.selected``:
    - selection (fetch, ownership, read receipts, unread reset)
    - optimistic send
    - pinned messages (cap 3, FIFO) and the pinned carousel
    - delete-for-me (viewer scoped) and delete-for-everyone (time gated)

    Store failures are logged and swallowed; local state is never rolled back.
    """

    def __init__(
        self,
        store: ConversationStoreClient,
        state: ChatState,
        identity: Callable[[], Optional[str]],
        events: Optional[ChatEventBus] = None,
        max_pinned: int = MAX_PINNED,
        delete_window: timedelta = DELETE_FOR_EVERYONE_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.state = state
        self.identity = identity
        self.events = events
        self.max_pinned = max_pinned
        self.delete_window = delete_window
        self._clock = clock
        self.pinned_index = 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def viewer_id(self) -> Optional[str]:
        user_id = self.identity()
        return str(user_id) if user_id is not None else None

    def _require_open(self) -> Conversation:
        if self.state.selected is None:
            raise ChatValidationError("No conversation is open.")
        return self.state.selected

    def _require_viewer(self) -> str:
        viewer = self.viewer_id
        if viewer is None:
            raise ChatValidationError("You need to be signed in to do that.")
        return viewer

    async def _persist(self, conversation_id: str, fields: dict, action: str) -> bool:
        try:
            await self.store.update_conversation(conversation_id, fields)
            return True
        except ConversationStoreError as e:
            logger.error(f"Error {action} in conversation {conversation_id}: {e}")
            return False

    async def _publish(self, topic: str, payload) -> None:
        if self.events is not None:
            await self.events.publish(topic, payload)

    def _open(self, conversation: Conversation) -> None:
        conversation.is_active = True
        self.state.selected = conversation
        self.state.mark_active(conversation.id)
        self.pinned_index = 0

    # ------------------------------------------------------------------
    # Selection & read state
    # ------------------------------------------------------------------

    async def select(self, conversation_id: str) -> Optional[Conversation]:
        """Open a conversation, marking incoming messages read in one update."""
        conversation_id = str(conversation_id)
        viewer = self.viewer_id

        try:
            conversation = await self.store.get_conversation(conversation_id)
        except ConversationStoreError as e:
            logger.error(f"Error selecting conversation {conversation_id}: {e}")
            entry = self.state.find(conversation_id)
            if entry is None:
                return None
            fallback = entry.model_copy(deep=True)
            fallback.messages = []
            fallback.pinned_messages = []
            fallback.deleted_for_me = {}
            self._open(fallback)
            return fallback

        for message in conversation.messages:
            message.is_own = message.owned_by(viewer)
            if not message.is_own:
                message.read = True
        overlay_pending(conversation, self.state.pending_messages.get(conversation_id, []))

        # A sync may have replaced the list while the fetch was in flight
        entry = self.state.find(conversation_id)
        if not conversation.archived:
            conversation.unread = 0
            if entry is not None:
                entry.unread = 0

        self._open(conversation)

        if not conversation.archived:
            await self._persist(
                conversation_id,
                {
                    "messages": [m.to_store() for m in conversation.messages],
                    "unread": 0,
                },
                "marking messages read",
            )

        await self._publish(CONVERSATION_SELECTED, conversation)
        return conversation

    def visible_messages(self) -> List[Message]:
        if self.state.selected is None:
            return []
        return self.state.selected.visible_messages(self.viewer_id)

    def empty_text(self) -> str:
        """Placeholder shown when the open conversation has nothing to render."""
        return "" if self.visible_messages() else NO_MESSAGES_TEXT

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> Message:
        """
        Optimistically append a message, then persist it.

        The message is in local state before the first suspension point, so
        messages render in the order send_message was called.
        """
        if not text or not text.strip():
            raise ChatValidationError("Message text is required.")
        conversation = self._require_open()

        now = self._clock()
        message = Message(
            id=next_message_id(),
            sender_id=self.viewer_id,
            sender="You",
            text=text.strip(),
            timestamp=now.astimezone().strftime("%I:%M %p"),
            timestamp_date=now,
            read=False,
            is_own=True,
        )

        conversation.messages.append(message)
        conversation.last_message = message.text
        conversation.timestamp_date = now

        entry = self.state.find(conversation.id)
        if entry is not None and entry is not conversation:
            entry.messages = list(conversation.messages)
            entry.last_message = message.text
            entry.timestamp_date = now
        self.state.move_to_top(conversation.id)
        self.state.add_pending(conversation.id, message)

        snapshot = [m.to_store() for m in conversation.messages]
        try:
            await self._publish(MESSAGE_SENT, message)
            await self._persist(conversation.id, {"messages": snapshot}, "sending message")
        finally:
            self.state.clear_pending(conversation.id, message.id)
        return message

    # ------------------------------------------------------------------
    # Pinned messages
    # ------------------------------------------------------------------

    async def pin_message(self, message_id: str) -> List[str]:
        conversation = self._require_open()
        updated = pin_id(conversation.pinned_messages, message_id, self.max_pinned)
        if updated == conversation.pinned_messages:
            return updated

        conversation.pinned_messages = updated
        self._clamp_pinned_index()
        await self._persist(conversation.id, {"pinnedMessages": updated}, "updating pinned messages")
        return list(updated)

    async def unpin_message(self, message_id: str) -> List[str]:
        conversation = self._require_open()
        updated = unpin_id(conversation.pinned_messages, message_id)
        if updated == conversation.pinned_messages:
            return updated

        conversation.pinned_messages = updated
        self._clamp_pinned_index()
        await self._persist(conversation.id, {"pinnedMessages": updated}, "updating pinned messages")
        return list(updated)

    def is_message_pinned(self, message_id: str) -> bool:
        if self.state.selected is None:
            return False
        return str(message_id) in self.state.selected.pinned_messages

    def _clamp_pinned_index(self) -> None:
        count = len(self.state.selected.pinned_messages) if self.state.selected else 0
        if count == 0:
            self.pinned_index = 0
        elif self.pinned_index >= count:
            self.pinned_index = count - 1

    def pinned_message_objects(self) -> List[Message]:
        """Pinned messages in pin order, skipping ids no longer in the conversation."""
        if self.state.selected is None:
            return []
        found = (self.state.selected.find_message(mid) for mid in self.state.selected.pinned_messages)
        return [m for m in found if m is not None]

    def advance_pinned(self) -> Optional[Message]:
        """Return the pinned message under the carousel and rotate to the next one."""
        pinned = self.pinned_message_objects()
        if not pinned:
            return None
        if self.pinned_index >= len(pinned):
            self.pinned_index = 0

        current = pinned[self.pinned_index]
        if len(pinned) > 1:
            self.pinned_index = (self.pinned_index + 1) % len(pinned)
        return current

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_for_me(self, message_id: str) -> List[str]:
        """Hide a message for the current viewer only."""
        conversation = self._require_open()
        viewer = self._require_viewer()
        message_id = str(message_id)

        hidden = conversation.hidden_for(viewer)
        if message_id in hidden:
            return hidden
        hidden.append(message_id)
        conversation.deleted_for_me[viewer] = hidden

        entry = self.state.find(conversation.id)
        if entry is not None and entry is not conversation:
            entry.deleted_for_me[viewer] = list(hidden)

        await self._persist(
            conversation.id, {"deletedForMeMessages": list(hidden)}, "deleting message for me"
        )
        return list(hidden)

    def can_delete_for_everyone(self, message: Message) -> bool:
        """Own message, sent no more than the window ago (checked now, never cached)."""
        if message.timestamp_date is None or not message.owned_by(self.viewer_id):
            return False
        return self._clock() - message.timestamp_date <= self.delete_window

    async def delete_for_everyone(self, message_id: str) -> Message:
        conversation = self._require_open()
        message = conversation.find_message(message_id)
        if message is None:
            raise ChatValidationError("Message not found.")
        if message.deleted:
            return message
        if not self.can_delete_for_everyone(message):
            minutes = int(self.delete_window.total_seconds() // 60)
            raise ChatValidationError(DELETE_WINDOW_NOTICE.format(minutes=minutes))

        message.text = DELETED_MESSAGE_TEXT
        message.deleted = True
        message.is_deleted = True

        await self._persist(
            conversation.id,
            {"messages": [m.to_store() for m in conversation.messages]},
            "deleting message for everyone",
        )
        return message
