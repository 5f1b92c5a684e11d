"""Shared in-memory state of one chat client session."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.conversation import Conversation, Message


@dataclass
class DeleteConfirmation:
    conversation_id: str
    conversation_name: str


@dataclass
class ChatState:
    """
    Everything the controllers mutate, in one place.

    ``selected`` is the open conversation (full document); its list entry in
    ``conversations`` is the one with ``is_active`` set.
    """
    conversations: List[Conversation] = field(default_factory=list)
    selected: Optional[Conversation] = None
    show_archived: bool = False
    loading: bool = False
    error: Optional[str] = None
    pending_delete: Optional[DeleteConfirmation] = None
    # conversation id -> locally sent messages whose PATCH is still in flight
    pending_messages: Dict[str, List[Message]] = field(default_factory=dict)

    @property
    def selected_id(self) -> Optional[str]:
        return self.selected.id if self.selected is not None else None

    def find(self, conversation_id: str) -> Optional[Conversation]:
        for conversation in self.conversations:
            if conversation.id == str(conversation_id):
                return conversation
        return None

    def mark_active(self, conversation_id: Optional[str]) -> None:
        """Exactly one list entry (or none) is active."""
        for conversation in self.conversations:
            conversation.is_active = conversation_id is not None and conversation.id == str(conversation_id)

    def move_to_top(self, conversation_id: str) -> None:
        conversation = self.find(conversation_id)
        if conversation is not None:
            self.conversations.remove(conversation)
            self.conversations.insert(0, conversation)

    def add_pending(self, conversation_id: str, message: Message) -> None:
        self.pending_messages.setdefault(str(conversation_id), []).append(message)

    def clear_pending(self, conversation_id: str, message_id: str) -> None:
        pending = self.pending_messages.get(str(conversation_id))
        if not pending:
            return
        pending[:] = [m for m in pending if m.id != message_id]
        if not pending:
            del self.pending_messages[str(conversation_id)]


def overlay_pending(conversation: Conversation, pending: List[Message]) -> Conversation:
    """Re-append in-flight local messages missing from a server copy, in send order."""
    known = {m.id for m in conversation.messages}
    for message in pending:
        if message.id not in known:
            conversation.messages.append(message)
    return conversation
