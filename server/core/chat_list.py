"""Conversation list projection: filter, search and sort for display."""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from core.session_state import SessionState
from models.conversation import Conversation

logger = logging.getLogger(__name__)


def sort_conversations(
    conversations: Sequence[Conversation], pinned_ids: Sequence[str]
) -> List[Conversation]:
    """
    Pinned conversations first (in pin order), then most recent activity first.
    Conversations without a timestamp go last; ties keep their input order.
    """
    pin_rank: Dict[str, int] = {str(cid): i for i, cid in enumerate(pinned_ids)}

    def _key(conversation: Conversation) -> Tuple[int, int, float]:
        if conversation.id in pin_rank:
            return (0, pin_rank[conversation.id], 0.0)
        if conversation.timestamp_date is not None:
            return (1, 0, -conversation.timestamp_date.timestamp())
        return (2, 0, 0.0)

    return sorted(conversations, key=_key)


def matches_query(conversation: Conversation, query: str) -> bool:
    """Case-insensitive match on name or last-message preview. Empty query matches all."""
    needle = query.strip().lower()
    if not needle:
        return True
    return (
        needle in conversation.name.lower()
        or needle in conversation.last_message_preview().lower()
    )


class ChatListController:
    """
    Lazily recomputed, ordered view over the conversation set.

    Pin/unpin go through the session state that owns the pinned-chats list;
    this class never mutates the conversations it projects.
    """

    def __init__(self, session_state: SessionState):
        self.session_state = session_state
        self._cache_key: Optional[tuple] = None
        self._cache: List[Conversation] = []
        self.recomputations = 0

    @staticmethod
    def _fingerprint(conversation: Conversation) -> tuple:
        return (
            conversation.id,
            conversation.name,
            conversation.last_message_preview(),
            conversation.timestamp_date,
            conversation.archived,
            conversation.deleted,
        )

    def visible(
        self,
        conversations: Sequence[Conversation],
        query: str = "",
        show_archived: bool = False,
    ) -> List[Conversation]:
        key = (
            tuple(self._fingerprint(c) for c in conversations),
            query.strip().lower(),
            tuple(self.session_state.pinned_chats),
            show_archived,
        )
        if key == self._cache_key:
            return list(self._cache)

        in_view = [
            c for c in conversations
            if not c.deleted and c.archived == show_archived and matches_query(c, query)
        ]
        self._cache = sort_conversations(in_view, self.session_state.pinned_chats)
        self._cache_key = key
        self.recomputations += 1
        return list(self._cache)

    def is_pinned(self, conversation_id: str) -> bool:
        return self.session_state.is_pinned(conversation_id)

    def pin_chat(self, conversation_id: str) -> List[str]:
        pinned = self.session_state.pin_chat(conversation_id)
        logger.debug(f"Pinned chats now {pinned}")
        return pinned

    def unpin_chat(self, conversation_id: str) -> List[str]:
        return self.session_state.unpin_chat(conversation_id)
