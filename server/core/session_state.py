"""Process-wide chat session state persisted in the local key/value store."""
import logging
from typing import List

from core.pinning import MAX_PINNED, pin_id, unpin_id
from database.local_store import LocalKeyValueStore

logger = logging.getLogger(__name__)

PINNED_CHATS_KEY = "pinnedChats"


class SessionState:
    """
    Client-local session state with an explicit lifecycle:
    ``load()`` when the conversation view mounts, ``flush()`` when it unmounts.

    Only the pinned-chats list lives here; everything else is server-side.
    """

    def __init__(self, local_store: LocalKeyValueStore, max_pinned: int = MAX_PINNED):
        self.local_store = local_store
        self.max_pinned = max_pinned
        self._pinned_chats: List[str] = []
        self._dirty = False
        self.loaded = False

    def load(self) -> None:
        raw = self.local_store.get(PINNED_CHATS_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Stored pinned chats are not a list; starting empty")
            raw = []
        # Trim anything persisted under a larger cap, keeping the newest pins
        self._pinned_chats = [str(i) for i in raw][-self.max_pinned:]
        self._dirty = False
        self.loaded = True
        logger.debug(f"Loaded {len(self._pinned_chats)} pinned chats")

    def flush(self) -> bool:
        """Persist pending changes. Returns True if anything was written."""
        if not self._dirty:
            return False
        try:
            self.local_store.set(PINNED_CHATS_KEY, list(self._pinned_chats))
        except OSError as e:
            logger.error(f"Error persisting pinned chats: {e}")
            return False
        self._dirty = False
        return True

    @property
    def pinned_chats(self) -> List[str]:
        return list(self._pinned_chats)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def is_pinned(self, conversation_id: str) -> bool:
        return str(conversation_id) in self._pinned_chats

    def pin_chat(self, conversation_id: str) -> List[str]:
        updated = pin_id(self._pinned_chats, conversation_id, self.max_pinned)
        if updated != self._pinned_chats:
            self._pinned_chats = updated
            self._dirty = True
        return self.pinned_chats

    def unpin_chat(self, conversation_id: str) -> List[str]:
        updated = unpin_id(self._pinned_chats, conversation_id)
        if updated != self._pinned_chats:
            self._pinned_chats = updated
            self._dirty = True
        return self.pinned_chats
