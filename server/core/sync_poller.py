"""Sync Poller: periodic re-fetch of the conversation collection."""
import asyncio
import logging
from typing import List, Optional

from core.chat_list import sort_conversations
from core.chat_state import ChatState, overlay_pending
from core.events import ChatEventBus, CONVERSATIONS_SYNCED
from integrations.phoenix_store.client import ConversationStoreClient, ConversationStoreError
from models.conversation import Conversation

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 5.0


class SyncPoller:
    """
    Reconciles local state with the store every ``interval`` seconds.

    The last server snapshot is kept as-is; local state is that snapshot with
    the optimistic overlay applied (active flag, local unread count and
    in-flight sent messages of the open conversation).
    """

    def __init__(
        self,
        store: ConversationStoreClient,
        state: ChatState,
        events: Optional[ChatEventBus] = None,
        interval: float = DEFAULT_POLL_INTERVAL_S,
    ):
        self.store = store
        self.state = state
        self.events = events
        self.interval = interval
        self.last_snapshot: List[Conversation] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> bool:
        """Fetch and merge once. Returns False when skipped or failed."""
        if self.state.loading:
            logger.debug("Skipping sync while a load is in progress")
            return False

        try:
            fetched = await self.store.list_conversations()
        except ConversationStoreError as e:
            logger.error(f"Error syncing conversations: {e}")
            return False

        self.last_snapshot = [c.model_copy(deep=True) for c in fetched]
        self.state.conversations = self.merge(fetched)

        if self.events is not None:
            await self.events.publish(CONVERSATIONS_SYNCED, self.state.conversations)
        return True

    def merge(self, fetched: List[Conversation]) -> List[Conversation]:
        """Merge server conversations into local state; soft-deleted ones are dropped."""
        selected_id = self.state.selected_id
        local_by_id = {c.id: c for c in self.state.conversations}
        merged: List[Conversation] = []

        for conversation in fetched:
            if conversation.deleted:
                continue
            if conversation.id == selected_id:
                local = local_by_id.get(conversation.id)
                conversation.is_active = True
                conversation.unread = local.unread if local is not None else 0
                overlay_pending(conversation, self.state.pending_messages.get(conversation.id, []))
                self._refresh_selected(conversation)
            merged.append(conversation)

        return sort_conversations(merged, [])

    def _refresh_selected(self, server_copy: Conversation) -> None:
        """Only the message, pinned and hidden-for-me arrays come from the server copy."""
        selected = self.state.selected
        if selected is None:
            return
        selected.messages = [m.model_copy() for m in server_copy.messages]
        overlay_pending(selected, self.state.pending_messages.get(selected.id, []))
        selected.pinned_messages = list(server_copy.pinned_messages)
        selected.deleted_for_me = {k: list(v) for k, v in server_copy.deleted_for_me.items()}

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.poll_once()
            except Exception as e:
                # Keep polling; the next tick gets a fresh snapshot
                logger.error(f"Unexpected sync failure: {e}", exc_info=True)

    def start(self):
        if self.running:
            return
        logger.info(f"Starting conversation sync every {self.interval}s")
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Conversation sync stopped")
