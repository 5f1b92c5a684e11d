"""Chat session façade: the surface a UI layer binds to."""
import logging
from datetime import timedelta
from typing import Callable, List, Optional

from config.logging_config import setup_logging
from config.settings import settings
from core.archive import ArchiveOrchestrator
from core.chat_list import ChatListController
from core.chat_state import ChatState, DeleteConfirmation
from core.conversation_controller import ConversationController
from core.events import ChatEventBus
from core.session_state import SessionState
from core.sync_poller import SyncPoller
from core.time_ago import DEFAULT_REFRESH_SECONDS, Timestamp, TimeAgoTicker
from database.local_store import LocalKeyValueStore
from integrations.phoenix_store.client import ConversationStoreClient, ConversationStoreError
from models.conversation import Conversation, Message
from utils.jwt_utils import read_user_id

logger = logging.getLogger(__name__)

LOAD_ERROR_TEXT = "Failed to load chats"


class ChatSession:
    """
    One viewer's chat client: conversation list, open conversation, sync loop
    and local session state, wired together.

    Lifecycle: ``mount()`` when the chat view opens, ``unmount()`` when it closes.
    """

    def __init__(
        self,
        store: ConversationStoreClient,
        session_state: SessionState,
        identity: Callable[[], Optional[str]],
        events: Optional[ChatEventBus] = None,
        poll_interval: float = 5.0,
        max_pinned: int = 3,
        delete_window: timedelta = timedelta(minutes=5),
        time_ago_interval: float = DEFAULT_REFRESH_SECONDS,
    ):
        self.store = store
        self.session_state = session_state
        self.identity = identity
        self.events = events or ChatEventBus()
        self.state = ChatState()

        self.chat_list = ChatListController(session_state)
        self.conversation = ConversationController(
            store,
            self.state,
            identity,
            events=self.events,
            max_pinned=max_pinned,
            delete_window=delete_window,
        )
        self.archive = ArchiveOrchestrator(store, self.state, self.conversation, events=self.events)
        self.poller = SyncPoller(store, self.state, events=self.events, interval=poll_interval)
        self.time_ago_interval = time_ago_interval
        self._tickers: List[TimeAgoTicker] = []

    @classmethod
    def from_settings(cls, token: str) -> "ChatSession":
        """Build a session for the bearer ``token`` using application settings."""
        setup_logging(settings.LOG_LEVEL)
        user_id = read_user_id(token)
        store = ConversationStoreClient(
            settings.STORE_BASE_URL,
            token=token,
            viewer_id=user_id,
            timeout_s=settings.STORE_TIMEOUT_SECONDS,
        )
        session_state = SessionState(
            LocalKeyValueStore(settings.PINNED_CHATS_FILE),
            max_pinned=settings.MAX_PINNED,
        )
        return cls(
            store,
            session_state,
            identity=lambda: user_id,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            max_pinned=settings.MAX_PINNED,
            delete_window=timedelta(minutes=settings.DELETE_FOR_EVERYONE_WINDOW_MINUTES),
            time_ago_interval=settings.TIME_AGO_REFRESH_SECONDS,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> bool:
        self.session_state.load()
        loaded = await self.load_conversations()
        self.poller.start()
        return loaded

    async def unmount(self) -> None:
        await self.poller.stop()
        for ticker in self._tickers:
            await ticker.stop()
        self._tickers.clear()
        self.session_state.flush()
        await self.store.close()

    async def load_conversations(self) -> bool:
        """Initial load. On failure ``state.error`` is set and ``retry()`` can be offered."""
        if self.identity() is None:
            self.state.error = "Please login to view conversations"
            return False

        self.state.loading = True
        try:
            conversations = await self.store.list_conversations()
        except ConversationStoreError as e:
            logger.error(f"Failed to load chats: {e}")
            self.state.error = LOAD_ERROR_TEXT
            return False
        finally:
            self.state.loading = False

        self.state.conversations = [c for c in conversations if not c.deleted]
        self.state.error = None
        return True

    async def retry(self) -> bool:
        return await self.load_conversations()

    async def open_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Navigation hand-off (e.g. "message seller"): open it if nothing is open yet."""
        if self.state.selected is not None or self.state.find(conversation_id) is None:
            return self.state.selected
        return await self.conversation.select(conversation_id)

    # ------------------------------------------------------------------
    # Rendering callbacks
    # ------------------------------------------------------------------

    def list_view(self, query: str = "") -> List[Conversation]:
        return self.chat_list.visible(self.state.conversations, query, self.state.show_archived)

    def time_ago(self, timestamp: Timestamp, on_change: Callable[[str], None]) -> TimeAgoTicker:
        """Start a self-refreshing "time ago" label; it stops on unmount()."""
        ticker = TimeAgoTicker(timestamp, on_change, interval=self.time_ago_interval)
        ticker.start()
        self._tickers.append(ticker)
        return ticker

    async def select(self, conversation_id: str) -> Optional[Conversation]:
        return await self.conversation.select(conversation_id)

    async def send(self, text: str) -> Message:
        return await self.conversation.send_message(text)

    def pin_chat(self, conversation_id: str) -> List[str]:
        return self.chat_list.pin_chat(conversation_id)

    def unpin_chat(self, conversation_id: str) -> List[str]:
        return self.chat_list.unpin_chat(conversation_id)

    async def archive_chat(self, conversation_id: str) -> bool:
        return await self.archive.archive(conversation_id)

    async def unarchive_chat(self, conversation_id: str) -> bool:
        return await self.archive.unarchive(conversation_id)

    def delete_chat(self, conversation_id: str) -> Optional[DeleteConfirmation]:
        """First step of delete; the UI must follow with confirm_delete() or cancel_delete()."""
        return self.archive.request_delete(conversation_id)

    async def confirm_delete(self) -> bool:
        return await self.archive.confirm_delete()

    def cancel_delete(self) -> None:
        self.archive.cancel_delete()
