"""In-process publish/subscribe channel for chat state changes.

Readers subscribe to topics instead of re-deriving state from poll results.
"""
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

CONVERSATIONS_SYNCED = "conversations.synced"
CONVERSATION_SELECTED = "conversation.selected"
MESSAGE_SENT = "message.sent"
CONVERSATION_ARCHIVED = "conversation.archived"
CONVERSATION_UNARCHIVED = "conversation.unarchived"
CONVERSATION_DELETED = "conversation.deleted"

Handler = Callable[[Any], Union[None, Awaitable[None]]]


class ChatEventBus:
    """Topic -> handlers registry with best-effort delivery."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._handlers[topic].append(handler)

        def _unsubscribe():
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return _unsubscribe

    async def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every handler of ``topic``. Returns delivered count."""
        delivered = 0
        for handler in list(self._handlers.get(topic, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Event handler for '{topic}' failed: {e}", exc_info=True)
        return delivered
