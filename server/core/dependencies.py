"""
Shared singleton dependencies for the application.

The conversation service is created once at startup and reused across
requests; it holds no per-request state.
"""
import logging
from datetime import timedelta
from typing import Optional

from config.settings import settings
from database.client import get_supabase, reset_supabase
from database.repositories.conversation_repo import ConversationRepository
from services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

# Module-level singleton, initialized once via init_dependencies()
_conversation_service: Optional[ConversationService] = None


def init_dependencies() -> None:
    """Initialize shared singletons. Called once at application startup."""
    global _conversation_service

    logger.info("Initializing shared dependencies...")
    _conversation_service = ConversationService(
        ConversationRepository(get_supabase()),
        delete_window=timedelta(minutes=settings.DELETE_FOR_EVERYONE_WINDOW_MINUTES),
        max_pinned=settings.MAX_PINNED,
    )
    logger.info("Dependencies initialized")


async def shutdown_dependencies() -> None:
    """Clean up resources on shutdown."""
    global _conversation_service
    _conversation_service = None
    reset_supabase()
    logger.info("Dependencies released")


def get_conversation_service() -> ConversationService:
    if _conversation_service is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _conversation_service
