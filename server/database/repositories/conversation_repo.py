"""Conversation repository for database operations."""
from asyncio import to_thread
from typing import Optional, List
from supabase import Client
import logging

logger = logging.getLogger(__name__)

TABLE = "conversations"


class ConversationRepository:
    """
    Handle conversation document storage.

    A row holds the whole conversation: participants, the ordered message
    array and per-user maps (unread_counts, archived, deleted, deleted_for_me)
    keyed by user id. Updates replace whole columns (last write wins).
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def list_for_participant(self, user_id: str) -> List[dict]:
        """All conversations the user takes part in, most recent activity first."""
        try:
            response = await to_thread(
                lambda: self.supabase.table(TABLE)
                .select("*")
                .contains("participant_ids", [user_id])
                .order("last_message_time", desc=True)
                .execute()
            )
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error listing conversations for {user_id}: {e}")
            raise

    async def get_by_id(self, conversation_id: str) -> Optional[dict]:
        """Get conversation by ID.

        Returns None if not found. Raises on database errors.
        """
        try:
            response = await to_thread(
                lambda: self.supabase.table(TABLE)
                .select("*")
                .eq("id", conversation_id)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting conversation {conversation_id}: {e}")
            raise

    async def find_between(self, user_id: str, other_user_id: str) -> Optional[dict]:
        """Existing conversation containing both users, if any."""
        try:
            response = await to_thread(
                lambda: self.supabase.table(TABLE)
                .select("*")
                .contains("participant_ids", [user_id, other_user_id])
                .limit(1)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error finding conversation between {user_id} and {other_user_id}: {e}")
            raise

    async def create(self, data: dict) -> Optional[dict]:
        try:
            response = await to_thread(
                lambda: self.supabase.table(TABLE).insert(data).execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error creating conversation: {e}")
            raise

    async def update(self, conversation_id: str, fields: dict) -> Optional[dict]:
        """Replace the given columns. Returns the updated row."""
        try:
            response = await to_thread(
                lambda: self.supabase.table(TABLE)
                .update(fields)
                .eq("id", conversation_id)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error updating conversation {conversation_id}: {e}", exc_info=True)
            raise
