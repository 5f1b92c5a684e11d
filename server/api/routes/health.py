"""Health check routes"""
from asyncio import to_thread
from fastapi import APIRouter
from database.client import get_supabase
from database.repositories.conversation_repo import TABLE
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "ok", "service": "phoenix-chat"}


@router.get("/health/db")
async def database_health():
    """Check database connectivity and schema"""
    try:
        supabase = get_supabase()

        try:
            await to_thread(
                lambda: supabase.table(TABLE).select('id').limit(1).execute()
            )
            conversations_table_exists = True
        except Exception as e:
            conversations_table_exists = False
            logger.error(f"Conversations table error: {e}")

        return {
            "status": "ok" if conversations_table_exists else "degraded",
            "database": {
                "connected": True,
                "schema_ready": conversations_table_exists,
                "tables": {
                    "conversations": conversations_table_exists
                },
            },
            "message": "Database schema ready" if conversations_table_exists else "Conversations table not found. Please run server/database/supabase_schema.sql"
        }

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "error",
            "database": {
                "connected": False,
                "error": str(e)
            },
            "message": "Database connection failed. Check SUPABASE_URL and SUPABASE_KEY in .env"
        }
