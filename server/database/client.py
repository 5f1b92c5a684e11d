"""Supabase database client for the conversation store"""
from typing import Optional
from supabase import create_client, Client
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def init_supabase() -> Client:
    """Create the shared Supabase client once."""
    global _supabase_client

    if _supabase_client is None:
        logger.info(f"Connecting to conversation store at {settings.SUPABASE_URL}")
        _supabase_client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        logger.info("✓ Supabase client initialized")

    return _supabase_client


def get_supabase() -> Client:
    """Shared Supabase client, created on first use."""
    return _supabase_client or init_supabase()


def reset_supabase() -> None:
    """Drop the shared client (shutdown and tests)."""
    global _supabase_client
    _supabase_client = None
