"""Slot stores and the configured store singleton."""

from typing import Optional

from config import settings

from .base import SlotStore
from .memory_store import InMemoryStore

__all__ = ["InMemoryStore", "SlotStore", "get_db_client"]

# Global store instance
_db_client: Optional[SlotStore] = None


def get_db_client() -> SlotStore:
    """Get or create the store selected by settings.storage_backend."""
    global _db_client
    if _db_client is None:
        settings.validate_all_required()
        if settings.uses_supabase:
            from .supabase_client import SupabaseClient

            _db_client = SupabaseClient()
        else:
            _db_client = InMemoryStore()
    return _db_client
