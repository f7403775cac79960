"""Database utilities for Supabase integration."""

from flowmap.db.maps import MapStore, MapStoreError, MapSummary, SavedMap
from flowmap.db.supabase import get_supabase_client, SupabaseClient

__all__ = [
    "MapStore",
    "MapStoreError",
    "MapSummary",
    "SavedMap",
    "get_supabase_client",
    "SupabaseClient",
]
