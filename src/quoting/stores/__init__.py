# Store backends for the persistence gateway
"""
- SupabaseStore: production backend (PostgREST via supabase-py)
- SQLiteStore: local disposable backend for integration tests and dry runs
"""

from .sqlite_store import SQLiteStore
from .supabase_store import SupabaseStore, create_supabase_client

__all__ = [
    "SQLiteStore",
    "SupabaseStore",
    "create_supabase_client",
]
