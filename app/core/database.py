"""
Supabase client, created on first use.

The service key is preferred so the backend can read every table; the anon
key is a fallback for local projects without row-level security.
"""

from supabase import create_client, Client
from app.core.config import settings
from app.core.errors import PersistenceFailure

_supabase_client: Client | None = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        key = settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY
        if not settings.SUPABASE_URL or not key:
            raise PersistenceFailure("Supabase is not configured (SUPABASE_URL / SUPABASE_SERVICE_KEY)")
        _supabase_client = create_client(settings.SUPABASE_URL, key)
    return _supabase_client

