"""
Supabase client: PostgREST tables for billing state and Auth for users.
"""
from typing import Optional

from supabase import create_client, Client
from .config import settings


class SupabaseClient:
    """Lazily built service-role client, shared per process."""

    def __init__(self):
        self._service_client: Optional[Client] = None

    @property
    def service_client(self) -> Client:
        """
        Service-role client, bypassing row level security.

        Webhook ingestion, usage logging and subscription lookups run without
        an end-user session, so every service goes through this one.
        """
        if self._service_client is None:
            self._service_client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key,
            )
        return self._service_client


# Global Supabase client instance
supabase_client = SupabaseClient()
