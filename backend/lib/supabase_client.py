"""
Supabase client for the tutor host
"""
from typing import Optional

from supabase import create_client, Client

from ai_english_tutor.config import Settings
from ai_english_tutor.exceptions import ConfigurationError

_supabase_client: Optional[Client] = None


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """Get or create Supabase client singleton"""
    global _supabase_client

    if _supabase_client is None:
        settings = settings or Settings.from_env()
        # Anon key: all access goes through the signed-in user's session
        if not settings.supabase_configured:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment")

        _supabase_client = create_client(settings.supabase_url, settings.supabase_anon_key)

    return _supabase_client


def reset_supabase_client() -> None:
    global _supabase_client
    _supabase_client = None
