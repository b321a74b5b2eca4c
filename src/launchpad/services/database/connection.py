"""Supabase client construction."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from src.launchpad.config import settings

logger = logging.getLogger(__name__)


def _create_client(key: str, role: str) -> Client:
    logger.info(f"Creating Supabase {role} client", extra={"supabase_url": settings.supabase_url})
    return create_client(settings.supabase_url, key)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Shared Supabase client using the anon key.

    Used for Supabase Auth calls that resolve a caller's access token, and
    for anything that must respect Row-Level Security.

    Example:
        >>> response = get_supabase_client().auth.get_user(access_token)
    """
    return _create_client(settings.supabase_anon_key, "anon")


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Shared Supabase client using the service-role key.

    Bypasses Row-Level Security. The directories need it to read another
    user's memberships and to append to ``audit_logs``. Never hand it to
    code that acts on behalf of an end user.
    """
    return _create_client(settings.supabase_service_role_key, "service-role")


def reset_clients() -> None:
    """Drop the cached clients so the next call picks up changed settings."""
    get_supabase_client.cache_clear()
    get_supabase_admin_client.cache_clear()
