"""Supabase clients, query helpers and entity models."""

from src.launchpad.services.database.connection import (
    get_supabase_admin_client,
    get_supabase_client,
)
from src.launchpad.services.database.models import (
    CANONICAL_STEPS,
    AuditEvent,
    Membership,
    Organization,
    User,
    UserPreferences,
)
from src.launchpad.services.database.utils import SupabaseQueryBuilder, get_query_builder

__all__ = [
    "CANONICAL_STEPS",
    "AuditEvent",
    "Membership",
    "Organization",
    "SupabaseQueryBuilder",
    "User",
    "UserPreferences",
    "get_query_builder",
    "get_supabase_admin_client",
    "get_supabase_client",
]
