"""Supabase-backed user directory."""

import logging
from typing import Any

from src.launchpad.services.database.models import User
from src.launchpad.services.database.utils import SupabaseQueryBuilder

logger = logging.getLogger(__name__)

USERS_TABLE = "users"

# Nested preference maps merged key by key instead of being replaced wholesale
NESTED_PREFERENCE_KEYS = frozenset({"onboardingSteps", "onboardingData", "notifications"})


def merge_preferences(existing: dict[str, Any], partial: dict[str, Any]) -> dict[str, Any]:
    """
    Merge a partial preferences update into the stored preferences.

    Top-level keys are replaced. Keys in ``NESTED_PREFERENCE_KEYS`` are merged
    one level deeper, so updating a single onboarding step keeps the others.

    Example:
        >>> merge_preferences(
        ...     {"theme": "dark", "onboardingSteps": {"profile": True}},
        ...     {"onboardingSteps": {"organization": True}},
        ... )
        {'theme': 'dark', 'onboardingSteps': {'profile': True, 'organization': True}}
    """
    merged = dict(existing)
    for key, value in partial.items():
        current = merged.get(key)
        if key in NESTED_PREFERENCE_KEYS and isinstance(current, dict) and isinstance(value, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


class SupabaseUserDirectory:
    """User directory reading and writing the ``users`` table."""

    def __init__(self, db: SupabaseQueryBuilder) -> None:
        self.db = db

    async def get(self, user_id: str) -> User | None:
        row = self.db.get_by_id(USERS_TABLE, user_id)
        return User.model_validate(row) if row else None

    async def get_by_external_id(self, external_id: str) -> User | None:
        row = self.db.get_by_field(USERS_TABLE, "external_id", external_id)
        return User.model_validate(row) if row else None

    async def update_preferences(self, user_id: str, partial: dict[str, Any]) -> User | None:
        """
        Read-modify-write the user's preferences.

        Returns:
            Updated user, or None if the user does not exist
        """
        row = self.db.get_by_id(USERS_TABLE, user_id, columns="id, preferences")
        if not row:
            return None

        merged = merge_preferences(row.get("preferences") or {}, partial)
        updated = self.db.update_record(USERS_TABLE, user_id, {"preferences": merged})

        logger.info(
            f"Updated preferences for user {user_id}",
            extra={"user_id": user_id, "updated_keys": sorted(partial.keys())},
        )
        return User.model_validate(updated) if updated else None
