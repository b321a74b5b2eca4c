"""Supabase-backed organization and membership directory."""

from typing import Any

from src.launchpad.services.database.models import Membership, MembershipStatus, Organization
from src.launchpad.services.database.utils import SupabaseQueryBuilder

MEMBERSHIPS_TABLE = "organization_memberships"
ORGANIZATIONS_TABLE = "organizations"

# Embeds the organization name and role name alongside each membership row
MEMBERSHIP_COLUMNS = "*, organization:organizations(name), role:roles(name)"


def membership_from_row(row: dict[str, Any]) -> Membership:
    """Flatten a membership row with embedded organization/role relations."""
    organization = row.get("organization") or {}
    role = row.get("role") or {}
    return Membership(
        id=row.get("id"),
        user_id=row["user_id"],
        organization_id=row["organization_id"],
        role_id=row.get("role_id"),
        role_name=role.get("name"),
        organization_name=organization.get("name"),
        status=row.get("status") or MembershipStatus.ACTIVE,
        joined_at=row.get("joined_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class SupabaseOrganizationDirectory:
    """Organization directory reading ``organization_memberships`` and ``organizations``."""

    def __init__(self, db: SupabaseQueryBuilder) -> None:
        self.db = db

    async def list_memberships_for_user(self, user_id: str) -> list[Membership]:
        rows = self.db.list_records(
            MEMBERSHIPS_TABLE,
            columns=MEMBERSHIP_COLUMNS,
            filters={"user_id": user_id, "status": MembershipStatus.ACTIVE.value},
            order_by="created_at",
            order_desc=False,
        )
        return [membership_from_row(row) for row in rows]

    async def get_membership(self, user_id: str, organization_id: str) -> Membership | None:
        rows = self.db.list_records(
            MEMBERSHIPS_TABLE,
            columns=MEMBERSHIP_COLUMNS,
            filters={"user_id": user_id, "organization_id": organization_id},
            order_by="created_at",
        )
        memberships = [membership_from_row(row) for row in rows]
        # At most one active membership per pair; inactive ones may linger after departures
        return next((m for m in memberships if m.is_active), memberships[0] if memberships else None)

    async def get_organization(self, organization_id: str) -> Organization | None:
        row = self.db.get_by_id(ORGANIZATIONS_TABLE, organization_id)
        return Organization.model_validate(row) if row else None
