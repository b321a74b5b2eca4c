"""Contracts for the directories the routing and onboarding services depend on."""

from typing import Any, Protocol, runtime_checkable

from src.launchpad.services.database.models import AuditEvent, Membership, Organization, User


@runtime_checkable
class UserDirectory(Protocol):
    """Protocol for user record access.

    Implementations provide actual storage access (Supabase, in-memory fakes).
    """

    async def get(self, user_id: str) -> User | None:
        """Get user by internal ID."""
        ...

    async def get_by_external_id(self, external_id: str) -> User | None:
        """Get user by identity-provider ID."""
        ...

    async def update_preferences(self, user_id: str, partial: dict[str, Any]) -> User | None:
        """Merge ``partial`` into the stored preferences (see ``merge_preferences``)."""
        ...


@runtime_checkable
class OrganizationDirectory(Protocol):
    """Protocol for organization and membership lookups."""

    async def list_memberships_for_user(self, user_id: str) -> list[Membership]:
        """Active memberships of a user, oldest first."""
        ...

    async def get_membership(self, user_id: str, organization_id: str) -> Membership | None:
        """Get user's membership in an organization, if any."""
        ...

    async def get_organization(self, organization_id: str) -> Organization | None:
        """Get organization by ID."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Append-only audit event log."""

    async def append(self, event: AuditEvent) -> None:
        """Record an event."""
        ...
