"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.launchpad.main import app
from src.launchpad.services.auth.dependencies import get_current_user
from src.launchpad.services.auth.models import AuthenticatedUser
from src.launchpad.services.database.models import (
    AuditEvent,
    Membership,
    MembershipStatus,
    Organization,
    User,
)
from src.launchpad.services.directories.dependencies import (
    get_audit_sink,
    get_organization_directory,
    get_user_directory,
)
from src.launchpad.services.directories.users import merge_preferences
from src.launchpad.services.rate_limiter import limiter

TEST_EXTERNAL_ID = "ext-user-1"
TEST_USER_ID = "user-1"


class InMemoryUserDirectory:
    """User directory over raw rows, mirroring the ``users`` table shape."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("users table unavailable")

    async def get(self, user_id: str) -> User | None:
        self._check()
        row = self.rows.get(user_id)
        return User.model_validate(row) if row else None

    async def get_by_external_id(self, external_id: str) -> User | None:
        self._check()
        row = next((r for r in self.rows.values() if r.get("external_id") == external_id), None)
        return User.model_validate(row) if row else None

    async def update_preferences(self, user_id: str, partial: dict[str, Any]) -> User | None:
        self._check()
        row = self.rows.get(user_id)
        if row is None:
            return None
        row["preferences"] = merge_preferences(row.get("preferences") or {}, partial)
        return User.model_validate(row)


class InMemoryOrganizationDirectory:
    """Organization directory over in-memory memberships and organizations."""

    def __init__(self) -> None:
        self.memberships: list[Membership] = []
        self.organizations: dict[str, Organization] = {}
        self.fail_memberships = False
        self.fail_organizations = False

    async def list_memberships_for_user(self, user_id: str) -> list[Membership]:
        if self.fail_memberships:
            raise ConnectionError("memberships table unavailable")
        mine = [m for m in self.memberships if m.user_id == user_id and m.is_active]
        return sorted(mine, key=lambda m: m.created_at or datetime.min.replace(tzinfo=UTC))

    async def get_membership(self, user_id: str, organization_id: str) -> Membership | None:
        if self.fail_memberships:
            raise ConnectionError("memberships table unavailable")
        matches = [
            m
            for m in self.memberships
            if m.user_id == user_id and m.organization_id == organization_id
        ]
        return next((m for m in matches if m.is_active), matches[0] if matches else None)

    async def get_organization(self, organization_id: str) -> Organization | None:
        if self.fail_organizations:
            raise ConnectionError("organizations table unavailable")
        return self.organizations.get(organization_id)


class InMemoryAuditSink:
    """Audit sink collecting events in a list."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []
        self.fail = False

    async def append(self, event: AuditEvent) -> None:
        if self.fail:
            raise ConnectionError("audit_logs table unavailable")
        self.events.append(event)

    @property
    def actions(self) -> list[str]:
        return [e.action for e in self.events]


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Keep per-endpoint rate limits from leaking between tests."""
    enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = enabled


@pytest.fixture
def client() -> TestClient:
    """
    Provide FastAPI test client for API testing.

    Returns:
        TestClient instance for making API requests

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    return TestClient(app)


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def organization_directory() -> InMemoryOrganizationDirectory:
    return InMemoryOrganizationDirectory()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def make_user(user_directory: InMemoryUserDirectory) -> Callable[..., User]:
    """
    Factory storing a user row in the in-memory directory.

    Example:
        >>> user = make_user(preferences={"onboardingSteps": {"profile": True}})
    """

    def _make_user(
        user_id: str = TEST_USER_ID,
        external_id: str = TEST_EXTERNAL_ID,
        email: str = "test@example.com",
        preferences: dict[str, Any] | None = None,
        **fields: Any,
    ) -> User:
        row = {
            "id": user_id,
            "external_id": external_id,
            "email": email,
            "first_name": "Test",
            "last_name": "User",
            "preferences": preferences if preferences is not None else {},
            **fields,
        }
        user_directory.rows[user_id] = row
        return User.model_validate(row)

    return _make_user


@pytest.fixture
def onboarded_preferences() -> dict[str, Any]:
    """Preferences of a user who finished onboarding."""
    return {
        "onboardingCompleted": True,
        "onboardingSteps": {
            "profile": True,
            "organization": True,
            "team": True,
            "preferences": True,
            "tutorial": True,
        },
    }


@pytest.fixture
def make_membership(
    organization_directory: InMemoryOrganizationDirectory,
) -> Callable[..., Membership]:
    """
    Factory adding a membership (and by default its organization) to the directory.

    Example:
        >>> make_membership("org-42", role_name="admin")
    """

    def _make_membership(
        organization_id: str,
        user_id: str = TEST_USER_ID,
        role_name: str | None = "member",
        status: MembershipStatus = MembershipStatus.ACTIVE,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        with_organization: bool = True,
    ) -> Membership:
        created_at = created_at or datetime(2024, 1, 1, tzinfo=UTC)
        membership = Membership(
            id=f"membership-{organization_id}-{user_id}",
            user_id=user_id,
            organization_id=organization_id,
            role_name=role_name,
            organization_name=f"Org {organization_id}",
            status=status,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        organization_directory.memberships.append(membership)
        if with_organization:
            organization_directory.organizations[organization_id] = Organization(
                id=organization_id, name=f"Org {organization_id}", slug=organization_id
            )
        return membership

    return _make_membership


@pytest.fixture
def api_client(
    client: TestClient,
    user_directory: InMemoryUserDirectory,
    organization_directory: InMemoryOrganizationDirectory,
    audit_sink: InMemoryAuditSink,
) -> Iterator[TestClient]:
    """
    Test client authenticated as ``TEST_EXTERNAL_ID`` with in-memory directories.

    Create the user record with ``make_user`` before calling authenticated endpoints.
    """

    def override_get_current_user() -> AuthenticatedUser:
        return AuthenticatedUser(id=TEST_EXTERNAL_ID, email="test@example.com")

    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_user_directory] = lambda: user_directory
    app.dependency_overrides[get_organization_directory] = lambda: organization_directory
    app.dependency_overrides[get_audit_sink] = lambda: audit_sink
    yield client
    app.dependency_overrides = {}
