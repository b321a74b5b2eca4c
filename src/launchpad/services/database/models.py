"""Pydantic models for database entities."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OnboardingStep(str, Enum):
    """Onboarding steps in canonical order."""

    PROFILE = "profile"
    ORGANIZATION = "organization"
    TEAM = "team"
    PREFERENCES = "preferences"
    TUTORIAL = "tutorial"


CANONICAL_STEPS: list[str] = [step.value for step in OnboardingStep]


class MembershipStatus(str, Enum):
    """Organization membership lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


def _coerce_datetime(value: Any) -> datetime | None:
    """
    Parse a stored timestamp, treating naive values as UTC and garbage as missing.

    Numbers are epoch milliseconds, the way the web client stores ``Date.now()``.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class UserPreferences(BaseModel):
    """
    Typed view over the free-form ``users.preferences`` JSON column.

    Keys are stored in camelCase (``onboardingSteps``, ``lastVisitedPath``...).
    Unknown keys are kept as extras so a read-modify-write never drops data
    written by other parts of the product. Legacy or malformed values are
    migrated on read:

    - missing or non-object ``onboardingSteps`` becomes ``{}``
    - any flag that is not literally ``true`` becomes ``False``
    - unparsable timestamps become ``None``, naive ones are taken as UTC and
      numbers are read as epoch milliseconds
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    onboarding_completed: bool = False
    onboarding_steps: dict[str, bool] = Field(default_factory=dict)
    onboarding_data: dict[str, Any] = Field(default_factory=dict)
    skip_team_setup: bool = False
    last_visited_path: str | None = None
    last_visited_at: datetime | None = None
    default_dashboard: str | None = None
    account_status: str | None = None

    @field_validator("onboarding_completed", "skip_team_setup", mode="before")
    @classmethod
    def _strict_flag(cls, value: Any) -> bool:
        return value is True

    @field_validator("onboarding_steps", mode="before")
    @classmethod
    def _migrate_steps(cls, value: Any) -> dict[str, bool]:
        if not isinstance(value, dict):
            return {}
        return {str(step): flag is True for step, flag in value.items()}

    @field_validator("onboarding_data", mode="before")
    @classmethod
    def _migrate_data(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("last_visited_path", "default_dashboard", "account_status", mode="before")
    @classmethod
    def _optional_string(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value else None

    @field_validator("last_visited_at", mode="before")
    @classmethod
    def _migrate_timestamp(cls, value: Any) -> datetime | None:
        return _coerce_datetime(value)


class User(BaseModel):
    """User record synced from the identity provider."""

    id: str
    external_id: str | None = None
    email: str
    first_name: str | None = None
    last_name: str | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", "external_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    @field_validator("preferences", mode="before")
    @classmethod
    def _default_preferences(cls, value: Any) -> Any:
        return value if value is not None else {}


class Organization(BaseModel):
    """Organization (tenant) model."""

    id: str
    name: str | None = None
    slug: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)


class Membership(BaseModel):
    """User membership in an organization with a role."""

    id: str | None = None
    user_id: str
    organization_id: str
    role_id: str | None = None
    role_name: str | None = None
    organization_name: str | None = None
    status: MembershipStatus = MembershipStatus.ACTIVE
    joined_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", "user_id", "organization_id", "role_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    @field_validator("joined_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _utc_timestamp(cls, value: Any) -> datetime | None:
        return _coerce_datetime(value)

    @property
    def is_active(self) -> bool:
        """Whether the membership currently grants access."""
        return self.status == MembershipStatus.ACTIVE


class AuditEvent(BaseModel):
    """Append-only audit log entry."""

    user_id: str | None = None
    organization_id: str | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
