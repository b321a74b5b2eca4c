"""Pydantic models for post-authentication routing."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.launchpad.services.database.models import User


class RoutingRule(str, Enum):
    """Rule that produced a post-auth destination, in evaluation order."""

    EXPLICIT_REDIRECT = "explicit_redirect"
    ONBOARDING = "onboarding"
    ORGANIZATION_CONTEXT = "organization_context"
    INFERRED_ORGANIZATION = "inferred_organization"
    RECENT_PATH = "recent_path"
    DEFAULT = "default"
    FALLBACK = "fallback"


class SecurityIssue(str, Enum):
    """Machine-readable reasons a redirect URL was rejected."""

    MALFORMED_URL = "malformed_url"
    EXTERNAL_ORIGIN = "external_origin"
    BLOCKED_PATH = "blocked_path"
    PATH_NOT_ALLOWED = "path_not_allowed"
    SUSPICIOUS_PARAMETERS = "suspicious_parameters"
    ORGANIZATION_ACCESS_DENIED = "organization_access_denied"
    VALIDATION_ERROR = "validation_error"


class AuthDestination(BaseModel):
    """Where to send a user after sign-in, and why."""

    url: str = Field(description="Application-relative path to navigate to")
    reason: str = Field(description="Human-readable decision tag")
    rule: RoutingRule
    requires_onboarding: bool | None = None
    organization_context: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "url": "/onboarding/team",
                "reason": "Onboarding incomplete",
                "rule": "onboarding",
                "requires_onboarding": True,
                "organization_context": None,
                "metadata": {"onboarding_progress": 20, "next_step": "team"},
            }
        }


class RedirectValidationResult(BaseModel):
    """Outcome of validating an untrusted redirect URL."""

    is_valid: bool
    sanitized_url: str | None = None
    reason: str | None = None
    security_issues: list[SecurityIssue] = Field(default_factory=list)


class SignInUrlResponse(BaseModel):
    """Response model for GET /auth/sign-in-url."""

    url: str


@dataclass
class OrganizationAccess:
    """Result of checking a user's access to an organization."""

    has_access: bool
    role: str | None = None
    organization_name: str | None = None


@dataclass
class UserContext:
    """Caller context a redirect URL is validated against."""

    user: User
