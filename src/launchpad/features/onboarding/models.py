"""Pydantic models for onboarding feature."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.launchpad.features.auth_routing.models import AuthDestination
from src.launchpad.services.database.models import CANONICAL_STEPS

MAX_ONBOARDING_DATA_CHARS = 10000


class OnboardingStatus(BaseModel):
    """Onboarding progress derived from a user's preferences."""

    completed: bool
    current_step: str | None = None
    next_step: str | None = None
    progress: int = Field(ge=0, le=100)
    available_steps: list[str] = Field(default_factory=lambda: list(CANONICAL_STEPS))
    completed_steps: list[str] = Field(default_factory=list)


class UpdateOnboardingRequest(BaseModel):
    """Request model for marking an onboarding step."""

    step: str = Field(
        min_length=1,
        max_length=50,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Step name (letters, numbers, hyphens, underscores)",
    )
    completed: bool = True
    data: dict[str, Any] | None = Field(None, description="Step-specific answers to keep")

    @field_validator("data")
    @classmethod
    def validate_data_size(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        """Reject oversized onboarding payloads."""
        if v is not None and len(json.dumps(v, default=str)) > MAX_ONBOARDING_DATA_CHARS:
            raise ValueError("Onboarding data is too large")
        return v

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "step": "team",
                "completed": True,
                "data": {"invited": ["ana@example.com"]},
            }
        }


class CompleteOnboardingRequest(BaseModel):
    """Request model for finishing onboarding."""

    skip_remaining: bool = False


class OnboardingUserSummary(BaseModel):
    """Subset of the user record returned alongside onboarding status."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


class OnboardingStatusResponse(BaseModel):
    """Response model for GET /auth/onboarding."""

    onboarding: OnboardingStatus
    next_destination: AuthDestination
    data: dict[str, Any] = Field(default_factory=dict)
    user: OnboardingUserSummary


class OnboardingUpdateResponse(BaseModel):
    """Response model for onboarding mutations."""

    success: bool = True
    onboarding: OnboardingStatus
    next_destination: AuthDestination
    step: str | None = None
    completed: bool | None = None
    completed_at: datetime | None = None
    reset_at: datetime | None = None
