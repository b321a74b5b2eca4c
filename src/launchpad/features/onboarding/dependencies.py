"""FastAPI dependencies for onboarding."""

from fastapi import Depends

from src.launchpad.features.onboarding.service import OnboardingService
from src.launchpad.services.directories.dependencies import get_audit_sink, get_user_directory
from src.launchpad.services.directories.protocols import AuditSink, UserDirectory


def get_onboarding_service(
    users: UserDirectory = Depends(get_user_directory),
    audit: AuditSink = Depends(get_audit_sink),
) -> OnboardingService:
    return OnboardingService(users=users, audit=audit)
