"""FastAPI dependencies for post-auth routing."""

import logging

from fastapi import Depends, HTTPException, status

from src.launchpad.features.auth_routing.service import AuthRouterService
from src.launchpad.services.auth.dependencies import get_current_user
from src.launchpad.services.auth.models import AuthenticatedUser
from src.launchpad.services.database.models import User
from src.launchpad.services.directories.dependencies import (
    get_audit_sink,
    get_organization_directory,
    get_user_directory,
)
from src.launchpad.services.directories.protocols import (
    AuditSink,
    OrganizationDirectory,
    UserDirectory,
)
from src.launchpad.services.result import ErrorKind

logger = logging.getLogger(__name__)


def get_auth_router_service(
    users: UserDirectory = Depends(get_user_directory),
    organizations: OrganizationDirectory = Depends(get_organization_directory),
    audit: AuditSink = Depends(get_audit_sink),
) -> AuthRouterService:
    return AuthRouterService(users=users, organizations=organizations, audit=audit)


async def get_current_app_user(
    current_user: AuthenticatedUser = Depends(get_current_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
) -> User:
    """
    Load the application user record for the authenticated identity.

    Raises:
        HTTPException: 404 if the identity has no user record
        HTTPException: 500 if the lookup failed
    """
    result = await router_service.resolve_user(current_user.id)
    if result.ok:
        return result.data

    if result.code == ErrorKind.NOT_FOUND:
        logger.warning(
            f"No user record for identity {current_user.id}",
            extra={"external_id": current_user.id},
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to load user. Please try again.",
    )
