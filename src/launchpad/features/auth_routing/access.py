"""Organization access checks shared by redirect validation and routing."""

import logging

from src.launchpad.features.auth_routing.models import OrganizationAccess
from src.launchpad.services.directories.protocols import OrganizationDirectory
from src.launchpad.services.result import guarded

logger = logging.getLogger(__name__)


async def verify_organization_access(
    organizations: OrganizationDirectory, user_id: str, organization_id: str
) -> OrganizationAccess:
    """
    Check whether a user holds an active membership in an organization.

    Lookup failures deny access.

    Args:
        organizations: Organization directory to consult
        user_id: Internal user ID
        organization_id: Organization to check

    Returns:
        OrganizationAccess with the member's role and organization name when granted
    """
    result = await guarded(organizations.get_membership(user_id, organization_id))
    if not result.ok:
        logger.warning(
            f"Error verifying organization access for user {user_id}: {result.error}",
            extra={"user_id": user_id, "organization_id": organization_id},
        )
        return OrganizationAccess(has_access=False)

    membership = result.data
    if membership is None or not membership.is_active:
        return OrganizationAccess(has_access=False)

    return OrganizationAccess(
        has_access=True,
        role=membership.role_name,
        organization_name=membership.organization_name,
    )
