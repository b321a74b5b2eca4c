"""Post-authentication routing service."""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

from src.launchpad.config import settings
from src.launchpad.features.auth_routing.access import verify_organization_access
from src.launchpad.features.auth_routing.models import (
    AuthDestination,
    OrganizationAccess,
    RoutingRule,
    UserContext,
)
from src.launchpad.features.auth_routing.redirect_validator import RedirectValidator
from src.launchpad.features.onboarding.models import OnboardingStatus
from src.launchpad.features.onboarding.status_resolver import (
    OnboardingStatusResolver,
    default_status,
    onboarding_url,
)
from src.launchpad.services.database.models import AuditEvent, Organization, User
from src.launchpad.services.directories.protocols import (
    AuditSink,
    OrganizationDirectory,
    UserDirectory,
)
from src.launchpad.services.result import ErrorKind, ServiceResult, guarded

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD = "/dashboard"

_EPOCH = datetime.min.replace(tzinfo=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def build_sign_in_url(
    pathname: str,
    search_params: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    sign_in_path: str | None = None,
) -> str:
    """
    Build the sign-in URL for an unauthenticated visit to a protected page.

    The visited path travels as ``redirect_url`` and the page's own query
    parameters are carried along. A repeated key keeps the last value.

    Args:
        pathname: Path the visitor tried to open
        search_params: Query parameters of that visit
        sign_in_path: Sign-in page path (defaults to ``settings.sign_in_path``)

    Returns:
        Relative sign-in URL, e.g. ``/sign-in?redirect_url=%2Fsettings&tab=security``
    """
    sign_in_path = sign_in_path or settings.sign_in_path
    if pathname == "/":
        return sign_in_path

    params: dict[str, str] = {"redirect_url": pathname}
    if search_params:
        params.update(search_params)
    return f"{sign_in_path}?{urlencode(params)}"


def organization_destination(organization_id: str, role: str | None = None) -> str:
    """Landing page inside an organization for the member's role."""
    match (role or "").lower():
        case "admin" | "owner":
            return f"/organizations/{organization_id}/admin"
        case "manager":
            return f"/organizations/{organization_id}/manage"
        case _:
            return f"/organizations/{organization_id}/dashboard"


class AuthRouterService:
    """
    Decides where a user lands after signing in.

    Rules are tried in order and the first one that produces a destination
    wins:

    1. an explicit ``redirect_url`` that passes validation
    2. the next onboarding step while onboarding is incomplete
    3. an ``organization_id`` the user is an active member of
    4. an organization inferred from the user's memberships
    5. the last visited path, if recent and still valid
    6. the user's preferred dashboard, else ``/dashboard``

    Every rule consulted is written to the audit log, whether it produced
    the destination or not. Collaborator failures degrade the rule that hit
    them; anything unexpected yields ``/dashboard`` with the ``fallback`` rule.
    """

    def __init__(
        self,
        users: UserDirectory,
        organizations: OrganizationDirectory,
        audit: AuditSink,
        redirect_validator: RedirectValidator | None = None,
        status_resolver: OnboardingStatusResolver | None = None,
        clock: Callable[[], datetime] = utc_now,
        last_visited_max_age_days: int | None = None,
        sign_in_path: str | None = None,
    ) -> None:
        self.users = users
        self.organizations = organizations
        self.audit = audit
        self.redirect_validator = redirect_validator or RedirectValidator(organizations)
        self.status_resolver = status_resolver or OnboardingStatusResolver(organizations)
        self.clock = clock
        self.last_visited_max_age_days = (
            last_visited_max_age_days
            if last_visited_max_age_days is not None
            else settings.last_visited_max_age_days
        )
        self.sign_in_path = sign_in_path or settings.sign_in_path

    async def get_post_auth_destination(
        self,
        user: User,
        redirect_url: str | None = None,
        organization_id: str | None = None,
        session_metadata: dict[str, Any] | None = None,
    ) -> AuthDestination:
        """
        Determine where to send a user after successful authentication.

        Args:
            user: Signed-in user
            redirect_url: Untrusted URL the user asked to return to
            organization_id: Organization the user asked to enter
            session_metadata: Request details kept in the audit trail (user agent, IP)

        Returns:
            AuthDestination carrying the rule that produced it. Never raises.
        """
        try:
            return await self._resolve_destination(
                user, redirect_url, organization_id, session_metadata or {}
            )
        except Exception as e:
            user_id = getattr(user, "id", None)
            logger.error(
                f"Error determining post-auth destination for user {user_id}: {e}",
                exc_info=True,
                extra={"user_id": user_id, "error_type": "routing_error"},
            )
            await self._log_routing_decision(
                user_id, "routing_error", {"error": str(e), "fallback_used": True}
            )
            return AuthDestination(
                url=DEFAULT_DASHBOARD,
                reason="Fallback due to error",
                rule=RoutingRule.FALLBACK,
                metadata={"error": True, "error_message": str(e)},
            )

    async def _resolve_destination(
        self,
        user: User,
        redirect_url: str | None,
        organization_id: str | None,
        session_metadata: dict[str, Any],
    ) -> AuthDestination:
        context = UserContext(user=user)

        # 1. Explicit redirect
        if redirect_url:
            validation = await self.redirect_validator.validate(redirect_url, context)
            if validation.is_valid and validation.sanitized_url:
                await self._log_routing_decision(
                    user.id,
                    "redirect_url_used",
                    {
                        "original_url": redirect_url,
                        "sanitized_url": validation.sanitized_url,
                        "user_agent": session_metadata.get("user_agent"),
                        "ip_address": session_metadata.get("ip_address"),
                    },
                )
                return AuthDestination(
                    url=validation.sanitized_url,
                    reason="User-requested redirect (validated)",
                    rule=RoutingRule.EXPLICIT_REDIRECT,
                    metadata={"original_url": redirect_url, "validation_passed": True},
                )

            security_issues = [issue.value for issue in validation.security_issues]
            logger.warning(
                f"Blocked post-auth redirect for user {user.id}: {security_issues}",
                extra={"user_id": user.id, "security_issues": security_issues},
            )
            await self._log_routing_decision(
                user.id,
                "redirect_url_blocked",
                {
                    "original_url": redirect_url,
                    "reason": validation.reason,
                    "security_issues": security_issues,
                },
            )

        # 2. Onboarding
        status = await self.get_onboarding_status(user)
        if not status.completed:
            destination_url = await self.get_onboarding_destination(user, status)
            await self._log_routing_decision(
                user.id,
                "onboarding_redirect",
                {
                    "current_step": status.current_step,
                    "next_step": status.next_step,
                    "progress": status.progress,
                    "destination": destination_url,
                },
            )
            return AuthDestination(
                url=destination_url,
                reason="Onboarding incomplete",
                rule=RoutingRule.ONBOARDING,
                requires_onboarding=True,
                metadata={"onboarding_progress": status.progress, "next_step": status.next_step},
            )
        await self._log_routing_decision(user.id, "onboarding_complete", {"progress": status.progress})

        # 3. Requested organization
        if organization_id:
            access = await self.verify_organization_access(user.id, organization_id)
            if access.has_access:
                destination_url = organization_destination(organization_id, access.role)
                await self._log_routing_decision(
                    user.id,
                    "organization_context_used",
                    {
                        "organization_id": organization_id,
                        "role": access.role,
                        "destination": destination_url,
                    },
                )
                return AuthDestination(
                    url=destination_url,
                    reason="Organization context provided",
                    rule=RoutingRule.ORGANIZATION_CONTEXT,
                    organization_context=organization_id,
                    metadata={
                        "user_role": access.role,
                        "organization_name": access.organization_name,
                    },
                )
            await self._log_routing_decision(
                user.id, "organization_context_denied", {"organization_id": organization_id}
            )

        # 4. Inferred organization
        inferred = await self.get_best_organization_destination(user)
        if inferred:
            await self._log_routing_decision(
                user.id,
                "organization_auto_selected",
                {"organization_id": inferred.organization_context, "reason": inferred.reason},
            )
            return inferred
        await self._log_routing_decision(user.id, "organization_auto_skipped", {})

        # 5. Recent path
        last_visited = await self.get_last_visited_destination(user, context)
        if last_visited:
            await self._log_routing_decision(
                user.id,
                "last_visited_used",
                {"destination": last_visited.url, "reason": last_visited.reason},
            )
            return last_visited
        await self._log_routing_decision(
            user.id,
            "last_visited_skipped",
            {"last_visited_path": user.preferences.last_visited_path},
        )

        # 6. Default
        destination = await self.get_personalized_dashboard(user, context)
        await self._log_routing_decision(
            user.id,
            "default_destination",
            {"destination": destination.url, "reason": destination.reason},
        )
        return destination

    def handle_protected_route(
        self,
        pathname: str,
        search_params: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    ) -> str:
        """Sign-in URL for an unauthenticated visit to ``pathname``."""
        return build_sign_in_url(pathname, search_params, self.sign_in_path)

    async def get_onboarding_status(self, user: User) -> OnboardingStatus:
        result = await self.status_resolver.try_resolve(user)
        if not result.ok:
            logger.warning(
                f"Could not resolve onboarding status for user {user.id}, using default: {result.error}",
                extra={"user_id": user.id, "error_code": result.code},
            )
            return default_status()
        return result.unwrap_or(default_status())

    async def get_onboarding_destination(
        self, user: User, status: OnboardingStatus | None = None
    ) -> str:
        """Onboarding page for the user's next step, or the dashboard once finished."""
        status = status or await self.get_onboarding_status(user)
        if status.completed:
            return DEFAULT_DASHBOARD
        return onboarding_url(status.next_step)

    async def verify_organization_access(
        self, user_id: str, organization_id: str
    ) -> OrganizationAccess:
        return await verify_organization_access(self.organizations, user_id, organization_id)

    async def get_best_organization_destination(self, user: User) -> AuthDestination | None:
        """
        Pick an organization dashboard for a user who did not ask for one.

        Preference order: the primary (oldest) membership, then the most
        recently updated membership, then the first membership even if its
        organization record cannot be loaded.

        Returns:
            AuthDestination, or None if the user has no active memberships
        """
        result = await guarded(self.organizations.list_memberships_for_user(user.id))
        if not result.ok:
            logger.warning(
                f"Could not list memberships for user {user.id}: {result.error}",
                extra={"user_id": user.id},
            )
            return None

        memberships = [m for m in result.data or [] if m.is_active]
        if not memberships:
            return None

        primary = memberships[0]
        organization = await self._lookup_organization(primary.organization_id)
        if organization:
            return self._inferred_destination(
                primary.organization_id,
                "Primary organization dashboard",
                {"organization_name": organization.name, "is_primary": True},
            )

        by_recency = sorted(
            memberships[1:],
            key=lambda m: m.updated_at or m.created_at or _EPOCH,
            reverse=True,
        )
        for membership in by_recency:
            organization = await self._lookup_organization(membership.organization_id)
            if organization:
                last_accessed = membership.updated_at or membership.created_at
                return self._inferred_destination(
                    membership.organization_id,
                    "Most recently accessed organization",
                    {
                        "organization_name": organization.name,
                        "last_accessed": last_accessed.isoformat() if last_accessed else None,
                    },
                )

        return self._inferred_destination(
            primary.organization_id,
            "First available organization",
            {
                "organization_name": primary.organization_name,
                "total_organizations": len(memberships),
            },
        )

    async def _lookup_organization(self, organization_id: str) -> Organization | None:
        result = await guarded(self.organizations.get_organization(organization_id))
        if not result.ok:
            logger.warning(
                f"Could not load organization {organization_id}: {result.error}",
                extra={"organization_id": organization_id},
            )
            return None
        return result.data

    @staticmethod
    def _inferred_destination(
        organization_id: str, reason: str, metadata: dict[str, Any]
    ) -> AuthDestination:
        return AuthDestination(
            url=f"/organizations/{organization_id}/dashboard",
            reason=reason,
            rule=RoutingRule.INFERRED_ORGANIZATION,
            organization_context=organization_id,
            metadata=metadata,
        )

    async def get_last_visited_destination(
        self, user: User, context: UserContext | None = None
    ) -> AuthDestination | None:
        """Return the last visited path if it is recent and still passes validation."""
        path = user.preferences.last_visited_path
        visited_at = user.preferences.last_visited_at
        if not path or not visited_at:
            return None

        days_since = (self.clock() - visited_at).total_seconds() / 86400
        if days_since > self.last_visited_max_age_days:
            return None

        validation = await self.redirect_validator.validate(path, context or UserContext(user=user))
        if not validation.is_valid or not validation.sanitized_url:
            return None

        return AuthDestination(
            url=validation.sanitized_url,
            reason="Last visited path (recent)",
            rule=RoutingRule.RECENT_PATH,
            metadata={"last_visited_at": visited_at.isoformat(), "days_since": round(days_since)},
        )

    async def get_personalized_dashboard(
        self, user: User, context: UserContext | None = None
    ) -> AuthDestination:
        preferred = user.preferences.default_dashboard
        if preferred:
            validation = await self.redirect_validator.validate(
                preferred, context or UserContext(user=user)
            )
            if validation.is_valid and validation.sanitized_url:
                return AuthDestination(
                    url=validation.sanitized_url,
                    reason="User preferred dashboard",
                    rule=RoutingRule.DEFAULT,
                    metadata={"is_personalized": True, "preference_set": True},
                )

        return AuthDestination(
            url=DEFAULT_DASHBOARD,
            reason="Default dashboard",
            rule=RoutingRule.DEFAULT,
            metadata={"is_personalized": False, "is_default": True},
        )

    async def resolve_user(self, external_id: str) -> ServiceResult[User]:
        """
        Load the user record for an identity-provider ID.

        Returns:
            ServiceResult with the user, NOT_FOUND if no record exists, or
            COLLABORATOR_FAILURE if the lookup failed
        """
        result = await guarded(self.users.get_by_external_id(external_id))
        if not result.ok:
            logger.error(
                f"Failed to load user for external id {external_id}: {result.error}",
                extra={"external_id": external_id},
            )
            return ServiceResult.failure(result.error, ErrorKind.COLLABORATOR_FAILURE)
        if result.data is None:
            return ServiceResult.failure("User not found", ErrorKind.NOT_FOUND)
        return ServiceResult.success(result.data)

    async def _log_routing_decision(
        self, user_id: str | None, decision: str, metadata: dict[str, Any]
    ) -> None:
        event = AuditEvent(
            user_id=user_id,
            action=f"auth.routing.{decision}",
            resource_type="authentication",
            resource_id=user_id,
            metadata={**metadata, "service": "AuthRouterService"},
            timestamp=self.clock(),
        )
        try:
            await self.audit.append(event)
        except Exception as e:
            # Audit failures never change the routing outcome
            logger.warning(
                f"Failed to log routing decision {decision}: {e}",
                extra={"user_id": user_id, "decision": decision},
            )

