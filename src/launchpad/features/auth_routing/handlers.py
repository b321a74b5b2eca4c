"""API handlers for post-authentication routing."""

import logging

from fastapi import APIRouter, Depends, Query, Request

from src.launchpad.features.auth_routing.dependencies import (
    get_auth_router_service,
    get_current_app_user,
)
from src.launchpad.features.auth_routing.models import (
    AuthDestination,
    RoutingRule,
    SignInUrlResponse,
)
from src.launchpad.features.auth_routing.service import AuthRouterService, build_sign_in_url
from src.launchpad.services.analytics.posthog import PostHogService
from src.launchpad.services.database.models import User
from src.launchpad.services.rate_limiter import default_rate_limit, public_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/destination", response_model=AuthDestination)
@default_rate_limit
async def get_post_auth_destination(
    request: Request,
    redirect_url: str | None = Query(None, max_length=2048, description="Page to return to"),
    organization_id: str | None = Query(None, max_length=100, description="Organization to enter"),
    user: User = Depends(get_current_app_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
) -> AuthDestination:
    """
    Resolve where the signed-in user should land.

    Called by the front end right after sign-in. Always answers with a
    destination; the ``rule`` field says which routing rule produced it.

    Args:
        redirect_url: Untrusted return URL from the sign-in page
        organization_id: Organization the user picked, if any
        user: Application user for the bearer token

    Returns:
        AuthDestination

    Raises:
        HTTPException: 401 if token invalid, 404 if the identity has no user record
    """
    session_metadata = {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }
    destination = await router_service.get_post_auth_destination(
        user,
        redirect_url=redirect_url,
        organization_id=organization_id,
        session_metadata=session_metadata,
    )

    posthog_service = PostHogService()
    if redirect_url and destination.rule != RoutingRule.EXPLICIT_REDIRECT:
        posthog_service.capture(
            distinct_id=user.id,
            event="redirect_url_blocked",
            properties={"redirect_url": redirect_url},
        )
    posthog_service.capture(
        distinct_id=user.id,
        event="post_auth_destination_resolved",
        properties={
            "rule": destination.rule.value,
            "reason": destination.reason,
            "requires_onboarding": bool(destination.requires_onboarding),
        },
    )
    logger.info(
        f"Post-auth destination for user {user.id}: {destination.url} ({destination.rule.value})",
        extra={"user_id": user.id, "rule": destination.rule.value},
    )
    return destination


@router.get("/sign-in-url", response_model=SignInUrlResponse)
@public_rate_limit
async def get_sign_in_url(
    request: Request,
    pathname: str = Query(..., min_length=1, max_length=2048, description="Protected page path"),
) -> SignInUrlResponse:
    """
    Build the sign-in URL for an unauthenticated visit to a protected page.

    Every query parameter other than ``pathname`` is carried over to the
    sign-in URL.

    Example:
        GET /auth/sign-in-url?pathname=/settings/profile&tab=security
        -> {"url": "/sign-in?redirect_url=%2Fsettings%2Fprofile&tab=security"}
    """
    preserved = [(k, v) for k, v in request.query_params.multi_items() if k != "pathname"]
    return SignInUrlResponse(url=build_sign_in_url(pathname, preserved))
