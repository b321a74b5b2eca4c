"""FastAPI dependencies for bearer-token authentication via Supabase Auth."""

import logging
from datetime import UTC, datetime

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.launchpad.services.analytics.posthog import PostHogService
from src.launchpad.services.auth.exceptions import AuthenticationError
from src.launchpad.services.auth.models import AuthenticatedUser
from src.launchpad.services.database.connection import get_supabase_client

security = HTTPBearer()
logger = logging.getLogger(__name__)


def verify_access_token(token: str) -> AuthenticatedUser:
    """
    Resolve an access token to an identity using Supabase Auth.

    Token verification is owned by the identity provider; this only asks it
    who the token belongs to.

    Args:
        token: Bearer token (without "Bearer " prefix)

    Returns:
        AuthenticatedUser with id, email, and user_metadata

    Raises:
        AuthenticationError: If the provider rejects the token or returns no user
    """
    try:
        response = get_supabase_client().auth.get_user(token)
    except Exception as e:
        raise AuthenticationError(f"Token rejected by identity provider: {e}") from e

    identity = getattr(response, "user", None)
    if identity is None or not identity.id:
        raise AuthenticationError("Token did not resolve to a user")
    if not identity.email:
        raise AuthenticationError("Identity has no email address")

    return AuthenticatedUser(
        id=str(identity.id),
        email=identity.email,
        user_metadata=identity.user_metadata or {},
    )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthenticatedUser:
    """
    Extract and validate the caller's identity from the bearer token.

    The resolved user is stored on ``request.state.user`` so the rate limiter
    can key limits per user.

    Args:
        request: Incoming request
        credentials: Bearer token from Authorization header

    Returns:
        AuthenticatedUser with id, email, and user_metadata

    Raises:
        HTTPException: 401 if token invalid/missing

    Example:
        @router.get("/destination")
        async def destination(current_user: AuthenticatedUser = Depends(get_current_user)):
            return {"external_id": current_user.id}
    """
    posthog_service = PostHogService()
    try:
        user = verify_access_token(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"Authentication failed: {e}", extra={"error": str(e)})
        posthog_service.capture(
            distinct_id="anonymous",
            event="authentication_failed",
            properties={"error": "token_rejected"},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        ) from e

    request.state.user = user
    logger.info(f"User authenticated: {user.id} ({user.email})")
    posthog_service.capture(
        distinct_id=user.id,
        event="user_authenticated",
        properties={"timestamp": datetime.now(UTC).isoformat(), "email": user.email},
    )
    return user
