"""Per-user and per-IP rate limits for the routing API."""

from collections.abc import Callable, Sequence

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.launchpad.config import settings


def rate_limit_key(request: Request) -> str:
    """
    Key a request by the signed-in identity, or by client IP before sign-in.

    ``get_current_user`` stores the identity on ``request.state.user``; the
    limit check runs after dependencies resolve, so authenticated routes
    always see it.
    """
    external_id = getattr(getattr(request.state, "user", None), "id", None)
    if external_id:
        return f"user:{external_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


class RateLimitTiers:
    """Limits per endpoint category."""

    # Destination and status reads, roughly one per sign-in or page load
    DEFAULT = ("100/minute", "1000/hour")

    # Onboarding progress mutations
    WRITE = ("30/minute", "200/hour")

    # Sign-in URL construction, keyed by IP
    PUBLIC = ("20/minute", "100/hour")


def tier_limit(tier: Sequence[str]) -> Callable:
    """Decorator applying every limit of a tier. The endpoint needs a ``request: Request`` parameter."""
    return limiter.limit(";".join(tier))


default_rate_limit = tier_limit(RateLimitTiers.DEFAULT)
write_rate_limit = tier_limit(RateLimitTiers.WRITE)
public_rate_limit = tier_limit(RateLimitTiers.PUBLIC)
