"""Authentication module delegating token verification to Supabase Auth."""

from src.launchpad.services.auth.dependencies import get_current_user, verify_access_token
from src.launchpad.services.auth.exceptions import AuthenticationError
from src.launchpad.services.auth.models import AuthenticatedUser

__all__ = [
    "get_current_user",
    "verify_access_token",
    "AuthenticationError",
    "AuthenticatedUser",
]
