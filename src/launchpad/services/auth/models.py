"""Data models for authentication."""

from typing import Any

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """
    Identity resolved from a bearer token by Supabase Auth.

    ``id`` is the identity-provider user ID, stored as ``users.external_id``.
    The application's own user record is looked up from it.

    Attributes:
        id: Identity-provider user ID
        email: User email
        user_metadata: Additional OAuth metadata (full_name, avatar_url, etc.)

    Example:
        >>> user = AuthenticatedUser(
        ...     id="123e4567-e89b-12d3-a456-426614174000",
        ...     email="user@example.com",
        ...     user_metadata={"full_name": "John Doe"}
        ... )
    """

    id: str
    email: str
    user_metadata: dict[str, Any] = {}
