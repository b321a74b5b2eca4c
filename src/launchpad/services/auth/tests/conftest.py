"""Shared fixtures for authentication tests."""

from unittest.mock import Mock

import pytest


@pytest.fixture
def mock_external_id() -> str:
    """Provide a consistent identity-provider user ID."""
    return "123e4567-e89b-12d3-a456-426614174000"


@pytest.fixture
def access_token() -> str:
    """Provide a mock access token for testing."""
    return "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.mock.token"


@pytest.fixture
def mock_supabase_client(mock_external_id: str) -> Mock:
    """Mock Supabase client whose auth.get_user resolves the token to a user."""
    identity = Mock()
    identity.id = mock_external_id
    identity.email = "test@example.com"
    identity.user_metadata = {"full_name": "Test User"}

    mock_client = Mock()
    mock_client.auth.get_user.return_value = Mock(user=identity)
    return mock_client
