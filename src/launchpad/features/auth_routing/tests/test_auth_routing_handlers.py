"""Tests for post-auth routing API handlers."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.launchpad.services.database.models import User

DESTINATION_URL = "/api/v1/auth/destination"
SIGN_IN_URL = "/api/v1/auth/sign-in-url"


@pytest.fixture
def mock_posthog():
    with patch("src.launchpad.features.auth_routing.handlers.PostHogService") as mock:
        yield mock.return_value


def test_destination_for_onboarded_member(
    api_client: TestClient,
    make_user: Callable[..., User],
    make_membership,
    onboarded_preferences: dict[str, Any],
    audit_sink,
    mock_posthog: MagicMock,
) -> None:
    """Test a validated redirect is returned and tracked."""
    make_user(preferences=onboarded_preferences)
    make_membership("org-42")

    response = api_client.get(
        DESTINATION_URL,
        params={"redirect_url": "/organizations/org-42/dashboard"},
        headers={"User-Agent": "pytest-agent"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "/organizations/org-42/dashboard"
    assert body["reason"] == "User-requested redirect (validated)"
    assert body["rule"] == "explicit_redirect"
    assert audit_sink.events[0].metadata["user_agent"] == "pytest-agent"
    mock_posthog.capture.assert_called_once_with(
        distinct_id="user-1",
        event="post_auth_destination_resolved",
        properties={
            "rule": "explicit_redirect",
            "reason": "User-requested redirect (validated)",
            "requires_onboarding": False,
        },
    )


def test_destination_blocks_external_redirect(
    api_client: TestClient,
    make_user: Callable[..., User],
    onboarded_preferences: dict[str, Any],
    mock_posthog: MagicMock,
) -> None:
    """Test an external redirect is not followed and is tracked as blocked."""
    make_user(preferences=onboarded_preferences)

    response = api_client.get(
        DESTINATION_URL, params={"redirect_url": "https://evil.example/dashboard"}
    )

    assert response.status_code == 200
    assert response.json()["url"] == "/dashboard"
    events = [c.kwargs["event"] for c in mock_posthog.capture.call_args_list]
    assert events == ["redirect_url_blocked", "post_auth_destination_resolved"]


def test_destination_with_organization_context(
    api_client: TestClient,
    make_user: Callable[..., User],
    make_membership,
    onboarded_preferences: dict[str, Any],
    mock_posthog: MagicMock,
) -> None:
    """Test the organization_id query parameter selects the organization page."""
    make_user(preferences=onboarded_preferences)
    make_membership("org-7", role_name="owner")

    response = api_client.get(DESTINATION_URL, params={"organization_id": "org-7"})

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "/organizations/org-7/admin"
    assert body["organization_context"] == "org-7"
    assert body["rule"] == "organization_context"


def test_destination_unknown_user(api_client: TestClient) -> None:
    """Test identities without a user record get 404."""
    response = api_client.get(DESTINATION_URL)

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_destination_user_lookup_failure(api_client: TestClient, user_directory) -> None:
    """Test user lookup failures return 500."""
    user_directory.fail = True

    response = api_client.get(DESTINATION_URL)

    assert response.status_code == 500


def test_destination_requires_auth(client: TestClient) -> None:
    """Test requests without a bearer token are rejected."""
    response = client.get(DESTINATION_URL)

    assert response.status_code in (401, 403)


def test_sign_in_url_preserves_params(client: TestClient) -> None:
    """Test the sign-in URL carries the path and other query parameters."""
    response = client.get(
        SIGN_IN_URL, params={"pathname": "/settings/profile", "tab": "security"}
    )

    assert response.status_code == 200
    assert response.json() == {"url": "/sign-in?redirect_url=%2Fsettings%2Fprofile&tab=security"}


def test_sign_in_url_for_root(client: TestClient) -> None:
    """Test the root path needs no redirect parameter."""
    response = client.get(SIGN_IN_URL, params={"pathname": "/"})

    assert response.status_code == 200
    assert response.json() == {"url": "/sign-in"}


def test_sign_in_url_requires_pathname(client: TestClient) -> None:
    """Test pathname is required."""
    response = client.get(SIGN_IN_URL)

    assert response.status_code == 422
