"""Tests for database utility functions."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from src.launchpad.services.database.utils import (
    SupabaseQueryBuilder,
    get_query_builder,
)


@pytest.fixture
def mock_client() -> MagicMock:
    """Mock Supabase client."""
    return MagicMock()


@pytest.fixture
def sample_id() -> str:
    """Sample UUID."""
    return str(uuid4())


class TestSupabaseQueryBuilder:
    """Tests for SupabaseQueryBuilder class."""

    def test_get_by_id_found(self, mock_client: MagicMock, sample_id: str) -> None:
        """Test getting record by ID when it exists."""
        mock_client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            {"id": sample_id, "name": "Acme"}
        ]

        builder = SupabaseQueryBuilder(mock_client)
        result = builder.get_by_id("organizations", sample_id)

        assert result is not None
        assert result["id"] == sample_id
        mock_client.table.assert_called_once_with("organizations")
        mock_client.table.return_value.select.assert_called_once_with("*")
        mock_client.table.return_value.select.return_value.eq.assert_called_once_with("id", sample_id)

    def test_get_by_id_not_found(self, mock_client: MagicMock, sample_id: str) -> None:
        """Test getting record by ID when it doesn't exist."""
        mock_client.table().select().eq().execute.return_value.data = []

        builder = SupabaseQueryBuilder(mock_client)
        result = builder.get_by_id("organizations", sample_id)

        assert result is None

    def test_get_by_field_found(self, mock_client: MagicMock) -> None:
        """Test getting record by field value."""
        mock_client.table().select().eq().execute.return_value.data = [
            {"id": "user-1", "external_id": "ext-1", "email": "test@example.com"}
        ]

        builder = SupabaseQueryBuilder(mock_client)
        result = builder.get_by_field("users", "external_id", "ext-1")

        assert result is not None
        assert result["email"] == "test@example.com"

    def test_list_records_with_filters(self, mock_client: MagicMock) -> None:
        """Test listing records with filters and pagination."""
        mock_client.table.return_value.select.return_value.eq.return_value.eq.return_value.order.return_value.range.return_value.execute.return_value.data = [
            {"id": "1", "organization_id": "org-1"},
            {"id": "2", "organization_id": "org-2"},
        ]

        builder = SupabaseQueryBuilder(mock_client)
        results = builder.list_records(
            "organization_memberships",
            filters={"user_id": "user-1", "status": "active"},
            order_by="created_at",
            limit=20,
            offset=0,
        )

        assert len(results) == 2
        mock_client.table.assert_called_once_with("organization_memberships")

    def test_list_records_ascending_without_limit(self, mock_client: MagicMock) -> None:
        """Test listing records in ascending order with embedded columns and no range."""
        query = mock_client.table.return_value.select.return_value
        query.eq.return_value.order.return_value.execute.return_value.data = [{"id": "1"}]

        builder = SupabaseQueryBuilder(mock_client)
        results = builder.list_records(
            "organization_memberships",
            columns="*, organization:organizations(name)",
            filters={"user_id": "user-1"},
            order_by="created_at",
            order_desc=False,
        )

        assert results == [{"id": "1"}]
        mock_client.table.return_value.select.assert_called_once_with(
            "*, organization:organizations(name)"
        )
        query.eq.return_value.order.assert_called_once_with("created_at", desc=False)
        query.eq.return_value.order.return_value.range.assert_not_called()

    def test_insert_record(self, mock_client: MagicMock, sample_id: str) -> None:
        """Test inserting a record."""
        mock_client.table().insert().execute.return_value.data = [
            {"id": sample_id, "action": "auth.routing.default_destination"}
        ]

        builder = SupabaseQueryBuilder(mock_client)
        result = builder.insert_record(
            "audit_logs", {"user_id": "user-1", "action": "auth.routing.default_destination"}
        )

        assert result is not None
        assert result["id"] == sample_id

    def test_insert_record_empty_response(self, mock_client: MagicMock) -> None:
        """Test inserting a record when nothing comes back."""
        mock_client.table().insert().execute.return_value.data = []

        builder = SupabaseQueryBuilder(mock_client)

        assert builder.insert_record("audit_logs", {"action": "x"}) is None

    def test_update_record(self, mock_client: MagicMock, sample_id: str) -> None:
        """Test updating a record by ID."""
        mock_client.table().update().eq().execute.return_value.data = [
            {"id": sample_id, "preferences": {"onboardingCompleted": True}}
        ]

        builder = SupabaseQueryBuilder(mock_client)
        result = builder.update_record(
            "users", sample_id, {"preferences": {"onboardingCompleted": True}}
        )

        assert result is not None
        assert result["preferences"]["onboardingCompleted"] is True

    def test_update_record_not_found(self, mock_client: MagicMock, sample_id: str) -> None:
        """Test updating a record that doesn't exist."""
        mock_client.table().update().eq().execute.return_value.data = []

        builder = SupabaseQueryBuilder(mock_client)

        assert builder.update_record("users", sample_id, {"preferences": {}}) is None


class TestHelperFactory:
    """Tests for helper factory function."""

    @patch("src.launchpad.services.database.utils.get_supabase_admin_client")
    def test_get_query_builder(self, mock_get_admin_client: MagicMock) -> None:
        """Test getting query builder instance (admin client by default)."""
        mock_client = MagicMock()
        mock_get_admin_client.return_value = mock_client

        builder = get_query_builder()

        assert isinstance(builder, SupabaseQueryBuilder)
        assert builder.client == mock_client

    @patch("src.launchpad.services.database.utils.get_supabase_client")
    def test_get_query_builder_without_admin(self, mock_get_client: MagicMock) -> None:
        """Test getting query builder that respects RLS."""
        mock_client = MagicMock()
        mock_get_client.return_value = mock_client

        builder = get_query_builder(use_admin=False)

        assert builder.client == mock_client

    def test_get_query_builder_with_client(self, mock_client: MagicMock) -> None:
        """Test getting query builder with custom client."""
        builder = get_query_builder(mock_client)

        assert isinstance(builder, SupabaseQueryBuilder)
        assert builder.client == mock_client
