"""Thin query helpers over the Supabase table API."""

import logging
from typing import Any

from supabase import Client

from src.launchpad.services.database.connection import get_supabase_admin_client, get_supabase_client

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _first(response: Any) -> Row | None:
    return response.data[0] if response.data else None


class SupabaseQueryBuilder:
    """
    Row-level reads and writes used by the directories.

    Every method runs a single PostgREST request and returns plain dicts.
    Errors from the client propagate to the caller.
    """

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get_by_id(self, table: str, record_id: str, columns: str = "*") -> Row | None:
        """Fetch one row by primary key, or None."""
        return self.get_by_field(table, "id", str(record_id), columns)

    def get_by_field(self, table: str, field: str, value: Any, columns: str = "*") -> Row | None:
        """
        Fetch the first row whose ``field`` equals ``value``.

        Example:
            >>> user = builder.get_by_field("users", "external_id", "user_2abc")
        """
        logger.debug(f"Select {columns} from {table} where {field} = {value}")
        return _first(self.client.table(table).select(columns).eq(field, value).execute())

    def list_records(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        order_desc: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Row]:
        """
        List rows matching every equality filter.

        Args:
            table: Table name
            columns: Select clause; may embed relations such as
                ``"*, organization:organizations(name)"``
            filters: Column/value pairs, combined with AND
            order_by: Column to sort on
            order_desc: Sort descending (default True)
            limit: Page size; no paging when None
            offset: Rows to skip when ``limit`` is given

        Example:
            >>> memberships = builder.list_records(
            ...     "organization_memberships",
            ...     columns="*, organization:organizations(name), role:roles(name)",
            ...     filters={"user_id": user_id, "status": "active"},
            ...     order_by="created_at",
            ...     order_desc=False,
            ... )
        """
        query = self.client.table(table).select(columns)
        for field, value in (filters or {}).items():
            query = query.eq(field, value)
        if order_by:
            query = query.order(order_by, desc=order_desc)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)

        return query.execute().data

    def insert_record(self, table: str, data: Row) -> Row | None:
        """Insert one row and return it as stored."""
        return _first(self.client.table(table).insert(data).execute())

    def update_record(self, table: str, record_id: str, data: Row) -> Row | None:
        """Update one row by primary key; None when no row matched."""
        return _first(self.client.table(table).update(data).eq("id", str(record_id)).execute())


def get_query_builder(client: Client | None = None, use_admin: bool = True) -> SupabaseQueryBuilder:
    """
    Build a query builder, on the service-role client unless told otherwise.

    Args:
        client: Explicit client (wins over ``use_admin``)
        use_admin: Use the RLS-bypassing service-role client (default True)
    """
    if client is None:
        client = get_supabase_admin_client() if use_admin else get_supabase_client()
    return SupabaseQueryBuilder(client)
