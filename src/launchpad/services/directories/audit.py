"""Supabase-backed audit sink."""

from src.launchpad.services.database.models import AuditEvent
from src.launchpad.services.database.utils import SupabaseQueryBuilder

AUDIT_LOGS_TABLE = "audit_logs"


class SupabaseAuditSink:
    """Appends audit events to the ``audit_logs`` table.

    Errors propagate; callers decide whether an audit failure matters.
    """

    def __init__(self, db: SupabaseQueryBuilder) -> None:
        self.db = db

    async def append(self, event: AuditEvent) -> None:
        self.db.insert_record(
            AUDIT_LOGS_TABLE,
            {
                "user_id": event.user_id,
                "organization_id": event.organization_id,
                "action": event.action,
                "resource_type": event.resource_type,
                "resource_id": event.resource_id,
                "metadata": {**event.metadata, "timestamp": event.timestamp.isoformat()},
            },
        )
