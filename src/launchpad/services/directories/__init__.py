"""Directories (users, organizations, audit log) consumed by the routing services."""

from src.launchpad.services.directories.audit import SupabaseAuditSink
from src.launchpad.services.directories.organizations import SupabaseOrganizationDirectory
from src.launchpad.services.directories.protocols import (
    AuditSink,
    OrganizationDirectory,
    UserDirectory,
)
from src.launchpad.services.directories.users import SupabaseUserDirectory, merge_preferences

__all__ = [
    "AuditSink",
    "OrganizationDirectory",
    "UserDirectory",
    "SupabaseAuditSink",
    "SupabaseOrganizationDirectory",
    "SupabaseUserDirectory",
    "merge_preferences",
]
