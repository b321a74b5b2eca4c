"""FastAPI dependency providers for the Supabase-backed directories."""

from src.launchpad.services.database import get_query_builder
from src.launchpad.services.directories.audit import SupabaseAuditSink
from src.launchpad.services.directories.organizations import SupabaseOrganizationDirectory
from src.launchpad.services.directories.users import SupabaseUserDirectory


def get_user_directory() -> SupabaseUserDirectory:
    return SupabaseUserDirectory(get_query_builder())


def get_organization_directory() -> SupabaseOrganizationDirectory:
    return SupabaseOrganizationDirectory(get_query_builder())


def get_audit_sink() -> SupabaseAuditSink:
    return SupabaseAuditSink(get_query_builder())
