"""Shared services: persistence, directories, auth, analytics and rate limiting."""

from src.launchpad.services.analytics.posthog import PostHogService
from src.launchpad.services.result import ErrorKind, ServiceResult, guarded

__all__ = [
    "ErrorKind",
    "PostHogService",
    "ServiceResult",
    "guarded",
]
