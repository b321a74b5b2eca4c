"""Typed result contract for service and collaborator boundaries."""

from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced across service boundaries."""

    NOT_FOUND = "not_found"
    VALIDATION_FAILURE = "validation_failure"
    COLLABORATOR_FAILURE = "collaborator_failure"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """
    Outcome of a service call: either ``data`` or an ``error`` with its ``code``.

    Example:
        >>> result = await onboarding_service.complete_onboarding(user_id)
        >>> if not result.ok:
        ...     logger.warning(f"Could not complete onboarding: {result.error}")
    """

    data: T | None = None
    error: str | None = None
    code: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T | None = None) -> "ServiceResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: str, code: ErrorKind) -> "ServiceResult[T]":
        return cls(error=error, code=code)

    def unwrap_or(self, default: T) -> T:
        """Return the data, or ``default`` when the call failed or returned nothing."""
        if not self.ok or self.data is None:
            return default
        return self.data


async def guarded(call: Awaitable[T]) -> ServiceResult[T]:
    """
    Await a collaborator call and turn any exception into a failed result.

    Logging is left to the caller, which knows what the degraded default is.
    """
    try:
        return ServiceResult.success(await call)
    except Exception as e:
        return ServiceResult.failure(str(e) or type(e).__name__, ErrorKind.COLLABORATOR_FAILURE)
