"""Onboarding progress mutations."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from src.launchpad.services.database.models import CANONICAL_STEPS, AuditEvent, User
from src.launchpad.services.directories.protocols import AuditSink, UserDirectory
from src.launchpad.services.result import ErrorKind, ServiceResult, guarded

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class OnboardingService:
    """
    Updates the onboarding flags kept in ``users.preferences``.

    Writes go through ``UserDirectory.update_preferences``, which merges the
    ``onboardingSteps`` and ``onboardingData`` maps key by key, so each
    operation only sends the keys it changes.
    """

    def __init__(
        self,
        users: UserDirectory,
        audit: AuditSink,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.users = users
        self.audit = audit
        self.clock = clock

    async def update_onboarding_progress(
        self,
        user_id: str,
        step: str,
        completed: bool = True,
        data: dict[str, Any] | None = None,
    ) -> ServiceResult[User]:
        """
        Mark one onboarding step done (or not done).

        ``onboardingCompleted`` is recomputed over the canonical steps, so
        finishing the last missing step completes onboarding and un-marking
        any step reopens it.

        Args:
            user_id: Internal user ID
            step: Step name; steps outside the canonical list are stored but
                do not count towards completion
            completed: New flag value
            data: Answers collected on the step, stored under ``onboardingData[step]``

        Returns:
            ServiceResult with the updated user
        """
        loaded = await self._load_user(user_id)
        if not loaded.ok:
            return loaded
        user = loaded.data

        steps = {**user.preferences.onboarding_steps, step: completed}
        all_done = all(steps.get(s) is True for s in CANONICAL_STEPS)
        now = self.clock()

        partial: dict[str, Any] = {
            "onboardingSteps": {step: completed},
            "onboardingCompleted": all_done,
            "lastOnboardingUpdate": now.isoformat(),
        }
        if data is not None:
            partial["onboardingData"] = {step: data}

        updated = await self._update(user_id, partial)
        if not updated.ok:
            return updated

        logger.info(
            f"Onboarding step {step} set to {completed} for user {user_id}",
            extra={"user_id": user_id, "step": step, "onboarding_completed": all_done},
        )
        await self._record(
            user_id,
            "onboarding.step_updated",
            {"step": step, "completed": completed, "onboarding_completed": all_done},
        )
        return updated

    async def complete_onboarding(
        self, user_id: str, skip_remaining: bool = False
    ) -> ServiceResult[User]:
        """
        Mark every canonical step done and onboarding complete in one write.

        Args:
            user_id: Internal user ID
            skip_remaining: Whether the user skipped the steps not yet done;
                recorded in the audit trail only

        Returns:
            ServiceResult with the updated user
        """
        loaded = await self._load_user(user_id)
        if not loaded.ok:
            return loaded

        skipped = [
            s for s in CANONICAL_STEPS if loaded.data.preferences.onboarding_steps.get(s) is not True
        ]
        now = self.clock()
        updated = await self._update(
            user_id,
            {
                "onboardingSteps": {s: True for s in CANONICAL_STEPS},
                "onboardingCompleted": True,
                "onboardingCompletedAt": now.isoformat(),
            },
        )
        if not updated.ok:
            return updated

        logger.info(f"Onboarding completed for user {user_id}", extra={"user_id": user_id})
        await self._record(
            user_id,
            "onboarding.completed",
            {"skip_remaining": skip_remaining, "skipped_steps": skipped if skip_remaining else []},
        )
        return updated

    async def reset_onboarding(self, user_id: str) -> ServiceResult[User]:
        """Clear every step flag (stored and canonical) and reopen onboarding."""
        loaded = await self._load_user(user_id)
        if not loaded.ok:
            return loaded

        step_names = [*CANONICAL_STEPS]
        step_names += [s for s in loaded.data.preferences.onboarding_steps if s not in step_names]
        now = self.clock()
        updated = await self._update(
            user_id,
            {
                "onboardingSteps": {s: False for s in step_names},
                "onboardingCompleted": False,
                "onboardingResetAt": now.isoformat(),
            },
        )
        if not updated.ok:
            return updated

        logger.info(f"Onboarding reset for user {user_id}", extra={"user_id": user_id})
        await self._record(user_id, "onboarding.reset", {"steps": step_names})
        return updated

    async def _load_user(self, user_id: str) -> ServiceResult[User]:
        result = await guarded(self.users.get(user_id))
        if not result.ok:
            logger.error(
                f"Failed to load user {user_id}: {result.error}", extra={"user_id": user_id}
            )
            return result
        if result.data is None:
            return ServiceResult.failure("User not found", ErrorKind.NOT_FOUND)
        return result

    async def _update(self, user_id: str, partial: dict[str, Any]) -> ServiceResult[User]:
        result = await guarded(self.users.update_preferences(user_id, partial))
        if not result.ok:
            logger.error(
                f"Failed to update preferences for user {user_id}: {result.error}",
                extra={"user_id": user_id, "updated_keys": sorted(partial.keys())},
            )
            return result
        if result.data is None:
            return ServiceResult.failure("User not found", ErrorKind.NOT_FOUND)
        return result

    async def _record(self, user_id: str, action: str, metadata: dict[str, Any]) -> None:
        event = AuditEvent(
            user_id=user_id,
            action=action,
            resource_type="user",
            resource_id=user_id,
            metadata=metadata,
            timestamp=self.clock(),
        )
        try:
            await self.audit.append(event)
        except Exception as e:
            logger.warning(
                f"Failed to record audit event {action}: {e}",
                extra={"user_id": user_id, "action": action},
            )
