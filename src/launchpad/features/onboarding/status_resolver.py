"""Derives onboarding progress from stored preferences."""

import math
from collections.abc import Callable

from src.launchpad.features.onboarding.models import OnboardingStatus
from src.launchpad.services.database.models import CANONICAL_STEPS, OnboardingStep, User
from src.launchpad.services.directories.protocols import OrganizationDirectory
from src.launchpad.services.result import ErrorKind, ServiceResult, guarded

ONBOARDING_PATHS = {step: f"/onboarding/{step}" for step in CANONICAL_STEPS}


def onboarding_url(step: str | None) -> str:
    """Path of an onboarding step page; unknown steps start over at the profile page."""
    return ONBOARDING_PATHS.get(step or "", ONBOARDING_PATHS[OnboardingStep.PROFILE.value])


def calculate_progress(completed_count: int, total: int) -> int:
    """Percentage of steps done, rounded half up."""
    if total <= 0:
        return 0
    return min(100, math.floor(100 * completed_count / total + 0.5))


def default_status() -> OnboardingStatus:
    """Conservative status used when progress cannot be determined."""
    return OnboardingStatus(
        completed=False,
        next_step=OnboardingStep.PROFILE.value,
        progress=0,
        available_steps=list(CANONICAL_STEPS),
        completed_steps=[],
    )


def skip_team_setup(user: User) -> bool:
    return user.preferences.skip_team_setup is True


class OnboardingStatusResolver:
    """
    Computes a user's onboarding status.

    Steps count as done only while they form an unbroken prefix of the
    canonical order, so a user who somehow finished ``team`` before
    ``organization`` is still sent to ``organization``. Two steps may be
    skipped when choosing the next one:

    - ``organization`` when the user already belongs to an organization
    - ``team`` when ``should_skip_team`` says so (``skipTeamSetup`` by default)

    Example:
        >>> resolver = OnboardingStatusResolver(organizations)
        >>> status = await resolver.resolve(user)
        >>> status.next_step, status.progress
        ('organization', 20)
    """

    def __init__(
        self,
        organizations: OrganizationDirectory,
        should_skip_team: Callable[[User], bool] | None = None,
    ) -> None:
        self.organizations = organizations
        self.should_skip_team = should_skip_team or skip_team_setup

    async def resolve(self, user: User) -> OnboardingStatus:
        """Resolve the status, falling back to ``default_status()`` on any failure."""
        result = await self.try_resolve(user)
        return result.unwrap_or(default_status())

    async def try_resolve(self, user: User) -> ServiceResult[OnboardingStatus]:
        """
        Resolve the status, reporting lookup failures instead of hiding them.

        Args:
            user: User whose preferences hold the onboarding flags

        Returns:
            ServiceResult with the status, or a COLLABORATOR_FAILURE when the
            membership lookup failed
        """
        preferences = user.preferences
        steps = preferences.onboarding_steps

        if preferences.onboarding_completed or all(steps.get(s) is True for s in CANONICAL_STEPS):
            return ServiceResult.success(
                OnboardingStatus(
                    completed=True,
                    progress=100,
                    available_steps=list(CANONICAL_STEPS),
                    completed_steps=list(CANONICAL_STEPS),
                )
            )

        completed_steps: list[str] = []
        next_step = OnboardingStep.PROFILE.value
        for step in CANONICAL_STEPS:
            if steps.get(step) is not True:
                next_step = step
                break
            completed_steps.append(step)
        current_step = completed_steps[-1] if completed_steps else None

        if next_step == OnboardingStep.ORGANIZATION.value:
            memberships = await guarded(self.organizations.list_memberships_for_user(user.id))
            if not memberships.ok:
                return ServiceResult.failure(
                    f"Membership lookup failed: {memberships.error}",
                    ErrorKind.COLLABORATOR_FAILURE,
                )
            if any(m.is_active for m in memberships.data or []):
                next_step = OnboardingStep.TEAM.value

        if next_step == OnboardingStep.TEAM.value:
            try:
                skip_team = self.should_skip_team(user)
            except Exception as e:
                return ServiceResult.failure(f"Skip-team check failed: {e}", ErrorKind.INTERNAL)
            if skip_team:
                next_step = OnboardingStep.PREFERENCES.value

        return ServiceResult.success(
            OnboardingStatus(
                completed=False,
                current_step=current_step,
                next_step=next_step,
                progress=calculate_progress(len(completed_steps), len(CANONICAL_STEPS)),
                available_steps=list(CANONICAL_STEPS),
                completed_steps=completed_steps,
            )
        )
