"""API handlers for onboarding progress endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.launchpad.features.auth_routing.dependencies import (
    get_auth_router_service,
    get_current_app_user,
)
from src.launchpad.features.auth_routing.service import AuthRouterService
from src.launchpad.features.onboarding.dependencies import get_onboarding_service
from src.launchpad.features.onboarding.models import (
    CompleteOnboardingRequest,
    OnboardingStatusResponse,
    OnboardingUpdateResponse,
    OnboardingUserSummary,
    UpdateOnboardingRequest,
)
from src.launchpad.features.onboarding.service import OnboardingService
from src.launchpad.services.analytics.posthog import PostHogService
from src.launchpad.services.database.models import User
from src.launchpad.services.rate_limiter import default_rate_limit, write_rate_limit
from src.launchpad.services.result import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/onboarding", tags=["onboarding"])


def _unwrap_user(result: ServiceResult[User], detail: str) -> User:
    """Return the updated user or raise the matching HTTP error."""
    if result.ok:
        return result.data
    if result.code == ErrorKind.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.get("", response_model=OnboardingStatusResponse)
@default_rate_limit
async def get_onboarding_status(
    request: Request,
    user: User = Depends(get_current_app_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
) -> OnboardingStatusResponse:
    """
    Get the current user's onboarding status.

    Returns:
        Status, the destination the user would be routed to now, the answers
        collected so far and a summary of the user record
    """
    try:
        onboarding = await router_service.get_onboarding_status(user)
        next_destination = await router_service.get_post_auth_destination(user)

        return OnboardingStatusResponse(
            onboarding=onboarding,
            next_destination=next_destination,
            data=user.preferences.onboarding_data,
            user=OnboardingUserSummary(
                id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
            ),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching onboarding status for user {user.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch onboarding status. Please try again.",
        ) from e


@router.post("", response_model=OnboardingUpdateResponse)
@write_rate_limit
async def update_onboarding_progress(
    request: Request,
    req: UpdateOnboardingRequest,
    user: User = Depends(get_current_app_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
    onboarding_service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingUpdateResponse:
    """
    Mark an onboarding step as done (or not done).

    Args:
        req: Step name, completion flag and optional step answers
        user: Application user for the bearer token

    Returns:
        Updated status and the destination the user should go to next

    Raises:
        HTTPException: 404 if user not found
        HTTPException: 422 if the step name or data is invalid
        HTTPException: 500 if the update failed
    """
    try:
        result = await onboarding_service.update_onboarding_progress(
            user.id, req.step, completed=req.completed, data=req.data
        )
        updated = _unwrap_user(result, "Failed to update onboarding progress")

        onboarding = await router_service.get_onboarding_status(updated)
        next_destination = await router_service.get_post_auth_destination(updated)

        posthog_service = PostHogService()
        posthog_service.capture(
            distinct_id=user.id,
            event="onboarding_step_updated",
            properties={
                "step": req.step,
                "completed": req.completed,
                "has_data": req.data is not None,
                "progress": onboarding.progress,
            },
        )

        return OnboardingUpdateResponse(
            onboarding=onboarding,
            next_destination=next_destination,
            step=req.step,
            completed=req.completed,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating onboarding for user {user.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update onboarding progress",
        ) from e


@router.put("", response_model=OnboardingUpdateResponse)
@write_rate_limit
async def complete_onboarding(
    request: Request,
    req: CompleteOnboardingRequest,
    user: User = Depends(get_current_app_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
    onboarding_service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingUpdateResponse:
    """
    Complete onboarding for the current user.

    Raises:
        HTTPException: 404 if user not found
        HTTPException: 500 if the update failed
    """
    try:
        result = await onboarding_service.complete_onboarding(
            user.id, skip_remaining=req.skip_remaining
        )
        updated = _unwrap_user(result, "Failed to complete onboarding")

        onboarding = await router_service.get_onboarding_status(updated)
        next_destination = await router_service.get_post_auth_destination(updated)

        posthog_service = PostHogService()
        posthog_service.capture(
            distinct_id=user.id,
            event="onboarding_completed",
            properties={"skip_remaining": req.skip_remaining},
        )

        return OnboardingUpdateResponse(
            onboarding=onboarding,
            next_destination=next_destination,
            completed=True,
            completed_at=(updated.preferences.model_extra or {}).get("onboardingCompletedAt"),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error completing onboarding for user {user.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to complete onboarding",
        ) from e


@router.delete("", response_model=OnboardingUpdateResponse)
@write_rate_limit
async def reset_onboarding(
    request: Request,
    user: User = Depends(get_current_app_user),
    router_service: AuthRouterService = Depends(get_auth_router_service),
    onboarding_service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingUpdateResponse:
    """Reset onboarding so the user goes through it again."""
    try:
        result = await onboarding_service.reset_onboarding(user.id)
        updated = _unwrap_user(result, "Failed to reset onboarding")

        onboarding = await router_service.get_onboarding_status(updated)
        next_destination = await router_service.get_post_auth_destination(updated)

        posthog_service = PostHogService()
        posthog_service.capture(distinct_id=user.id, event="onboarding_reset", properties={})
        logger.info(f"Onboarding reset requested by user {user.id}")

        return OnboardingUpdateResponse(
            onboarding=onboarding,
            next_destination=next_destination,
            completed=False,
            reset_at=(updated.preferences.model_extra or {}).get("onboardingResetAt"),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error resetting onboarding for user {user.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset onboarding",
        ) from e
