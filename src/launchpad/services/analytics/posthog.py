"""PostHog analytics for routing and onboarding events."""

import logging
from typing import Any

import posthog

from src.launchpad.config import settings

logger = logging.getLogger(__name__)

# Added to every event so backend routing events can be told apart from front-end ones
SOURCE_PROPERTIES = {"source": "launchpad-api"}


class PostHogService:
    """
    Tracks product analytics events.

    Does nothing when ``POSTHOG_API_KEY`` is not set. Capture errors are
    logged and dropped so analytics never fails a request.
    """

    def __init__(self) -> None:
        self.enabled = bool(settings.posthog_api_key)
        if self.enabled:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    def capture(
        self, distinct_id: str, event: str, properties: dict[str, Any] | None = None
    ) -> None:
        """
        Track an event.

        Args:
            distinct_id: Internal user ID, or "anonymous" before sign-in
            event: Event name (e.g., "post_auth_destination_resolved", "onboarding_completed")
            properties: Optional event properties

        Example:
            >>> service = PostHogService()
            >>> service.capture(
            ...     "user-123",
            ...     "post_auth_destination_resolved",
            ...     {"rule": "onboarding", "reason": "Onboarding incomplete"}
            ... )
        """
        if not self.enabled:
            return

        try:
            posthog.capture(
                distinct_id=distinct_id,
                event=event,
                properties={**SOURCE_PROPERTIES, **(properties or {})},
            )
        except Exception as e:
            logger.warning(
                f"Failed to capture analytics event {event}: {e}",
                extra={"event": event, "distinct_id": distinct_id},
            )

    def shutdown(self) -> None:
        """Flush queued events; called when the application stops."""
        if not self.enabled:
            return

        try:
            posthog.shutdown()
        except Exception as e:
            logger.warning(f"Failed to flush analytics events: {e}")
