"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.launchpad.config import settings
from src.launchpad.features.auth_routing.handlers import router as auth_routing_router
from src.launchpad.features.onboarding.handlers import router as onboarding_router
from src.launchpad.services.analytics.posthog import PostHogService
from src.launchpad.services.rate_limiter import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    logger.info(
        "Starting post-auth routing API",
        extra={
            "app_url": settings.app_url,
            "redirect_origins": settings.redirect_origins,
            "rate_limit_enabled": settings.rate_limit_enabled,
        },
    )

    yield

    # Flush analytics events still queued in the PostHog client
    PostHogService().shutdown()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Launchpad API",
    description="Post-authentication routing and onboarding progress API",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
logger.info(f"Origins : {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth_routing_router, prefix=settings.api_v1_prefix, tags=["auth"])
app.include_router(onboarding_router, prefix=settings.api_v1_prefix, tags=["onboarding"])


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
