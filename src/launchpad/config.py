"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # System Configuration
    api_v1_prefix: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "http://localhost:3007"
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"

    # Supabase Configuration
    supabase_url: str = "https://test.supabase.co"
    supabase_anon_key: str = "test-anon-key"
    supabase_service_role_key: str = "test-service-role-key"

    # Post-auth routing
    app_url: str = "http://localhost:3007"
    allowed_redirect_origins: str = "http://localhost:3007,https://localhost:3007"
    sign_in_path: str = "/sign-in"
    last_visited_max_age_days: int = 7

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"

    @property
    def redirect_origins(self) -> list[str]:
        """Origins a post-auth redirect may point at (app_url always included)."""
        origins = [self.app_url]
        origins.extend(o.strip() for o in self.allowed_redirect_origins.split(",") if o.strip())
        return origins


settings = Settings()
