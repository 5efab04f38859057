"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="calendar-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")

    # Scheduling
    business_timezone: str = Field(
        default="America/Sao_Paulo",
        description="IANA timezone whose wall clock appointment times are written in",
    )
    load_min_interval_seconds: float = Field(
        default=3.0,
        description="Minimum seconds between two list reloads of the same kind",
    )

    # Scheduling API client
    scheduling_api_url: str = Field(
        default="http://localhost:8080/api/v1",
        description="Base URL of the scheduling REST API used by the orchestrator",
    )
    scheduling_api_timeout_seconds: float = Field(default=10.0, description="HTTP timeout for scheduling API calls")
    scheduling_api_max_retries: int = Field(default=3, description="Attempts for idempotent reads on network errors")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
