"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://loophub:loophub@db:5432/loophub"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Auth (tokens are issued by the external auth provider)
    supabase_jwt_secret: str = "jwt-secret-placeholder"
    jwt_audience: str = "authenticated"

    # API
    cors_origins: list[str] = ["http://localhost:3000"]
    base_url: str | None = None
    vercel_url: str | None = None

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Community rules
    username_change_cooldown_days: int = 30
    max_pinned_threads: int = 3
    max_communities_per_user: int = 3
    hide_duration_hours: int = 12


@lru_cache
def get_settings() -> Settings:
    return Settings()
