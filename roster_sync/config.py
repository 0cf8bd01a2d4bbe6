"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Roster Sync"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Database (Turso)
    turso_database_url: str | None = Field(default=None)
    turso_auth_token: str | None = Field(default=None)

    # Anthropic (table extraction, shift normalization, notification copy)
    anthropic_api_key: str | None = Field(default=None)
    anthropic_model: str = Field(default="claude-sonnet-4-5")
    anthropic_copy_model: str = Field(default="claude-haiku-4-5")

    # Embedding provider (OpenAI-compatible /embeddings endpoint)
    embedding_api_url: str = Field(default="https://api.openai.com/v1/embeddings")
    embedding_api_key: str | None = Field(default=None)
    embedding_model: str = Field(
        default="text-embedding-3-large",
        description="Must match the model used for stored identity embeddings",
    )
    embedding_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum in-flight embedding requests per ingestion",
    )

    # Identity resolution
    vector_sim_threshold: float = Field(
        default=0.83,
        ge=0.0,
        le=1.0,
        description="Minimum final score for a name to match an identity",
    )
    alias_max_edit_distance: int = Field(default=2, ge=0)
    alias_confidence_floor: float = Field(default=0.9, ge=0.0, le=1.0)

    # Roster versioning
    version_allocation_attempts: int = Field(default=5, ge=1)

    # Notifications
    notification_window_minutes: int = Field(default=10, ge=1)
    notification_sweep_interval_minutes: int = Field(default=5, ge=1)
    notification_timezone: str = Field(default="Australia/Sydney")
    fcm_server_key: str | None = Field(default=None)
    email_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Transactional email endpoint accepting from/to/subject/text JSON",
    )
    email_api_key: str | None = Field(default=None)
    email_from: str = Field(default="Roster Sync <rosters@example.com>")

    http_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
