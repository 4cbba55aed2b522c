"""Configuration management using Pydantic settings."""

from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "JoAi Connect"
    VERSION: str = "1.0.0"

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5678",
            "http://127.0.0.1:5678"
        ]
    )

    # JoAi API credentials
    JOAI_BASE_URL: str = Field(default="https://api.joai.com")
    JOAI_API_KEY: Optional[str] = Field(default=None)
    JOAI_REQUEST_TIMEOUT: float = Field(default=30.0)

    # Trigger webhooks
    # Public base URL the JoAi service can reach this instance on (tunnel URLs rotate)
    JOAI_WEBHOOK_BASE_URL: str = Field(default="http://localhost:8000")
    JOAI_WEBHOOK_NAME: str = Field(default="Workflow Webhook")
    JOAI_WEBHOOK_DESCRIPTION: str = Field(default="Webhook for workflow automation")
    JOAI_WEBHOOK_TIMEOUT: int = Field(default=30, ge=1, le=300)
    JOAI_WEBHOOK_MAX_RETRIES: int = Field(default=3, ge=0, le=10)
    JOAI_WEBHOOK_SECRET_MODE: Literal["derived", "random"] = Field(
        default="derived",
        description="'derived' keeps joai_{workflow}_{node} tokens, 'random' stores a generated secret"
    )
    JOAI_REQUIRE_WEBHOOK_SECRET: bool = Field(
        default=False,
        description="Reject inbound callbacks that carry no secret token header"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Environment settings
    ENVIRONMENT: str = Field(default="development")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
