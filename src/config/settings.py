"""NaviAI scenario manager settings loaded from environment variables."""

from datetime import timedelta, timezone
from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Deployment environment."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application-wide settings loaded from environment variables / .env file.

    All secrets and deployment-specific values live here. Never hardcode them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./naviai.db",
        description="Async connection string (postgresql+asyncpg in deployment).",
    )

    # --- AI / LLM ---
    AI_GATEWAY_API_KEY: str = Field(
        default="",
        description="Vercel AI Gateway key used by the default provider.",
    )
    AI_GATEWAY_BASE_URL: str = Field(
        default="https://ai-gateway.vercel.sh/v1",
        description="OpenAI-compatible base URL of the AI gateway.",
    )
    OPENAI_API_KEY: str = Field(
        default="",
        description="OpenAI API key.",
    )
    GOOGLE_API_KEY: str = Field(
        default="",
        description="Google Gemini API key.",
    )
    DEFAULT_AI_PROVIDER: str = Field(
        default="vercel",
        description="Provider used when a request carries no AI config.",
    )
    DEFAULT_AI_MODEL: str = Field(
        default="openai/gpt-4o-mini",
        description="Model used when a request carries no AI config.",
    )
    LLM_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Per-request timeout for analyzer calls.",
    )
    LLM_MAX_RETRIES: int = Field(
        default=2,
        ge=0,
        description="Retries on transient LLM failures (429, 5xx, transport).",
    )

    # --- Presentation / statistics ---
    DISPLAY_UTC_OFFSET_HOURS: int = Field(
        default=9,
        ge=-12,
        le=14,
        description="Fixed offset used to present timestamps (KST by default).",
    )
    RECENT_WINDOW_DAYS: int = Field(default=7, ge=1)
    TAG_TOP_N: int = Field(default=20, ge=1)
    ACTIVITY_WINDOW: int = Field(default=10, ge=1)

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level.",
    )

    # --- Environment ---
    ENVIRONMENT: Environment = Field(
        default=Environment.DEV,
        description="Deployment environment (dev/staging/prod).",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PROD

    @property
    def display_timezone(self) -> timezone:
        """Fixed-offset timezone used for createdAt strings."""
        return timezone(timedelta(hours=self.DISPLAY_UTC_OFFSET_HOURS))


def get_settings() -> Settings:
    """Factory function for dependency injection via FastAPI Depends."""
    return Settings()
