from typing import ClassVar, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Generative model (Gemini generateContent)
    GEN_API_KEY: Optional[str] = Field(default=None)
    GEN_MODEL: str = Field(default="gemini-2.5-flash", description="Generative model name")
    GEN_API_BASE: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generative language API",
    )
    GEN_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature for the investigation prompt")

    # Server-side OCR
    USE_SERVER_VISION: bool = Field(default=True, description="Run Vision OCR on submitted images")
    VISION_API_BASE: str = Field(default="https://vision.googleapis.com/v1", description="Vision API base URL")

    # Shared state (rate limit, quota, cache). In-process store when unset.
    REDIS_URL: Optional[str] = Field(default=None, description="Redis connection URL for multi-instance state")

    # Abuse controls
    RATE_LIMIT_PER_MIN: int = Field(default=20, description="Per-caller requests allowed per rolling minute")
    DAILY_QUOTA: int = Field(default=200, description="Per-session requests allowed per UTC day")
    CACHE_TTL_SECONDS: int = Field(default=3600, description="Investigation cache lifetime in seconds")
    REQUIRE_SESSION_ID: bool = Field(default=False, description="Reject requests without a session id (401)")
    ALLOW_TEST_HEADERS: bool = Field(default=False, description="Honour X-Test-RL-Limit outside production")
    ENVIRONMENT: Literal["development", "test", "production"] = Field(default="development")

    # Source verification
    ARCHIVE_INDEX_URL: str = Field(
        default="https://web.archive.org/cdx/search/cdx", description="Snapshot index (CDX) endpoint"
    )
    ARCHIVE_WEB_BASE: str = Field(default="https://web.archive.org/web", description="Snapshot replay base URL")
    VERIFY_MAX_CONCURRENT: int = Field(default=4, description="Concurrent source verifications per request")

    LOG_LEVEL: str = Field(default="INFO", description="Root log level for service loggers")

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def test_headers_enabled(self) -> bool:
        return self.ALLOW_TEST_HEADERS and self.ENVIRONMENT != "production"


settings = Settings()
