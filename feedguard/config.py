# feedguard/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Nothing here is required: an unconfigured completion provider simply means every
rewrite takes the local fallback path.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

VALID_STRICTNESS = ("relaxed", "moderate", "strict")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_JSON: bool = Field(
        default=True,
        description="Single-line JSON logs. Disable for human-readable local output.",
    )

    # HTTP policy
    SHARED_SECRET: str | None = Field(
        default=None,
        description="Expected X-Proxy-Secret header value. Unset = no auth.",
    )
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins. Empty = any origin.",
    )
    MAX_REQUEST_BYTES: int = Field(
        default=1024 * 1024,
        description="Reject request bodies larger than this (bytes)",
    )

    # Completion service
    COMPLETION_PROVIDER: str = Field(
        default="openai",
        description="Completion provider: openai, none",
    )
    OPENAI_API_KEY: str | None = Field(
        default=None,
        description="OpenAI API key. Unset = rewrites use the local fallback.",
    )
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="Model used for rewrites")
    COMPLETION_TEMPERATURE: float = Field(default=0.4)
    COMPLETION_MAX_TOKENS: int = Field(default=800)
    COMPLETION_TIMEOUT_SECONDS: float = Field(
        default=12.0,
        description="Per-call deadline; on expiry the item takes the fallback path",
    )
    CIRCUIT_FAILURE_THRESHOLD: int = Field(
        default=5,
        description="Consecutive completion failures before remote calls are skipped",
    )
    CIRCUIT_RESET_SECONDS: int = Field(default=30)

    # Rewrite
    REWRITE_MAX_CONCURRENCY: int = Field(
        default=4,
        description="Max in-flight completion calls per rewrite batch",
    )
    REWRITE_CACHE_TTL_SECONDS: int = Field(
        default=600,
        description="TTL for cached remote rewrites. 0 disables the cache.",
    )
    REWRITE_CACHE_MAX_ENTRIES: int = Field(default=1024)

    # Classification
    DEFAULT_STRICTNESS: str = Field(
        default="moderate",
        description="Level used when a request omits or misspells it",
    )

    # Preference storage
    STORAGE_PROVIDER: str = Field(default="local", description="Storage provider: local, s3")
    LOCAL_STORAGE_PATH: str = Field(default="./storage")
    S3_BUCKET: str | None = None
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str = "us-east-1"
    PREFERENCE_KEY: str = Field(
        default="preferences/learned_tokens.json",
        description="Storage key of the persisted like/dislike record",
    )
    PREFERENCE_FLUSH_INTERVAL_SECONDS: float = Field(default=5.0)
    LEARN_MAX_BATCH: int = Field(
        default=200,
        description="Max tokens accepted per like/dislike list in one learn call",
    )

    @field_validator("COMPLETION_PROVIDER", "STORAGE_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return (v or "").lower().strip()

    @field_validator("DEFAULT_STRICTNESS")
    @classmethod
    def check_strictness(cls, v: str) -> str:
        """Fall back to moderate rather than refusing to start."""
        v = (v or "").lower().strip()
        if v not in VALID_STRICTNESS:
            logger.warning(f"Unknown DEFAULT_STRICTNESS '{v}', using 'moderate'")
            return "moderate"
        return v

    @field_validator("REWRITE_MAX_CONCURRENCY", "LEARN_MAX_BATCH", "CIRCUIT_FAILURE_THRESHOLD")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        return max(1, v)

    @field_validator("COMPLETION_TIMEOUT_SECONDS", "PREFERENCE_FLUSH_INTERVAL_SECONDS")
    @classmethod
    def positive_seconds(cls, v: float) -> float:
        return max(0.1, v)

    @property
    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def completion_enabled(self) -> bool:
        return self.COMPLETION_PROVIDER == "openai" and bool(self.OPENAI_API_KEY)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
