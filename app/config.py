"""
app/config.py — Central configuration loaded from environment variables.
All modules import settings from here; never read os.environ directly elsewhere.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    database_url: str = Field(..., description="PostgreSQL connection URI")

    # ── Identity provider (Clerk) ─────────────────────────────────────────────
    clerk_secret_key: str = Field(..., description="Clerk backend secret key (sk_...)")
    clerk_api_url: str = Field(
        default="https://api.clerk.com/v1",
        description="Clerk Backend API base URL",
    )
    clerk_jwks_url: Optional[str] = Field(
        default=None,
        description="JWKS endpoint used to verify session tokens. Defaults to {clerk_api_url}/jwks",
    )
    admin_role: str = Field(
        default="admin",
        description="Value of public_metadata.role that marks a platform administrator",
    )
    identity_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for identity provider calls",
    )
    token_leeway_seconds: int = Field(
        default=5,
        ge=0,
        description="Clock skew tolerated when checking token exp/nbf",
    )

    # ── Rubrics ───────────────────────────────────────────────────────────────
    max_questions_per_rubric: int = Field(
        default=50,
        gt=0,
        description="Max questions accepted in a single create/update payload",
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("clerk_secret_key")
    @classmethod
    def _check_secret_key(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("sk_"):
            raise ValueError("clerk_secret_key must start with 'sk_'")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level {value!r}")
        return value

    @property
    def jwks_url(self) -> str:
        return self.clerk_jwks_url or f"{self.clerk_api_url.rstrip('/')}/jwks"


# Singleton — import this everywhere
settings = Settings()
