"""
Client settings using pydantic-settings for type-safe configuration.

Every environment variable the client reads is declared here. Values come
from the process environment or a ``.env`` file, prefixed with ``DORMHUB_``.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CREDENTIAL_POLICIES = ("cookie", "bearer")


class Settings(BaseSettings):
    """
    Settings for talking to the dorm API.

    Defaults match a server running locally on port 3000.
    """

    model_config = SettingsConfigDict(
        env_prefix="DORMHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    api_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the dorm API server",
    )
    credential_policy: str = Field(
        default="cookie",
        description="How the session is attached to requests: 'cookie' or 'bearer'",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout in seconds",
    )
    session_cookie_name: str = Field(
        default="connect.sid",
        description="Name of the cookie that carries the server session",
    )

    @field_validator("api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("credential_policy", mode="after")
    @classmethod
    def validate_credential_policy(cls, v: str) -> str:
        """Validate and normalize credential_policy."""
        v = v.lower()
        if v not in CREDENTIAL_POLICIES:
            raise ValueError(f"Invalid DORMHUB_CREDENTIAL_POLICY: {v}. Must be 'cookie' or 'bearer'")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. Tests that change the environment
    should call ``get_settings.cache_clear()``.
    """
    return Settings()
