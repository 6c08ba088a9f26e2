# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

import httpx
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration settings.

    Netskope connection settings are read from NETSKOPE_* variables
    (NETSKOPE_API_KEY is accepted as a legacy alias of NETSKOPE_API_TOKEN).
    Service settings use their plain field names. Instances are frozen.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Application
    app_name: str = "NPA Gateway"
    app_version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    workers: int = 1

    # Netskope API
    base_url: str = Field("", validation_alias=AliasChoices("NETSKOPE_BASE_URL", "base_url"))
    api_token: str = Field(
        "",
        validation_alias=AliasChoices("NETSKOPE_API_TOKEN", "NETSKOPE_API_KEY", "api_token"),
        repr=False,
    )
    timeout_ms: int = Field(30_000, gt=0, validation_alias=AliasChoices("NETSKOPE_TIMEOUT", "timeout_ms"))
    retry_attempts: int = Field(3, ge=1, validation_alias=AliasChoices("NETSKOPE_RETRY_ATTEMPTS", "retry_attempts"))
    retry_delay_ms: int = Field(1_000, ge=0, validation_alias=AliasChoices("NETSKOPE_RETRY_DELAY", "retry_delay_ms"))

    # Response cache (GET only)
    cache_ttl_seconds: int = Field(300, ge=0, validation_alias=AliasChoices("NETSKOPE_CACHE_TTL", "cache_ttl_seconds"))
    cache_max_entries: int = Field(1_000, ge=1, validation_alias=AliasChoices("NETSKOPE_CACHE_SIZE", "cache_max_entries"))

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        return v.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @model_validator(mode="after")
    def require_credentials(self) -> "Settings":
        """Fail fast when the Netskope endpoint or token is unusable."""
        problems: list[str] = []
        if not self.base_url:
            problems.append("NETSKOPE_BASE_URL is required")
        else:
            try:
                url = httpx.URL(self.base_url)
            except httpx.InvalidURL:
                url = None
            if url is None or url.scheme not in ("http", "https") or not url.host:
                problems.append(f"NETSKOPE_BASE_URL is not a valid http(s) URL: {self.base_url!r}")
        if not self.api_token.strip():
            problems.append("NETSKOPE_API_TOKEN (or NETSKOPE_API_KEY) is required")
        if problems:
            raise ValueError("; ".join(problems))
        return self

    @property
    def timeout_seconds(self) -> float:
        """Request deadline in seconds."""
        return self.timeout_ms / 1000

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "prod"


def load_settings(**overrides) -> Settings:
    """Build settings, converting validation failures to ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            msg = err["msg"].removeprefix("Value error, ")
            loc = ".".join(str(part) for part in err["loc"])
            problems.append(f"{loc}: {msg}" if loc else msg)
        raise ConfigurationError(problems) from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
