from __future__ import annotations

import json
from typing import ClassVar, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # env: dev|stage|prod
    APP_ENV: str = "dev"
    API_V1_PREFIX: str = "/v1"

    # DB
    DATABASE_URL: str = "postgresql+asyncpg://shadow:shadow@db:5432/shadow_calendar"
    REDIS_URL: str | None = None

    # JWT (tokens are issued by the identity service, we only verify them)
    JWT_SECRET_KEY: str = Field(default="CHANGE_ME_IN_STAGE_AND_PROD")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_SECONDS: int = 900  # 15m

    # HTTP & CORS Configuration
    # Important: When CORS_ALLOW_CREDENTIALS=True, CORS_ALLOW_ORIGINS must not contain "*"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_ORIGINS: list[str] = Field(default_factory=list)
    DEFAULT_TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Google Maps (directions + geocoding); without a key transit is estimated
    GOOGLE_MAPS_API_KEY: str | None = None
    GOOGLE_MAPS_BASE_URL: str = "https://maps.googleapis.com/maps/api"
    TRANSIT_TIMEOUT_SECONDS: float = 10.0

    # Caches
    CACHE_BACKEND: Literal["memory", "redis"] = "memory"
    GEOCODE_CACHE_TTL_SECONDS: int = 60 * 60 * 24  # 24h
    GEOCODE_CACHE_MAX_ENTRIES: int = 5000
    TRANSIT_CACHE_TTL_SECONDS: int = 60 * 60 * 6  # 6h
    TRANSIT_CACHE_MAX_ENTRIES: int = 5000

    # Batch transit enrichment
    TRANSIT_BATCH_CONCURRENCY: int = 5
    TRANSIT_BATCH_MAX_JOBS: int = 50

    # Transit rate limiting (active only when REDIS_URL is set)
    TRANSIT_RL_LIMIT: int = 60
    TRANSIT_RL_WINDOW_SECONDS: int = 60

    # Shadow calendar
    DEFAULT_TRANSIT_MODE: Literal["lynx", "car", "rideshare", "walk"] = "lynx"
    DEFAULT_MAX_COMMUTE_MINUTES: int = 30
    PREFLIGHT_HORIZON_DAYS: int = 14
    PREFLIGHT_MAX_CONFLICTS_PER_EVENT: int = 2
    CONFLICT_LOOKAROUND_HOURS: int = 24

    INSECURE_DEFAULT_VALUES: ClassVar[set[str]] = {
        "CHANGE_ME_IN_STAGE_AND_PROD",
        "CHANGE_ME",
        "SECRET_KEY",
        "YOUR_KEY_HERE",
    }

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        allowed = {"dev", "stage", "prod"}
        if value not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}, got '{value}'")
        return value

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_secrets(cls, value: str, info: ValidationInfo) -> str:
        """Default secrets are tolerated in dev only."""
        env = info.data.get("APP_ENV", "dev")
        if env == "dev":
            return value

        if value in cls.INSECURE_DEFAULT_VALUES:
            raise ValueError(
                f"{info.field_name} must be set to a secure value in {env} environment. "
                f"Current value '{value}' is not allowed."
            )
        if len(value) < 16:
            raise ValueError(f"{info.field_name} must be at least 16 characters long in {env} environment.")
        return value

    @field_validator("CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        """Parse CORS origins from string (JSON array) or list."""
        if value is None:
            return []
        if isinstance(value, list):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def validate_cors_config(cls, value: list[str], info: ValidationInfo) -> list[str]:
        env = info.data.get("APP_ENV", "dev")
        allow_credentials = info.data.get("CORS_ALLOW_CREDENTIALS", True)

        if allow_credentials and "*" in value:
            if env == "dev":
                # browsers reject "*" with credentials; fall back to local dev origins
                return ["http://localhost:3000", "http://localhost:8080", "http://127.0.0.1:3000"]
            raise ValueError(
                f"CORS_ALLOW_ORIGINS cannot contain '*' when CORS_ALLOW_CREDENTIALS=True in {env} environment. "
                f"Please specify explicit origins."
            )

        if env in ["stage", "prod"] and not value:
            raise ValueError(
                f"CORS_ALLOW_ORIGINS must be explicitly configured in {env} environment when CORS_ALLOW_CREDENTIALS=True."
            )
        return value

    @field_validator("TRANSIT_BATCH_CONCURRENCY", "PREFLIGHT_MAX_CONFLICTS_PER_EVENT", "PREFLIGHT_HORIZON_DAYS")
    @classmethod
    def validate_positive(cls, value: int, info: ValidationInfo) -> int:
        if value < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return value


settings = Settings()
