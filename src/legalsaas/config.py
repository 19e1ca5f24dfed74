"""Service settings, read from the environment and an optional .env file."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "CHANGE-ME-IN-PRODUCTION-use-openssl-rand-hex-32"
DEV_ADMIN_PASSWORD = "admin-dev-password"


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Environment-driven settings; names match the environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENVIRONMENT: Environment = Environment.development
    LOG_LEVEL: str = "INFO"

    # Tokens
    JWT_SECRET_KEY: str = DEV_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Cost factor for password and registration key hashes
    BCRYPT_ROUNDS: int = 12

    # Comma-separated origins, or "*"
    CORS_ALLOWED_ORIGINS: str = "*"

    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    # Back-office administrator seeded at startup
    ADMIN_EMAIL: str = "admin@legalsaas.dev"
    ADMIN_PASSWORD: str = DEV_ADMIN_PASSWORD
    ADMIN_NAME: str = "Administrator"

    # Applied to tenants created without explicit values
    DEFAULT_CURRENCY: str = "BRL"
    DEFAULT_PLAN_TYPE: str = "basic"
    DEFAULT_MAX_USERS: int = 5
    DEFAULT_MAX_STORAGE: int = 1073741824  # 1 GiB

    @model_validator(mode="after")
    def _no_dev_secrets_in_production(self) -> Settings:
        if self.ENVIRONMENT == Environment.production:
            if self.JWT_SECRET_KEY == DEV_JWT_SECRET:
                raise ValueError("JWT_SECRET_KEY must be set in production")
            if self.ADMIN_PASSWORD == DEV_ADMIN_PASSWORD:
                raise ValueError("ADMIN_PASSWORD must be set in production")
        return self

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ALLOWED_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
