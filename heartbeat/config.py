"""Configuration settings for the ECG heartbeat backend."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from the environment and an optional ``.env`` file.

    Malformed values fail at startup. A missing ``DATABASE_URL`` is allowed
    and leaves the store unconfigured.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field(default="development", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, gt=0, le=65535, validation_alias="PORT")

    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    pool_size: int = Field(default=5, gt=0, validation_alias="DB_POOL_SIZE")
    pool_timeout_seconds: int = Field(default=10, gt=0, validation_alias="DB_POOL_TIMEOUT")
    query_timeout_seconds: int = Field(
        default=10, gt=0, validation_alias="QUERY_TIMEOUT_SECONDS"
    )

    # None means "on unless production"
    expose_error_details: Optional[bool] = Field(
        default=None, validation_alias="EXPOSE_ERROR_DETAILS"
    )

    @field_validator("database_url")
    @classmethod
    def normalise_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank URL as unset and rewrite the legacy ``postgres://`` scheme."""
        if v is None or v.strip() == "":
            return None
        v = v.strip()
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://"):]
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def show_error_details(self) -> bool:
        if self.expose_error_details is None:
            return not self.is_production
        return self.expose_error_details


settings = Settings()

SERVICE_NAME = "ecg-heartbeat-backend"
API_VERSION = "1.0.0"

# Runtime environment
ENVIRONMENT = settings.environment
IS_PRODUCTION = settings.is_production
LOG_LEVEL = settings.log_level

# Server
HOST = settings.host
PORT = settings.port

# Database configuration
DATABASE_URL = settings.database_url
POOL_SIZE = settings.pool_size
POOL_TIMEOUT_SECONDS = settings.pool_timeout_seconds
QUERY_TIMEOUT_SECONDS = settings.query_timeout_seconds

# Include exception text in 500 responses
EXPOSE_ERROR_DETAILS = settings.show_error_details

# Largest value a 32-bit INTEGER column holds
MAX_DB_INTEGER = 2**31 - 1

# Heart rate classification bounds (inclusive normal range)
BRADYCARDIA_THRESHOLD = 60
TACHYCARDIA_THRESHOLD = 100
