from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _database_url(url: Optional[str]) -> str:
    if url:
        # Render hands out "postgres://..."; pin the psycopg (v3) driver.
        if "://" in url and "+" not in url.split("://", 1)[0]:
            if url.startswith("postgres://"):
                return url.replace("postgres://", "postgresql+psycopg://", 1)
            if url.startswith("postgresql://"):
                return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url
    return "sqlite:///./bgmi_auth.db"


class Settings(BaseSettings):
    """Process configuration, read from environment variables of the same name."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    service_name: str = "bgmi-auth"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./bgmi_auth.db"
    redis_url: Optional[str] = None

    jwt_secret: str = "change_me"
    jwt_alg: str = "HS256"
    jwt_exp_min: int = 7 * 24 * 60

    otp_exp_minutes: int = 5
    # Echo the code back to the client when mail could not be delivered.
    otp_disclosure_enabled: bool = True

    mail_enabled: bool = True
    brevo_api_key: Optional[str] = None
    brevo_from: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("brevo_from", "email_from", "smtp_from"),
    )
    mail_sender_name: str = "BGMI Esports"
    mail_connect_timeout_seconds: float = 3.0
    mail_timeout_seconds: float = 5.0

    # Comma-separated list.
    cors_origins: str = "*"

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_database_url(cls, v):
        return _database_url(v)

    @field_validator("redis_url", "brevo_api_key", "brevo_from", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v):
        return str(v).upper()

    @property
    def allowed_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]


def load_settings() -> Settings:
    """Build the process settings once at startup; the result is passed to everything that needs it."""
    return Settings()
