"""Application configuration for the RTC access service."""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

APP_VERSION = "1.0.0"
DEFAULT_API_BASE_URL = "https://api.agora.io"


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    agora_app_id: str = Field(default="")
    agora_app_certificate: str = Field(default="")
    agora_customer_id: str = Field(default="")
    agora_customer_secret: str = Field(default="")
    agora_api_base_url: str = Field(default=DEFAULT_API_BASE_URL)

    token_expire_seconds: int = Field(default=86400, ge=1)
    privilege_expire_seconds: int = Field(default=0, ge=0)

    recording_uid: int = Field(default=999999, ge=1)
    recording_mode: str = Field(default="composite")
    recording_max_idle_time: int = Field(default=30, ge=1)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    webhook_verify_signature: bool = Field(default=True)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("agora_api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@dataclass(frozen=True, slots=True)
class AgoraConfig:
    """Credentials for one Agora project.

    The certificate signs RTC tokens, the customer pair authenticates REST calls and
    the customer secret doubles as the webhook signing key.
    """

    app_id: str
    app_certificate: str = field(repr=False)
    customer_id: str = ""
    customer_secret: str = field(default="", repr=False)
    api_base_url: str = DEFAULT_API_BASE_URL

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "AgoraConfig":
        source = source or get_settings()
        return cls(
            app_id=source.agora_app_id,
            app_certificate=source.agora_app_certificate,
            customer_id=source.agora_customer_id,
            customer_secret=source.agora_customer_secret,
            api_base_url=source.agora_api_base_url.rstrip("/"),
        )

    def is_valid(self) -> bool:
        return bool(self.app_id) and bool(self.app_certificate)

    def is_restful_api_config_valid(self) -> bool:
        return self.is_valid() and bool(self.customer_id) and bool(self.customer_secret)

    def basic_auth_header(self) -> str:
        credentials = f"{self.customer_id}:{self.customer_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
