"""Application configuration for the signaling relay."""
from __future__ import annotations

import enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class HostTakeoverPolicy(str, enum.Enum):
    """What happens when a second host joins a room whose host is still online."""

    REPLACE = "replace"
    REJECT = "reject"
    EVICT = "evict"


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    static_dir: str | None = Field(default=None, description="Optional front-end directory served at /")

    heartbeat_interval_seconds: float = Field(default=30.0, gt=0)
    max_name_length: int = Field(default=40, ge=1)
    max_chat_length: int = Field(default=2000, ge=1)
    room_token_length: int = Field(default=8, ge=4, le=32)
    host_takeover_policy: HostTakeoverPolicy = Field(default=HostTakeoverPolicy.REPLACE)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
