import json
from functools import lru_cache
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Beauty Pro Dashboard")
    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    supabase_url: AnyHttpUrl | None = Field(
        default=None
    )
    supabase_key: str | None = Field(
        default=None
    )
    # None disables the client timeout entirely.
    supabase_timeout: float | None = Field(
        default=None
    )
    use_mock_data: bool = Field(
        default=True
    )
    timezone: str = Field(
        default="UTC"
    )
    login_path: str = Field(
        default="/auth/login"
    )
    session_cookie_name: str = Field(
        default="beautypro_session"
    )
    # Seconds without a request before a session is dropped; None keeps sessions forever.
    session_idle_timeout: float | None = Field(
        default=8 * 60 * 60
    )
    realtime_heartbeat_interval: float = Field(
        default=25.0
    )

    model_config = SettingsConfigDict(env_prefix="BEAUTYPRO_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
