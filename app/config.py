"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .playback_providers import DEFAULT_PLAYBACK_PROVIDERS, PlaybackProviderDefinition


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ReelHub", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_base_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")
    tmdb_max_retries: int = Field(default=2, alias="TMDB_MAX_RETRIES", ge=0, le=10)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelhub.db", alias="DATABASE_URL"
    )
    watchlist_key: str = Field(default="watchlist", alias="WATCHLIST_KEY")

    playback_providers: tuple[PlaybackProviderDefinition, ...] = Field(
        default=DEFAULT_PLAYBACK_PROVIDERS, alias="PLAYBACK_PROVIDERS"
    )
    playback_params: dict[str, str] = Field(
        default_factory=dict, alias="PLAYBACK_PARAMS"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("watchlist_key")
    @classmethod
    def _require_watchlist_key(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("WATCHLIST_KEY may not be blank")
        return stripped

    @field_validator("playback_providers", mode="before")
    @classmethod
    def _default_when_empty(cls, value: object) -> object:
        if value is None or value == "" or value == [] or value == ():
            return DEFAULT_PLAYBACK_PROVIDERS
        return value

    @field_validator("playback_providers")
    @classmethod
    def _reject_duplicate_providers(
        cls, value: tuple[PlaybackProviderDefinition, ...]
    ) -> tuple[PlaybackProviderDefinition, ...]:
        """Provider names identify fallback slots and must be unique."""

        seen: set[str] = set()
        for definition in value:
            key = definition.name.casefold()
            if key in seen:
                raise ValueError(f"Duplicate playback provider configured: {definition.name}")
            seen.add(key)
        return value

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
