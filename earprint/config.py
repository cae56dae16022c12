"""
Earprint — Settings

Every knob comes from the environment or a ``.env`` file. ``get_settings``
is cached, so callers (and tests that patch it) share one instance.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    DATABASE_URL: str = "sqlite+aiosqlite:///./earprint.db"

    # Categories and spectrum
    DEFAULT_FILTER_MODE: Literal["precise", "ballpark"] = "precise"
    SPECTRUM_SEED: Optional[int] = None  # None: unseeded picks and rerolls

    # LLM providers
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    GEMINI_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    LLM_MAX_TOKENS: int = Field(default=1024, gt=0)
    LLM_MAX_ATTEMPTS: int = 3
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Stored provider keys are Fernet-encrypted when this is set
    FERNET_KEY: str = ""

    # Runtime
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 70.0
    ALLOWED_ORIGINS: str = "*"

    @field_validator("LLM_MAX_ATTEMPTS")
    @classmethod
    def _at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"LLM_MAX_ATTEMPTS must be at least 1, got {v}")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
