"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a value is out of range, the engine fails fast with a clear
error message.

Usage:
    from conditional_escrow.config import get_settings
    settings = get_settings()
    print(settings.dispute_vote_threshold)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from conditional_escrow.domain.enums import ArbitrationMode


class Settings(BaseSettings):
    """Central configuration for the conditional escrow engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_log_level: str = "DEBUG"
    log_json: bool = False

    # --- Arbitration ---
    dispute_vote_threshold: int = Field(default=3, ge=1)
    arbitration_mode: ArbitrationMode = ArbitrationMode.COMMITTEE

    # --- Escrow Defaults ---
    default_refund_percentage: int = Field(default=100, ge=0, le=100)

    # --- Settlement ---
    custody_account: str = "custody"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
