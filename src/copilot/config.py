"""
Upstate Home Copilot - Configuration and settings.

CopilotSettings holds everything the onboarding engine and its
infrastructure need. Loaded lazily so importing the package never
touches the environment.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class CopilotSettings(BaseSettings):
    """
    Application settings.

    Remote services are optional: without OpenAI credentials the dialogue
    falls back to templated questions, without Supabase credentials the
    CLI runs against the in-memory store.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"

    # Supabase
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Application
    copilot_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # COPILOT_LOG_PROMPTS=1 - log assistant prompts to local files (dev only)
    copilot_log_prompts: bool = False

    # Dev user for the CLI
    dev_user_id: str = "00000000-0000-0000-0000-000000000002"

    # Assistant phrasing
    assistant_phrasing: bool = True
    assistant_timeout_seconds: float = 8.0
    assistant_temperature: float = 0.7

    # Message feed
    message_history_limit: int = 50
    message_poll_interval_seconds: float = 2.0

    @property
    def is_development(self) -> bool:
        return self.copilot_env == "development"

    @property
    def is_production(self) -> bool:
        return self.copilot_env == "production"

    @property
    def has_openai(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> CopilotSettings:
    """Get cached settings instance."""
    return CopilotSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: CopilotSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
