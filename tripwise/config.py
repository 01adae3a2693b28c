"""Configuration settings for the travel assistant."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, loaded from ``TRIPWISE_*`` environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM
    llm_model: str = "google_genai:gemini-3-flash-preview"
    llm_temperature: float = 0.7

    # Conversation memory
    memory_window: int = 20  # turns, not exchanges
    history_depth: int = 6  # Human turns scanned when the current message names no entity

    # Orchestration
    max_followup_iterations: int = 3
    tool_timeout_s: float = 15.0
    default_origin_city: str = "Tel Aviv"  # empty disables the default-origin guess for flights

    # Data providers
    serpapi_key: str | None = None
    places_dev_mode: bool = False

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once."""
    return Settings()
