from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # Extraction service (any OpenAI-compatible endpoint)
    llm_api_key: str = ""
    llm_base_url: str = "https://integrate.api.nvidia.com/v1"
    llm_model: str = "meta/llama-3.3-70b-instruct"
    llm_timeout: int = 60
    llm_max_input_chars: int = 12000
    llm_max_cards: int = Field(10, ge=1, le=50)

    # Document source
    wikipedia_api_url: str = "https://en.wikipedia.org/w/api.php"
    wikipedia_allowed_hosts: List[str] = ["en.wikipedia.org", "wikipedia.org"]
    wikipedia_timeout: float = 20.0
    wikipedia_user_agent: str = "FlashcardIngest/0.1 (educational flashcard generator)"

    # Preferences
    preferences_backend: Literal["memory", "redis"] = "memory"
    mock_mode_preference_key: str = "use_mock_mode"
    redis_host: str = "localhost"
    redis_port: int = 6379


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
