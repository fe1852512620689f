"""Configuration helpers for the news radar service."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    database_url: str = Field(
        "sqlite:///./news_radar.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL; PostgreSQL in production, SQLite locally.",
    )
    database_echo: bool = Field(False, alias="DATABASE_ECHO")
    intent_model: str = Field(
        "gpt-4o-mini", description="Model used to classify free-text queries."
    )
    summarizer_model: str = Field(
        "gpt-4o-mini", description="Model used to write per-article summaries."
    )
    intent_temperature: float = Field(0.3, description="Classifier temperature.")
    summary_temperature: float = Field(0.5, description="Summarizer temperature.")
    summary_max_tokens: int = Field(
        150, description="Max output tokens for each article summary."
    )
    llm_timeout_seconds: float = Field(
        10.0,
        description=(
            "Per-call timeout for the language model. A timeout is handled "
            "like any other collaborator failure."
        ),
    )
    result_limit: int = Field(5, description="Articles returned per retrieval.")
    summary_workers: int = Field(
        1,
        description="Parallel summarizer calls per request; 1 keeps it sequential.",
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL")


def get_settings() -> Settings:
    """Return a settings instance built from the current environment."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(level.upper())
