from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "jsonrescue"

    candidate_keys: list[str] = Field(
        default_factory=lambda: ["questions", "flashcards", "cards", "items", "data", "results"]
    )
    enable_salvage: bool = True
    enable_repair: bool = True
    log_parse_failures: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="JSONRESCUE_",
        extra="ignore",
    )


settings = Settings()
