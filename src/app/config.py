from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    # Paid catalog (Spoonacular)
    SPOONACULAR_API_KEY: Optional[str] = None
    SPOONACULAR_API_URL: str = "https://api.spoonacular.com/recipes"

    # Free seed source (TheMealDB)
    MEALDB_API_URL: str = "https://www.themealdb.com/api/json/v1/1"

    # OpenAI-compatible chat completion endpoint
    COMPLETION_API_URL: str = "https://ai.hackclub.com/chat/completions"
    COMPLETION_API_KEY: Optional[str] = None
    COMPLETION_MODEL: str = "gpt-3.5-turbo"

    GENERATION_POOL_CAPACITY: int = Field(default=5, ge=1)
    SEARCH_SEED_BATCH: int = Field(default=5, ge=0)
    SEED_FETCH_DELAY_SECONDS: float = Field(default=0.1, ge=0)
    HTTP_TIMEOUT_SECONDS: float = 20.0
    SOURCE_MAX_ATTEMPTS: int = Field(default=2, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
