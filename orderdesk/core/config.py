# orderdesk/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Supabase Postgres connection string, or sqlite:/// for local dev)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - STORAGE_BACKEND: "sql" (default, via DATABASE_URL) | "supabase" (PostgREST tables)
      - SUPABASE_URL / SUPABASE_KEY / SUPABASE_SERVICE_ROLE_KEY (required for "supabase")
      - VOCABULARY_PATH: JSON file overriding the built-in suggestion lists
    """

    PROJECT_NAME: str = "Order Desk API"
    API_V1_STR: str = "/api/v1"

    # Storage
    STORAGE_BACKEND: Literal["sql", "supabase"] = "sql"
    DATABASE_URL: str

    # Supabase project
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Controlled vocabularies for customer / model / color
    VOCABULARY_PATH: str | None = None

    # Seconds to wait for the three dashboard reads before giving up
    DASHBOARD_READ_TIMEOUT: float = 30.0

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
