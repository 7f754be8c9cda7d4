"""
Application configuration using Pydantic Settings.

Values are read from environment variables (and an optional .env file).
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./vbagen.db"

    # ===========================================
    # LLM Configuration
    # ===========================================
    # LLM Provider: "gemini-api" | "template"
    # - gemini-api: Gemini API, called with the signed-in user's own key
    # - template: canned VBA solutions, no network access (local development)
    LLM_PROVIDER: Literal["gemini-api", "template"] = "gemini-api"

    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_TOP_K: int = 40
    GEMINI_TOP_P: float = 0.95
    GEMINI_MAX_OUTPUT_TOKENS: int = 2048

    # ===========================================
    # Auth (password + JWT)
    # ===========================================
    AUTH_JWT_SECRET: str = ""
    AUTH_JWT_ISSUER: str = "vbagen-local"
    AUTH_JWT_EXPIRE_MINUTES: int = 60 * 24 * 7
    PASSWORD_HASH_ITERATIONS: int = 600_000

    # Server-side sign-up throttle (per email address)
    SIGNUP_RATE_LIMIT_ATTEMPTS: int = 5
    SIGNUP_RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60

    # Client-side cooldown after a rate-limited sign-up
    SIGNUP_COOLDOWN_SECONDS: int = 60

    # ===========================================
    # Client session
    # ===========================================
    # JSON file shared by every client window; empty keeps it in memory only
    SESSION_STORAGE_PATH: str = ""
    SESSION_STORAGE_KEY: str = "vbagen.auth.session"
    API_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT_SECONDS: float = 15.0

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
