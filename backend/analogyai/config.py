"""Configuration settings for the AnalogyAI application."""

from typing import Literal
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with LLM provider, storage and auth configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    PROVIDER: Literal["openai", "anthropic"] = "openai"
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None

    # Model Configuration
    MODEL_NAME: str = "gpt-4o"  # if anthropic and left at default, "claude-3-5-sonnet-latest" is used
    TEMPERATURE: float = 0.8
    REGENERATE_TEMPERATURE: float = 0.9  # higher to bias regenerations toward variety
    TIMEOUT_SEC: int = 45
    MAX_TOKENS: int = 1500

    # Storage Configuration
    STORAGE: Literal["database", "memory"] = "database"
    DATABASE_URL: str | None = None
    DATABASE_ECHO: bool = False  # Set to True for SQL query logging

    # Identity resolution
    AUTH_MODE: Literal["token", "header", "static"] = "token"
    STATIC_USER_ID: str = "local-dev-user"
    STATIC_USER_EMAIL: str = "dev@analogy.ai"

    # OAuth2 Configuration
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    SECRET_KEY: str = "your-secret-key-change-this-in-production"  # For JWT signing
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days
    BACKEND_URL: str = "http://localhost:8000"  # Backend URL for OAuth callbacks
    FRONTEND_URL: str = "http://localhost:5173"  # Frontend URL for OAuth redirects

    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get singleton settings instance."""
    return Settings()
