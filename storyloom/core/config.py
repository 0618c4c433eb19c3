"""
Application configuration settings.
"""

import json
import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",  # Ignore extra fields
    )

    # Project Info
    PROJECT_NAME: str = "Storyloom API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Security
    SECRET_KEY: str = "local-dev-secret-key-not-for-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Database - SQLite for local dev, PostgreSQL in production
    DATABASE_URL: str = "sqlite:///./storyloom.db"

    # Generation API (OpenAI-compatible chat completions, xAI Grok by default)
    GROK_API_KEY: str | None = None
    GROK_BASE_URL: str = "https://api.x.ai/v1"
    GROK_MODEL: str = "grok-2-1212"
    GROK_MAX_TOKENS: int = 1000
    GROK_TEMPERATURE: float = 0.7
    GROK_TIMEOUT_SECONDS: float = 30.0

    # Rate limiting (fixed windows, in-process)
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    AI_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    AI_RATE_LIMIT_MAX_REQUESTS: int = 50

    # Built single-page client, served when present
    FRONTEND_DIST_PATH: str = "../frontend/dist"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # CORS - Parse safely from environment
    @property
    def BACKEND_CORS_ORIGINS(self) -> list[str]:
        """Parse CORS origins from environment variable safely."""
        default_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite dev server
        ]
        frontend_url = os.getenv("FRONTEND_URL")
        if frontend_url:
            default_origins.append(frontend_url.strip())

        raw = os.getenv("BACKEND_CORS_ORIGINS")
        if not raw:
            return default_origins

        raw = raw.strip()
        if not raw:
            return default_origins

        # Try to parse as JSON first
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(origin).strip() for origin in parsed if origin]
        except (json.JSONDecodeError, ValueError):
            pass

        # Handle common non-JSON bracket formats seen in .env files:
        # - [http://localhost:3000]
        # - ['http://localhost:3000', 'http://localhost:3001']
        if raw.startswith("[") and raw.endswith("]"):
            inner = raw[1:-1].strip()
            if not inner:
                return default_origins
            parts = [
                part.strip().strip('"').strip("'")
                for part in inner.split(",")
                if part.strip()
            ]
            parts = [p for p in parts if p]
            if parts:
                return parts

        # Fall back to comma-separated
        if "," in raw:
            return [origin.strip() for origin in raw.split(",") if origin.strip()]

        # Single origin
        return [raw]


settings = Settings()
