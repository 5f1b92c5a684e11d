"""Application configuration settings."""
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List

# Get the server directory path
SERVER_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (message store backing table)
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS: explicit list of allowed origins
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Chat client: where the conversation store lives and how often to sync
    STORE_BASE_URL: str = "http://localhost:8000"
    STORE_TIMEOUT_SECONDS: float = 15.0
    POLL_INTERVAL_SECONDS: float = 5.0
    TIME_AGO_REFRESH_SECONDS: float = 30.0

    # Chat rules
    MAX_PINNED: int = 3
    DELETE_FOR_EVERYONE_WINDOW_MINUTES: int = 5

    # Client-local durable state (pinned chats)
    PINNED_CHATS_FILE: str = str(SERVER_DIR / ".phoenix" / "session.json")

    @model_validator(mode="after")
    def _validate_chat_rules(self) -> "Settings":
        if self.POLL_INTERVAL_SECONDS <= 0 or self.TIME_AGO_REFRESH_SECONDS <= 0:
            raise ValueError("Polling and refresh intervals must be positive.")
        if self.MAX_PINNED < 1:
            raise ValueError("MAX_PINNED must be at least 1.")
        if self.DELETE_FOR_EVERYONE_WINDOW_MINUTES < 0:
            raise ValueError("DELETE_FOR_EVERYONE_WINDOW_MINUTES cannot be negative.")
        return self

    class Config:
        env_file = str(SERVER_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
