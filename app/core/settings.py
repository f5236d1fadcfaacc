"""
Core settings and environment variables for FeedFind.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "FeedFind"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-memory store for local development without Firebase credentials.
    # Also enables the X-User-Id / X-User-Role development headers.
    USE_MOCK_DB: bool = False

    # Status update workflow
    HISTORY_LIMIT: int = 50
    RECENT_UPDATES_LIMIT: int = 20
    NOTES_MAX_LENGTH: int = 200

    # Read retries (writes are never retried)
    READ_RETRY_ATTEMPTS: int = 3
    READ_RETRY_BASE_DELAY: float = 1.0  # seconds, doubled per attempt

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="allow")

    @property
    def cors_origins_list(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
