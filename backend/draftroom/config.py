"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Application
    APP_NAME: str = "Draftroom"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./data/draftroom.db"
    SQLITE_SERIALIZE_WRITES: bool = True  # BEGIN IMMEDIATE for every SQLite transaction

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Sessions
    SECRET_KEY: str = "change-me-in-production-use-a-strong-random-secret-key"
    SESSION_TTL_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = 12

    # Editor
    AUTOSAVE_DELAY_SECONDS: float = 5.0        # quiescence window before an autosave fires
    READING_WORDS_PER_MINUTE: int = 200

    # Export
    EXPORT_FILENAME_MAX_LENGTH: int = 100

    # Bootstrap admin (created on startup when email + password are set)
    ADMIN_EMAIL: str = ""
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_MINUTES * 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
