"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
import logging
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

from kyc_app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_ENCRYPTION_KEY = "default-encryption-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "KYC Vault API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"   # development | staging | production

    # --- Storage ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'kyc_vault.db'}"
    STORAGE_BACKEND: str = "sql"       # sql | memory

    # --- Security ---
    ENCRYPTION_KEY: str = DEFAULT_ENCRYPTION_KEY
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- KYC Policy ---
    REQUIRE_AADHAAR: bool = False
    RECHECK_PAN_ON_UPDATE: bool = True
    RELEASE_PAN_ON_DELETE: bool = True

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def uses_default_key(self) -> bool:
        return not self.ENCRYPTION_KEY or self.ENCRYPTION_KEY == DEFAULT_ENCRYPTION_KEY

    def check_encryption_key(self) -> None:
        """Refuse the built-in key in production, warn about it elsewhere."""
        if not self.uses_default_key:
            return
        if self.ENVIRONMENT.lower() == "production":
            raise ConfigurationError(
                "ENCRYPTION_KEY is not set; refusing to start in production with the default key"
            )
        logger.warning("ENCRYPTION_KEY not configured, using insecure default key")


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
