"""Configuration module for Lembreto Service.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings for Lembreto Service.

    All settings can be overridden via environment variables.
    Example: export DATABASE_URL="mysql+pymysql://..."
    """

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./lembreto.db"
    """Database connection URL. Default: SQLite file in current directory"""

    # API Server Configuration
    API_HOST: str = "0.0.0.0"
    """API server host address"""

    API_PORT: int = 3000
    """API server port"""

    API_PREFIX: str = "/api"
    """Prefix under which every resource router is mounted"""

    ENVIRONMENT: str = "production"
    """Only "development" exposes internal error detail in 500 responses"""

    CORS_ORIGINS: List[str] = ["*"]
    """Allowed CORS origins"""

    REQUEST_TIMEOUT_SECONDS: float = 30.0
    """Requests running longer than this are answered with 504"""

    # General Configuration
    TIMEZONE: str = "America/Sao_Paulo"
    """Wall-clock timezone used for stored reminder times and 'now'"""

    # Authentication
    JWT_SECRET: str = "change-me"
    """Secret used to sign session tokens"""

    JWT_ALGORITHM: str = "HS256"

    JWT_EXPIRES_HOURS: int = 24
    """Session token lifetime"""

    BCRYPT_ROUNDS: int = 10
    """bcrypt cost factor for password hashes"""

    # WhatsApp provider
    WHATSAPP_BASE_URL: str = "http://127.0.0.1:8080"
    WHATSAPP_INSTANCE: str = "lembreto"
    WHATSAPP_API_KEY: str = ""

    WHATSAPP_TIMEOUT_SECONDS: float = 30.0
    """Timeout for every call to the WhatsApp provider (no retries)"""

    WHATSAPP_DEFAULT_DELAY_MS: int = 1200
    """Typing delay requested from the provider when the caller sends none"""

    DEFAULT_COUNTRY_CODE: str = "55"
    """Prefixed to phone numbers that do not already start with it"""

    CONTACT_CARD_NAME: str = "Lembreto"
    CONTACT_CARD_PHONE: str = ""
    """Contact card sent by /verificacao/salvar-contato"""

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


# Global settings instance
settings = Settings()
