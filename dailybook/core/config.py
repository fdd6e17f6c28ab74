"""
Application Configuration
"""
from pydantic_settings import BaseSettings
import warnings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Dailybook"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # Default to False for security
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # Security
    SECRET_KEY: str = "your-super-secret-key-change-in-production-min-32-chars"

    # Backend REST API
    BACKEND_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api"
    REQUEST_TIMEOUT: float = 30.0  # seconds
    DEFAULT_PAGE_SIZE: int = 50

    # Per-user read-model caches kept in memory
    MAX_CACHED_USERS: int = 256

    # Money display
    CURRENCY_CODE: str = "PKR"
    LOCALE: str = "en-PK"

    @property
    def api_base_url(self) -> str:
        """Backend URL joined with the API prefix, without a trailing slash"""
        base = self.BACKEND_URL.rstrip("/")
        prefix = "/" + self.API_PREFIX.strip("/") if self.API_PREFIX.strip("/") else ""
        return f"{base}{prefix}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    def validate_security_settings(self):
        """Validate security settings and warn about insecure defaults"""
        default_keys = [
            "your-super-secret-key-change-in-production-min-32-chars",
            "dev-secret-key-change-in-production",
            "secret-key",
            "change-me",
        ]

        if self.SECRET_KEY in default_keys:
            if self.is_production:
                raise ValueError(
                    "CRITICAL: Default SECRET_KEY detected in production! "
                    "Set the SECRET_KEY environment variable to a secure random value."
                )
            else:
                warnings.warn(
                    "WARNING: Using default SECRET_KEY. "
                    "Set SECRET_KEY environment variable for production.",
                    UserWarning
                )

        if len(self.SECRET_KEY) < 32:
            if self.is_production:
                raise ValueError(
                    "CRITICAL: SECRET_KEY is too short for production! "
                    "Use at least 32 characters."
                )
            else:
                warnings.warn(
                    "WARNING: SECRET_KEY should be at least 32 characters.",
                    UserWarning
                )

        if self.is_production and self.DEBUG:
            raise ValueError(
                "CRITICAL: DEBUG mode is enabled in production! "
                "Set DEBUG=False for production environment."
            )

        if self.is_production and not self.BACKEND_URL.startswith("https://"):
            warnings.warn(
                "WARNING: BACKEND_URL is not HTTPS in production. "
                "Bearer tokens will travel in clear text.",
                UserWarning
            )

        return True

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
