import os
import logging
import secrets
from typing import Optional
from pydantic_settings import BaseSettings

from shared.database import build_connection_string

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _get_jwt_secret() -> str:
    """Get JWT secret, falling back to a per-process random value."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        logger.warning(
            "JWT_SECRET not set. Using a random secret; tokens will not survive a restart. "
            "Generate one with: openssl rand -base64 32"
        )
        return secrets.token_urlsafe(32)
    return secret


def _get_cors_origins() -> str:
    """Get CORS origins with security warning for wildcards."""
    origins = os.getenv("CORS_ORIGINS", "")
    if origins == "*":
        logger.warning(
            "CORS_ORIGINS is set to '*' (allow all). This is insecure for production! "
            "Consider setting specific origins like 'https://example.com'."
        )
    return origins


class Settings(BaseSettings):
    # Database connection parts
    db_database: str = os.getenv("DB_DATABASE", "finma")
    db_username: str = os.getenv("DB_USERNAME", "postgres")
    db_password: str = os.getenv("DB_PASSWORD", "postgres")
    db_host: str = os.getenv("DB_HOST", "localhost")
    db_port: str = os.getenv("DB_PORT", "5432")
    db_schema: str = os.getenv("DB_SCHEMA", "public")

    # Full SQLAlchemy URL, overrides the DB_* parts when set
    database_url: Optional[str] = os.getenv("DATABASE_URL") or None

    # Pool tuning
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Terminate the process when the health check finds the database down
    db_health_fatal: bool = _env_bool("DB_HEALTH_FATAL", "false")

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: str = _get_cors_origins()
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # JWT Configuration
    jwt_secret: str = _get_jwt_secret()
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

    # Rate limiting for signup/login
    rate_limit_enabled: bool = _env_bool("RATE_LIMIT_ENABLED", "true")

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def connection_string(self) -> str:
        """Database URL: DATABASE_URL if set, else built from the DB_* parts."""
        if self.database_url:
            return self.database_url
        return build_connection_string(
            self.db_username,
            self.db_password,
            self.db_host,
            self.db_port,
            self.db_database,
            self.db_schema,
        )


settings = Settings()
