"""
Configuration helpers for the Greeting API.

Settings are read once from environment variables so routers/services never
touch os.environ directly. The signing secret lives here and is handed to the
token service explicitly at startup.
"""

from dataclasses import dataclass, field
from functools import lru_cache
import os


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or unsafe."""


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    jwt_key: str = field(repr=False)
    jwt_issuer: str
    jwt_audience: str
    password_hash_scheme: str
    public_base_url: str
    reset_password_path: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str = field(repr=False)
    smtp_from: str
    smtp_use_ssl: bool
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./greeting.db"),
        jwt_key=os.getenv("JWT_KEY", ""),
        jwt_issuer=os.getenv("JWT_ISSUER", "greeting-api"),
        jwt_audience=os.getenv("JWT_AUDIENCE", "greeting-api-clients"),
        password_hash_scheme=(os.getenv("PASSWORD_HASH_SCHEME") or "pbkdf2").strip().lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        reset_password_path=os.getenv("RESET_PASSWORD_PATH", "/reset-password"),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "587"), 587),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        smtp_use_ssl=_bool(os.getenv("SMTP_USE_SSL"), True),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
