"""
RBAC Guard Configuration

Environment-based settings, loaded once at startup and injected into the
resolver, sink and analyzer.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# bcrypt only uses the first 72 bytes of a password.
BCRYPT_MAX_PASSWORD_BYTES = 72


class Settings(BaseSettings):
    """Application settings loaded from ``RBAC_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "RBAC Guard"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///rbac.db"
    DATABASE_ECHO: bool = False

    # Audit trail
    AUDIT_LOG_PATH: str = "logs/audit.log"
    AUDIT_LOGIN_FAIL_THRESHOLD: int = Field(default=5, ge=1)

    # Credentials
    PASSWORD_MIN_LENGTH: int = Field(default=8, ge=1)
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)
    ADMIN_PASSWORD: str = Field(default="admin123", min_length=1)

    @field_validator("ADMIN_PASSWORD")
    @classmethod
    def admin_password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"ADMIN_PASSWORD must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
