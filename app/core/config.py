"""
Configuration management for the QR Attendance Backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(
        default="sqlite:///./attendance.db",
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Work dates, roster start times and pass expiry are computed in this zone; storage stays UTC
    TZ: str = Field(default="Asia/Kolkata", description="Local timezone for work dates and rosters")

    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    STORE_TIMEOUT_SECONDS: int = Field(
        default=10,
        description="Timeout passed to the database driver for connects and statements",
    )

    # Attendance rules
    MIN_SESSION_MINUTES: int = Field(default=30, description="Minimum minutes between a check-in and its check-out")
    MIN_BREAK_MINUTES: int = Field(default=15, description="Minimum minutes between first check-out and second check-in")
    MIN_ACTION_SPACING_MINUTES: int = Field(default=1, description="Minimum minutes between any two checkpoints")

    # Cooldown after a check-in before the matching check-out is allowed
    FIRST_SESSION_COOLDOWN_MINUTES: int = Field(default=3)
    SECOND_SESSION_COOLDOWN_MINUTES: int = Field(default=2)
    COOLDOWN_TICK_SECONDS: float = Field(default=1.0, description="Interval of the cooldown countdown tick")

    # Gate passes
    PASS_CODE_INSERT_ATTEMPTS: int = Field(
        default=3,
        description="How many fresh codes to try when a generated pass code collides on insert",
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator(
        "MIN_SESSION_MINUTES",
        "MIN_BREAK_MINUTES",
        "MIN_ACTION_SPACING_MINUTES",
        "FIRST_SESSION_COOLDOWN_MINUTES",
        "SECOND_SESSION_COOLDOWN_MINUTES",
    )
    @classmethod
    def validate_non_negative_minutes(cls, v: int) -> int:
        if v < 0:
            raise ValueError("minute settings must not be negative")
        return v

    @field_validator("PASS_CODE_INSERT_ATTEMPTS", "STORE_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )
            if self.DATABASE_URL.startswith("sqlite"):
                raise ValueError("DATABASE_URL must point to a server database in production environment")

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
