from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded with Pydantic BaseSettings.
    Values come from environment variables or a local .env file.
    """

    PROJECT_NAME: str = "clinicbook"
    VERSION: str = "0.1.0"

    # Scheduling
    DEFAULT_APPOINTMENT_DURATION_MINUTES: int = Field(
        20, description="Duration assumed for appointments booked without an end time"
    )
    LOCK_TIMEOUT_SECONDS: float = Field(2.0, description="Upper bound for acquiring a subject or invoice lock")

    # Transaction conflict retries
    CONFLICT_RETRY_ATTEMPTS: int = Field(3, description="Attempts before a concurrency conflict is surfaced")
    CONFLICT_RETRY_INITIAL_DELAY: float = Field(0.05, description="Initial backoff between conflict retries (seconds)")
    CONFLICT_RETRY_MAX_DELAY: float = Field(1.0, description="Maximum backoff between conflict retries (seconds)")

    # Billing
    CURRENCY: str = Field("USD", description="ISO currency code used for invoice totals and payments")

    # PostgreSQL Database Settings
    DB_HOST: str = Field("localhost", description="PostgreSQL host")
    DB_PORT: int = Field(5432, description="PostgreSQL port")
    DB_NAME: str = Field("clinic_db", description="Database name")
    DB_USER: str = Field("clinic", description="Database user")
    DB_PASSWORD: str | None = Field(None, description="Database password")
    DB_ECHO: bool = Field(False, description="Log SQL statements (debug only)")

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(10, description="Connection pool size")
    DB_MAX_OVERFLOW: int = Field(20, description="Maximum pool overflow")
    DB_POOL_RECYCLE: int = Field(3600, description="Recycle connections every N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Timeout waiting for a pooled connection")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Root log level")
    LOG_FORMAT: str = Field("colored", description="Log format: colored, json or plain")
    LOG_FILE: str | None = Field(None, description="Optional log file (JSON lines)")

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode")
    ENVIRONMENT: str = Field("production", description="Runtime environment")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("DEFAULT_APPOINTMENT_DURATION_MINUTES")
    @classmethod
    def validate_default_duration(cls, v):
        if v < 1:
            raise ValueError("DEFAULT_APPOINTMENT_DURATION_MINUTES must be at least 1")
        if v > 24 * 60:
            raise ValueError("DEFAULT_APPOINTMENT_DURATION_MINUTES should not exceed one day")
        return v

    @field_validator("CONFLICT_RETRY_ATTEMPTS")
    @classmethod
    def validate_retry_attempts(cls, v):
        if v < 1:
            raise ValueError("CONFLICT_RETRY_ATTEMPTS must be at least 1")
        if v > 10:
            raise ValueError("CONFLICT_RETRY_ATTEMPTS should not exceed 10")
        return v

    @field_validator("LOCK_TIMEOUT_SECONDS")
    @classmethod
    def validate_lock_timeout(cls, v):
        if v <= 0:
            raise ValueError("LOCK_TIMEOUT_SECONDS must be positive")
        return v

    @field_validator("CURRENCY")
    @classmethod
    def validate_currency(cls, v):
        if not v or len(v) != 3:
            raise ValueError("CURRENCY must be a 3-letter ISO code")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("colored", "json", "plain"):
            raise ValueError("LOG_FORMAT must be one of: colored, json, plain")
        return v

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        if v > 100:
            raise ValueError("DB_POOL_SIZE should not exceed 100")
        return v

    @computed_field
    @property
    def database_url(self) -> str:
        """Synchronous PostgreSQL URL (used by Alembic)."""
        if self.DB_PASSWORD:
            return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"postgresql://{self.DB_USER}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field
    @property
    def is_development(self) -> bool:
        """Whether the process runs in a development environment."""
        return self.DEBUG or self.ENVIRONMENT.lower() in ["development", "dev", "local", "test"]


# Cached settings instance
_settings_instance = None


def get_settings() -> Settings:
    """
    Return the cached settings instance.
    Environment variables are read only once per process.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None
