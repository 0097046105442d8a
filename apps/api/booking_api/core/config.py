"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    # Upper bound for a single statement (Postgres statement_timeout, SQLite busy timeout)
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_BOOKING: str = "10/minute"  # Public booking submissions

    # Calendar defaults
    DEFAULT_TIMEZONE: str = "Asia/Jakarta"
    # Tenants without a business-hours row are treated as open every day
    # between DEFAULT_OPEN_TIME and DEFAULT_CLOSE_TIME (onboarding policy).
    DEFAULT_CALENDAR_OPEN: bool = True
    DEFAULT_OPEN_TIME: str = "08:00"
    DEFAULT_CLOSE_TIME: str = "17:00"

    # Booking rules
    MAX_BOOKING_HORIZON_DAYS: int = 365
    SLOT_INTERVAL_MINUTES: int = 30
    # Whether unconfirmed (pending) home visits consume a staff member's daily quota
    QUOTA_COUNTS_PENDING: bool = True
    # Extra attempts after losing a reservation race
    RESERVATION_RETRY_ATTEMPTS: int = 1

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def db_timeout_seconds(self) -> float:
        """Statement timeout in seconds (SQLite driver expects seconds)."""
        return max(self.DB_STATEMENT_TIMEOUT_MS, 0) / 1000


settings = Settings()
