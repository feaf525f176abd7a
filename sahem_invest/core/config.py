"""
Application configuration module.

Loads settings from environment variables (or .env file) using pydantic-settings.
Database credentials come from the environment; distribution defaults
(commission percentages, validation tolerance) can be tuned per deployment.
"""

from decimal import Decimal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the SahemInvest distribution service.

    Environment variables are loaded automatically from .env if present.
    """

    PROJECT_NAME: str = "SahemInvest Distribution API"
    API_V1_STR: str = "/api/v1"

    # ── SQLite mode (no external DB required) ──
    USE_SQLITE: bool = False

    # ── PostgreSQL connection parameters ──
    # Empty by default so USE_SQLITE=true works on its own; the validator
    # below requires all four when running against PostgreSQL.
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_SERVER: str = ""
    POSTGRES_DB: str = ""
    POSTGRES_PORT: int = 5432

    @model_validator(mode="after")
    def _require_pg_credentials_unless_sqlite(self) -> "Settings":
        """Fail fast if PostgreSQL credentials are missing in production mode."""
        if not self.USE_SQLITE:
            missing = [
                name
                for name in (
                    "POSTGRES_USER",
                    "POSTGRES_PASSWORD",
                    "POSTGRES_SERVER",
                    "POSTGRES_DB",
                )
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    f"PostgreSQL mode requires these environment variables: "
                    f"{', '.join(missing)}.\n\n"
                    f"Either set them (e.g. in a .env file):\n"
                    f"    POSTGRES_USER=sahem_user\n"
                    f"    POSTGRES_PASSWORD=sahem_password\n"
                    f"    POSTGRES_SERVER=127.0.0.1\n"
                    f"    POSTGRES_DB=sahem_db\n\n"
                    f"or run against in-memory SQLite:\n"
                    f"    USE_SQLITE=true uvicorn sahem_invest.main:app"
                )
        return self

    # ── Connection pool tuning ──
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30  # seconds to wait for a pooled connection
    DB_POOL_RECYCLE: int = 1800  # seconds before a connection is recycled

    # ── CORS ──
    # Comma-separated list of allowed origins.
    CORS_ORIGINS: str = "*"

    # ── Logging ──
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_FILE_BACKUP_COUNT: int = 5

    # ── Cache ──
    CACHE_TTL: float = 30.0
    CACHE_MAX_SIZE: int = 1000
    CACHE_ENABLED: bool = True

    # ── Database circuit breaker ──
    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    # ── Distribution engine ──
    # One cent: the tolerance used when admin-edited per-investor amounts
    # are checked against the computed pools.
    DISTRIBUTION_TOLERANCE: Decimal = Decimal("0.01")
    DEFAULT_SAHEM_INVEST_PERCENT: Decimal = Decimal("10")
    DEFAULT_RESERVED_GAIN_PERCENT: Decimal = Decimal("10")
    # "ar" or "en"; language of the profitability summary messages.
    MESSAGE_LOCALE: str = "ar"

    @property
    def DATABASE_URL(self) -> str:
        """Async DSN: in-memory SQLite when ``USE_SQLITE`` is set, else asyncpg."""
        if self.USE_SQLITE:
            return "sqlite+aiosqlite://"
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
