"""
Application configuration.

All settings are loaded from environment variables (or a .env file).
Pydantic-settings validates and types every value at startup, so
misconfiguration fails fast instead of at runtime.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ──────────────────────────────────────────────────────────
    APP_NAME: str = "Device Portal"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # ── Database ─────────────────────────────────────────────────────
    # Async driver for runtime; sync URL derived automatically for
    # migrations.  Local SQLite by default, PostgreSQL via asyncpg.
    DATABASE_URL: str = "sqlite+aiosqlite:///./device_portal.db"

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Replace the async driver with a sync one for Alembic."""
        return (
            self.DATABASE_URL
            .replace("+asyncpg", "+psycopg2")
            .replace("+aiosqlite", "")
        )

    # ── Sessions ─────────────────────────────────────────────────────
    SESSION_COOKIE_NAME: str = "session_id"
    SESSION_TTL_DAYS: int = 30
    SESSION_SWEEP_INTERVAL_SECONDS: int = 60 * 60

    @property
    def COOKIE_SECURE(self) -> bool:
        """Secure cookies only in production (plain HTTP in dev)."""
        return self.ENVIRONMENT == "production"

    # ── Password hashing ─────────────────────────────────────────────
    BCRYPT_ROUNDS: int = 12

    # ── First-run bootstrap ──────────────────────────────────────────
    # Well-known credentials; rotate them in any real deployment.
    SEED_ON_STARTUP: bool = True
    SEED_ADMIN_USERNAME: str = "admin"
    SEED_ADMIN_PASSWORD: str = "password123"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
