# cleanbook/core/config.py

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse

StoreName = Literal["firestore", "postgres"]


class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Store routing ---
    PRIMARY_STORE: StoreName = "firestore"
    # probe_primary: fall back to the secondary without probing it
    # probe_both: probe the secondary too and fail fast when both are down
    STORE_SELECTION_POLICY: Literal["probe_primary", "probe_both"] = "probe_primary"
    HEALTH_PROBE_TIMEOUT: float = 2.0
    MIRROR_ENABLED: bool = True
    # Upper bound on documents read per list query when searching client-side
    DOCUMENT_SCAN_LIMIT: int = 1000

    # --- Firestore ---
    FIREBASE_PROJECT_ID: str = "ccn-cleaning"
    FIREBASE_CREDENTIALS_PATH: str | None = None
    HEALTH_COLLECTION: str = "_health"
    HEALTH_DOCUMENT: str = "test"
    UNIQUE_COLLECTION: str = "_unique"

    # --- Postgres ---
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "cleanbook"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    # Full async URL override (e.g. sqlite+aiosqlite:///./dev.db)
    DATABASE_URL: str | None = None

    # --- Monitoring & Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200

    ALLOWED_CORS_ORIGINS: str = "*"  # comma-separated list

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")


def get_settings() -> Settings:
    """Read configuration once; callers keep the returned object for the process lifetime."""
    return Settings()
