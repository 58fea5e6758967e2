import json
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings. Values in .env override the defaults below."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Delivery Trust Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Postgres URLs are rewritten to the psycopg async driver
    DATABASE_URL: str = "sqlite+aiosqlite:///./trust.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30  # seconds
    DB_POOL_RECYCLE: int = 1800  # seconds

    # Courier bearer tokens
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # JSON array or comma-separated string
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Proof artifacts bucket; requires the service role key
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_STORAGE_BUCKET: str = "delivery-proofs"

    PUBLIC_TRACKING_BASE_URL: str = "http://localhost:5173"
    SHARE_LINK_DEFAULT_HOURS: int = 24
    SHARE_COUNTRY_CODE: str = "225"  # wa.me prefix, Cote d'Ivoire
    TRACKING_UPDATES_LIMIT: int = 50

    POLICY_VALIDITY_DAYS: int = 7

    PROOF_VERIFICATION_THRESHOLD: float = 0.70

    SCORE_STALE_AFTER_HOURS: int = 24
    SCORE_REFRESH_INTERVAL_MINUTES: int = 60
    SCORE_REFRESH_BATCH_SIZE: int = 100

    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def split_cors_origins(cls, value):
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return [origin.strip() for origin in value.split(",") if origin.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
