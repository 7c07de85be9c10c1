# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Env vars (.env):
      - DATABASE_URL (Postgres in production, SQLite file by default)
      - JWT_SECRET (HS256 secret shared with the identity provider)

    Tuning:
      - MAX_CART_QUANTITY: upper bound for a single cart line
      - CHECKOUT_MAX_ATTEMPTS / CHECKOUT_RETRY_BACKOFF: retry policy for
        transient storage conflicts during checkout
      - DB_LOCK_TIMEOUT: seconds a SQLite connection waits on a locked db
    """

    PROJECT_NAME: str = "Storefront API"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str = "sqlite:///./storefront.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_LOCK_TIMEOUT: float = 30.0

    # JWT verification (backend-side)
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"

    # Cart / checkout policy
    MAX_CART_QUANTITY: int = 100
    CHECKOUT_MAX_ATTEMPTS: int = 3
    CHECKOUT_RETRY_BACKOFF: float = 0.05

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
