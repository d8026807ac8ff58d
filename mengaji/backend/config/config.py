import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Settings read straight from environment variables (a .env file is loaded first).
    """
    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    DB_POOL_MIN_SIZE: int = int(os.environ.get("DB_POOL_MIN_SIZE", 5))
    DB_POOL_MAX_SIZE: int = int(os.environ.get("DB_POOL_MAX_SIZE", 20))
    DB_AUTO_CREATE_SCHEMA: bool = _as_bool(os.environ.get("DB_AUTO_CREATE_SCHEMA", "false"))
    TRANSACTION_RETRY_ATTEMPTS: int = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", 3))

    # Redis: sessions and rate limiting
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")
    RATE_LIMITER_REDIS_URL: str = os.environ.get("RATE_LIMITER_REDIS_URL")

    # Auth
    SECRET_KEY: str = os.environ.get("SECRET_KEY")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")
    USER_SESSION_TTL_SECONDS: int = int(os.environ.get("USER_SESSION_TTL_SECONDS", 3600))

    # HTTP
    CORS_ORIGINS: List[str] = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    DEFAULT_PAGE_LIMIT: int = int(os.environ.get("DEFAULT_PAGE_LIMIT", 100))

    # Logging
    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

# Single importable settings instance
settings = Config()
