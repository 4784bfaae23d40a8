# agencyos/core/config.py

import warnings
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_SECRET_KEY = "!!!GENERATE_A_STRONG_SECRET_KEY_32_BYTES_HEX!!!"
REQUIRED_SETTINGS = ("MONGODB_URI", "SECRET_KEY")
ENV_FILES = (".env", ".env.local")


def find_dotenv_path(filename: str = ".env", usecwd: bool = False, max_depth: int = 10) -> str | None:
    """Nearest `filename` in this package's parents (or the CWD's), falling back to the CWD itself."""
    start = Path.cwd() if usecwd else Path(__file__).resolve().parent
    for directory in [start, *start.parents][:max_depth]:
        candidate = directory / filename
        if candidate.is_file():
            return str(candidate)
    fallback = Path.cwd() / filename
    return str(fallback) if fallback.is_file() else None


class Settings(BaseSettings):
    PROJECT_NAME: str = "AgencyOS Core"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGIN: str = "http://localhost:5173"

    # Database & Cache
    MONGODB_URI: str
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_BROKER_URL: str = Field(default="redis://localhost:6379/1")
    CELERY_RESULT_BACKEND: str = Field(default="redis://localhost:6379/2")

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Evolution API (global fallback; organizations may store their own)
    EVOLUTION_API_URL: str | None = None
    EVOLUTION_API_KEY: str | None = None
    EVOLUTION_WEBHOOK_URL: str | None = None
    EVOLUTION_HTTP_TIMEOUT: float = 25.0
    EVOLUTION_POLL_INTERVAL_SECONDS: float = 3.0
    EVOLUTION_POLL_TIMEOUT_SECONDS: float = 120.0

    # Documents
    DOCUMENTS_STORAGE_DIR: str = "./storage/documents"
    DEFAULT_CURRENCY: str = "KZT"
    TEMPLATE_CACHE_SIZE: int = 5
    TEMPLATE_CACHE_TTL_SECONDS: int = 300

    # AI credits
    AI_DEFAULT_DAILY_LIMIT: float = 100.0

    # Outgoing webhooks fired by automation rules
    AUTOMATION_WEBHOOK_TIMEOUT: float = 10.0

    # Rate limiting (slowapi)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "300/minute"
    RATE_LIMIT_LOGIN: str = "10/minute"

    model_config = SettingsConfigDict(
        # .env.local overrides .env
        env_file=tuple(filter(None, map(find_dotenv_path, ENV_FILES))),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache()
def get_settings() -> Settings:
    found = [path for path in map(find_dotenv_path, ENV_FILES) if path]
    logger.info(f"Loading settings from {', '.join(found) if found else 'the process environment only'}.")
    try:
        loaded = Settings()
    except ValidationError as e:
        logger.critical(f"Invalid settings: {e}")
        raise SystemExit(f"Settings validation failed: {e}")

    missing = [name for name in REQUIRED_SETTINGS if not getattr(loaded, name)]
    if missing:
        logger.critical(f"Missing critical environment variables: {', '.join(missing)}")
        raise SystemExit(f"Missing critical environment variables: {', '.join(missing)}")

    if loaded.SECRET_KEY == PLACEHOLDER_SECRET_KEY:
        message = "SECRET_KEY is still the placeholder; set one (e.g. `openssl rand -hex 32`)."
        logger.warning(message)
        warnings.warn(message)

    if not (loaded.EVOLUTION_API_URL and loaded.EVOLUTION_API_KEY):
        logger.warning("No global Evolution API credentials; only organizations with their own can use WhatsApp.")
    return loaded


settings = get_settings()
