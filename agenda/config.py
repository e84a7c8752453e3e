# agenda/config.py

import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")
DB_ECHO = _get_bool(os.getenv("DB_ECHO"), default=False)
SQLITE_BUSY_TIMEOUT_SECONDS = _get_int(os.getenv("SQLITE_BUSY_TIMEOUT_SECONDS"), 30)

# Spacing between candidate start times in the availability grid.
SLOT_GRANULARITY_MINUTES = _get_int(os.getenv("SLOT_GRANULARITY_MINUTES"), 15)
MAX_NOTES_LENGTH = _get_int(os.getenv("MAX_NOTES_LENGTH"), 600)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:5173"])


def validate_runtime_config() -> None:
    if not 1 <= SLOT_GRANULARITY_MINUTES <= 24 * 60:
        raise RuntimeError("SLOT_GRANULARITY_MINUTES must be between 1 and 1440.")
    if (24 * 60) % SLOT_GRANULARITY_MINUTES != 0:
        raise RuntimeError("SLOT_GRANULARITY_MINUTES must divide a day evenly.")
    if MAX_NOTES_LENGTH < 1:
        raise RuntimeError("MAX_NOTES_LENGTH must be positive.")
    if SQLITE_BUSY_TIMEOUT_SECONDS < 0:
        raise RuntimeError("SQLITE_BUSY_TIMEOUT_SECONDS cannot be negative.")
