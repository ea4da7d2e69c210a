"""
Configuration helpers for the school storage core.

Settings are read once from environment variables so that stores and the
application factory never touch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

STORAGE_BACKENDS = {"memory", "mongo"}
ID_STRATEGIES = {"count", "max"}


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    storage_backend: str
    mongodb_url: str
    mongodb_database: str
    mongodb_id_strategy: str
    students_backup_file: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _choice(value: str | None, allowed: set[str], default: str) -> str:
        candidate = (value or "").strip().lower()
        return candidate if candidate in allowed else default

    mongodb_url = (os.getenv("MONGODB_URL") or "").strip()
    default_backend = "mongo" if mongodb_url else "memory"

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        storage_backend=_choice(os.getenv("STORAGE_BACKEND"), STORAGE_BACKENDS, default_backend),
        mongodb_url=mongodb_url,
        mongodb_database=os.getenv("MONGODB_DATABASE", "school_management").strip() or "school_management",
        mongodb_id_strategy=_choice(os.getenv("MONGODB_ID_STRATEGY"), ID_STRATEGIES, "count"),
        students_backup_file=os.getenv("STUDENTS_BACKUP_FILE", "students-backup.json"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
