# codetrack/config.py

import os
from dataclasses import dataclass
from typing import Optional

from codetrack.storage import MemoryStorage, Storage


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "t", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    try:
        return int(value) if value else default
    except ValueError:
        return default


@dataclass
class Settings:
    db_path: str = "data/codetrack.db"
    storage_backend: str = "sqlite"
    headless: bool = True
    navigation_timeout_ms: int = 45000
    marker_timeout_ms: int = 10000
    log_level: str = "INFO"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"


def load_settings() -> Settings:
    """Read settings from CODETRACK_* / GEMINI_* environment variables."""
    return Settings(
        db_path=os.environ.get("CODETRACK_DB_PATH", "data/codetrack.db"),
        storage_backend=os.environ.get("CODETRACK_STORAGE", "sqlite").strip().lower(),
        headless=_env_bool("CODETRACK_HEADLESS", True),
        navigation_timeout_ms=_env_int("CODETRACK_NAV_TIMEOUT_MS", 45000),
        marker_timeout_ms=_env_int("CODETRACK_MARKER_TIMEOUT_MS", 10000),
        log_level=os.environ.get("CODETRACK_LOG_LEVEL", "INFO").upper(),
        gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
        gemini_model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
    )


def build_storage(settings: Settings) -> Storage:
    if settings.storage_backend == "memory":
        return MemoryStorage()
    if settings.storage_backend == "sqlite":
        from codetrack.database import Database
        return Database(settings.db_path)
    raise ValueError(f"Unknown storage backend '{settings.storage_backend}' (expected 'sqlite' or 'memory')")
