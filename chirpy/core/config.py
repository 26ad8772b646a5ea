"""
Configuration helpers for the Chirpy user store.

Settings are read from environment variables (optionally seeded from a .env
file) so that the store and the scripts never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv

DEFAULT_USERS_DB = "userDatabase.json"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    users_db_path: str
    atomic_writes: bool
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    load_dotenv()

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        value = value.strip().lower()
        if value in {"1", "true", "yes", "on"}:
            return True
        if value in {"0", "false", "no", "off"}:
            return False
        return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        users_db_path=(os.getenv("CHIRPY_USERS_DB") or DEFAULT_USERS_DB).strip(),
        atomic_writes=_bool(os.getenv("CHIRPY_ATOMIC_WRITES"), True),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )
