"""
Configuration helpers for the socialapp backend.

Routers and services read settings through get_settings() instead of
touching os.environ directly, so tests can swap the environment and clear
the cache.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    storage_root: str
    tmp_upload_dir: str
    max_avatar_bytes: int
    session_ttl_seconds: int
    log_level: str

    @property
    def user_store_dir(self) -> str:
        return os.path.join(self.storage_root, "user")

    @property
    def default_avatar_path(self) -> str:
        return os.path.join(self.storage_root, "default", "account.png")


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    storage_root = os.path.abspath(os.getenv("STORAGE_ROOT", "store"))
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./socialapp.db"),
        storage_root=storage_root,
        tmp_upload_dir=os.path.abspath(os.getenv("TMP_UPLOAD_DIR", os.path.join(storage_root, "tmp", "uploads"))),
        max_avatar_bytes=_int(os.getenv("MAX_AVATAR_BYTES", "2097152"), 2 * 1024 * 1024),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
