"""Database helpers (engine, sessions and schema creation)."""

from .session import Base, get_engine, get_session
from .create_tables import create_all, seed_roles

__all__ = ["Base", "get_engine", "get_session", "create_all", "seed_roles"]
