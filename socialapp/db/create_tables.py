"""Utility script to create the database schema and seed the base roles."""
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine
from . import models  # noqa: F401  # ensure models are imported for metadata

DEFAULT_ROLES = (
    ("user", "User"),
    ("admin", "Administrator"),
)


def create_all() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def seed_roles() -> None:
    from socialapp.repositories.sql_repository import SQLRepository

    repo = SQLRepository()
    for slug, name in DEFAULT_ROLES:
        repo.get_or_create_role(slug, name)


if __name__ == "__main__":
    try:
        create_all()
        seed_roles()
        print("Database tables created successfully.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
