from __future__ import annotations

import io
import sys
from datetime import date
from pathlib import Path

import pytest

# Make the socialapp package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from PIL import Image  # noqa: E402

from socialapp.core import config as core_config  # noqa: E402
from socialapp.db import models  # noqa: E402
from socialapp.db import session as db_session  # noqa: E402


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Temporary SQLite database and storage root; yields the resulting Settings."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "store"))
    monkeypatch.delenv("TMP_UPLOAD_DIR", raising=False)
    monkeypatch.delenv("MAX_AVATAR_BYTES", raising=False)
    _reset_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield core_config.get_settings()

    engine.dispose()
    _reset_caches()


@pytest.fixture()
def client(db_env):
    from fastapi.testclient import TestClient

    from socialapp.app import create_app

    with TestClient(create_app()) as c:
        yield c


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (255, 0, 0)).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeUpload:
    """Stand-in for Starlette's UploadFile in service-level tests."""

    def __init__(self, filename: str | None, data: bytes, content_type: str = "image/png") -> None:
        self.filename = filename
        self.content_type = content_type
        self.file = io.BytesIO(data)


@pytest.fixture()
def make_user(db_env):
    from socialapp.repositories.sql_repository import SQLRepository

    repo = SQLRepository()
    counter = {"n": 0}

    def _make_user(firstname: str = "Ana", email: str | None = None, password_hash: str = "hash"):
        counter["n"] += 1
        return repo.create_account(
            firstname=firstname,
            lastname="Tester",
            email=email or f"user{counter['n']}@example.com",
            gender="female",
            birthday=date(1990, 1, 1),
            password_hash=password_hash,
        )

    return _make_user
