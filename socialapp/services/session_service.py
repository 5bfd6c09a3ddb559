"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import Request, Response

from socialapp.core.config import get_settings
from socialapp.repositories.sql_repository import SQLRepository

SESSION_COOKIE_NAME = "session"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionService:
    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def issue(self, user_id: int) -> str:
        settings = get_settings()
        ttl = max(60, settings.session_ttl_seconds)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        return self.repository.create_session(user_id, expires_at)

    def resolve(self, token: str | None) -> int | None:
        """Return the user id behind ``token``; expired tokens are deleted."""
        if not token:
            return None
        entity = self.repository.get_session(token)
        if not entity:
            return None
        if entity.expires_at and _as_utc(entity.expires_at) < datetime.now(timezone.utc):
            self.repository.delete_session(token)
            return None
        return entity.user_id

    def revoke(self, token: str | None) -> None:
        if token:
            self.repository.delete_session(token)


def token_from_request(request: Request) -> str | None:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
