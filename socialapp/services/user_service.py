"""
Account use cases: registration, profile edits, lookups, login and search.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import IntegrityError

from socialapp.core.errors import (
    AuthenticationError,
    MalformedRequestError,
    NotFoundError,
    ValidationError,
    field_error,
)
from socialapp.core.security import hash_password, needs_rehash, verify_password
from socialapp.db.models import User
from socialapp.repositories.sql_repository import SQLRepository
from socialapp.schemas import RegisterRequest, UpdateUserRequest
from socialapp.services.avatar_service import AvatarService, avatar_to_dict
from socialapp.services.session_service import SessionService

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "firstname": user.firstname,
        "lastname": user.lastname,
        "email": user.email,
        "gender": user.gender,
        "birthday": user.birthday.isoformat() if user.birthday else None,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


@dataclass
class Page:
    total: int
    per_page: int
    page: int
    last_page: int
    data: list

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "per_page": self.per_page,
            "page": self.page,
            "last_page": self.last_page,
            "data": self.data,
        }


@dataclass
class LoginResult:
    user_id: int
    token: str


def _email_taken() -> ValidationError:
    return ValidationError([field_error("email", "unique", "unique validation failed on email")])


class UserService:
    def __init__(
        self,
        repository: SQLRepository | None = None,
        avatars: AvatarService | None = None,
        sessions: SessionService | None = None,
    ) -> None:
        self.repository = repository or SQLRepository()
        self.avatars = avatars or AvatarService(repository=self.repository)
        self.sessions = sessions or SessionService(self.repository)

    def _unique_email(self, email: str, exclude_user_id: int | None = None) -> None:
        if self.repository.email_taken(email, exclude_user_id=exclude_user_id):
            raise _email_taken()

    # -------------------------------------- registration --------------------------------------
    def register(self, payload: RegisterRequest) -> User:
        email = str(payload.email)
        self._unique_email(email)
        try:
            user = self.repository.create_account(
                firstname=payload.firstname,
                lastname=payload.lastname,
                email=email,
                gender=payload.gender,
                birthday=payload.birthday,
                password_hash=hash_password(payload.password),
            )
        except IntegrityError as exc:
            raise _email_taken() from exc
        try:
            self.avatars.create_default_avatar(user.id)
        except Exception:
            self.repository.delete_user(user.id)
            raise
        logger.info("user.registered", user_id=user.id)
        return user

    def update(self, user_id: int, payload: UpdateUserRequest) -> User:
        user = self.repository.get_user(user_id)
        if not user:
            raise MalformedRequestError("Request was malformed")
        values = {}
        if payload.first_name is not None:
            values["firstname"] = payload.first_name
        if payload.last_name is not None:
            values["lastname"] = payload.last_name
        if payload.gender is not None:
            values["gender"] = payload.gender
        if payload.birthday is not None:
            values["birthday"] = payload.birthday
        if payload.email is not None and str(payload.email).lower() != (user.email or "").lower():
            self._unique_email(str(payload.email), exclude_user_id=user_id)
            values["email"] = str(payload.email)
        if payload.password is not None:
            values["password_hash"] = hash_password(payload.password)
        try:
            self.repository.update_user(user_id, **values)
        except IntegrityError as exc:
            raise _email_taken() from exc
        logger.info("user.updated", user_id=user_id, fields=sorted(values))
        return self.repository.get_user(user_id)

    def delete(self, user_id: int) -> None:
        if not self.repository.delete_user(user_id):
            raise MalformedRequestError("Request was malformed")
        logger.info("user.deleted", user_id=user_id)

    # -------------------------------------- lookups --------------------------------------
    def _current_avatar_path(self, user_id: int) -> str | None:
        avatar = self.repository.get_current_avatar(user_id)
        return avatar.path if avatar else None

    def get_one(self, user_id: int) -> dict:
        user = self.repository.get_user(user_id)
        if not user:
            raise NotFoundError("Could not find the specified user.")
        data = user_to_dict(user)
        privacy = self.repository.get_privacy_setting(user_id)
        data["privacy"] = (
            {"profile_privacy": privacy.profile_privacy, "who_can_add": privacy.who_can_add} if privacy else None
        )
        data["avatar"] = self._current_avatar_path(user_id)
        return data

    def get_self(self, user_id: int | None) -> dict:
        if user_id is None:
            raise AuthenticationError("Authentication required.")
        user = self.repository.get_user(user_id)
        if not user:
            raise AuthenticationError("Authentication required.")
        data = user_to_dict(user)
        data["roles"] = self.repository.get_user_roles(user_id)
        current = self.repository.get_current_avatar(user_id)
        data["avatar"] = avatar_to_dict(current) if current else None
        return data

    def get_all(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Page:
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))
        total = self.repository.count_users()
        users = self.repository.list_users(offset=(page - 1) * limit, limit=limit)
        return Page(
            total=total,
            per_page=limit,
            page=page,
            last_page=max(1, math.ceil(total / limit)),
            data=[user_to_dict(u) for u in users],
        )

    def search(self, q: str | None) -> list[dict]:
        query = (q or "").strip()
        if not query:
            raise ValidationError("Missing query.")
        return self.repository.search_users(query)

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        user = self.repository.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("user.login_failed", email=email)
            raise AuthenticationError("Invalid credentials.")
        if needs_rehash(user.password_hash):
            self.repository.update_user(user.id, password_hash=hash_password(password))
        token = self.sessions.issue(user.id)
        logger.info("user.logged_in", user_id=user.id)
        return LoginResult(user_id=user.id, token=token)

    def logout(self, token: str | None) -> None:
        self.sessions.revoke(token)

    def compare_password(self, password: str, stored_hash: str) -> bool:
        return verify_password(password, stored_hash)
