"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select, update

from socialapp.db.models import (
    PrivacySetting,
    Role,
    User,
    UserAvatar,
    UserSession,
    role_user,
)
from socialapp.db.session import get_session

DEFAULT_PROFILE_PRIVACY = "friends"
DEFAULT_WHO_CAN_ADD = "everyone"


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(func.lower(User.email) == (email or "").strip().lower())
            return session.execute(stmt).scalar_one_or_none()

    def email_taken(self, email: str, exclude_user_id: int | None = None) -> bool:
        with get_session() as session:
            stmt = select(User.id).where(func.lower(User.email) == (email or "").strip().lower())
            if exclude_user_id is not None:
                stmt = stmt.where(User.id != exclude_user_id)
            return session.execute(stmt.limit(1)).first() is not None

    def create_account(
        self,
        *,
        firstname: str,
        lastname: str,
        email: str,
        gender: str,
        birthday: date,
        password_hash: str,
        role_slug: str = "user",
    ) -> User:
        """Insert the user, its default privacy setting and role link in one transaction."""
        now = datetime.now(timezone.utc)
        with get_session() as session:
            user = User(
                firstname=firstname,
                lastname=lastname,
                email=email,
                gender=gender,
                birthday=birthday,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            session.flush()
            session.add(
                PrivacySetting(
                    user_id=user.id,
                    profile_privacy=DEFAULT_PROFILE_PRIVACY,
                    who_can_add=DEFAULT_WHO_CAN_ADD,
                )
            )
            role = session.execute(select(Role).where(Role.slug == role_slug)).scalar_one_or_none()
            if not role:
                role = Role(slug=role_slug, name=role_slug.title())
                session.add(role)
                session.flush()
            session.execute(role_user.insert().values(user_id=user.id, role_id=role.id))
            session.commit()
            session.refresh(user)
            return user

    def update_user(self, user_id: int, **values) -> None:
        if not values:
            return
        values["updated_at"] = datetime.now(timezone.utc)
        with get_session() as session:
            session.execute(update(User).where(User.id == user_id).values(**values))
            session.commit()

    def delete_user(self, user_id: int) -> bool:
        with get_session() as session:
            result = session.execute(delete(User).where(User.id == user_id))
            session.commit()
            return bool(result.rowcount)

    def count_users(self) -> int:
        with get_session() as session:
            return int(session.execute(select(func.count()).select_from(User)).scalar_one())

    def list_users(self, offset: int, limit: int) -> list[User]:
        with get_session() as session:
            stmt = select(User).order_by(User.id).offset(offset).limit(limit)
            return session.execute(stmt).scalars().all()

    def search_users(self, prefix: str, limit: int = 50) -> list[dict]:
        """Users whose first name starts with ``prefix``, each with the current avatar path."""
        with get_session() as session:
            stmt = (
                select(User.id, User.firstname, User.lastname, UserAvatar.path)
                .join(
                    UserAvatar,
                    (UserAvatar.user_id == User.id) & UserAvatar.is_current_avatar.is_(True),
                    isouter=True,
                )
                .where(User.firstname.startswith(prefix, autoescape=True))
                .order_by(User.firstname, User.id)
                .limit(limit)
            )
            return [
                {"id": row.id, "firstname": row.firstname, "lastname": row.lastname, "path": row.path}
                for row in session.execute(stmt)
            ]

    def get_privacy_setting(self, user_id: int) -> Optional[PrivacySetting]:
        with get_session() as session:
            return session.get(PrivacySetting, user_id)

    # -------------------------- roles --------------------------
    def get_or_create_role(self, slug: str, name: str | None = None) -> Role:
        with get_session() as session:
            role = session.execute(select(Role).where(Role.slug == slug)).scalar_one_or_none()
            if role:
                return role
            role = Role(slug=slug, name=name or slug.title())
            session.add(role)
            session.commit()
            session.refresh(role)
            return role

    def attach_role(self, user_id: int, slug: str) -> bool:
        """Link the user to the role; returns False when the link already existed."""
        role = self.get_or_create_role(slug)
        with get_session() as session:
            exists = session.execute(
                select(role_user.c.user_id).where(role_user.c.user_id == user_id, role_user.c.role_id == role.id)
            ).first()
            if exists:
                return False
            session.execute(role_user.insert().values(user_id=user_id, role_id=role.id))
            session.commit()
            return True

    def get_user_roles(self, user_id: int) -> list[str]:
        with get_session() as session:
            stmt = (
                select(Role.slug)
                .join(role_user, role_user.c.role_id == Role.id)
                .where(role_user.c.user_id == user_id)
                .order_by(Role.slug)
            )
            return list(session.execute(stmt).scalars().all())

    # -------------------------- avatars --------------------------
    def replace_current_avatar(self, user_id: int, path: str) -> UserAvatar:
        """
        Record ``path`` as the user's only current avatar.

        Clearing the old flag and inserting the new row share one transaction;
        the user row is locked first so concurrent uploads for the same user
        serialise (SQLite ignores FOR UPDATE and serialises writers itself).
        Any failure rolls the whole change back.
        """
        with get_session() as session:
            try:
                session.execute(select(User.id).where(User.id == user_id).with_for_update()).first()
                session.execute(
                    update(UserAvatar)
                    .where(UserAvatar.user_id == user_id, UserAvatar.is_current_avatar.is_(True))
                    .values(is_current_avatar=False)
                    .execution_options(synchronize_session=False)
                )
                avatar = UserAvatar(
                    user_id=user_id,
                    path=path,
                    is_current_avatar=True,
                    created_at=datetime.now(timezone.utc),
                )
                session.add(avatar)
                session.commit()
            except Exception:
                session.rollback()
                raise
            session.refresh(avatar)
            return avatar

    def list_avatars(self, user_id: int) -> list[UserAvatar]:
        with get_session() as session:
            stmt = select(UserAvatar).where(UserAvatar.user_id == user_id).order_by(UserAvatar.id)
            return session.execute(stmt).scalars().all()

    def get_current_avatars(self, user_id: int) -> list[UserAvatar]:
        with get_session() as session:
            stmt = (
                select(UserAvatar)
                .where(UserAvatar.user_id == user_id, UserAvatar.is_current_avatar.is_(True))
                .order_by(UserAvatar.id)
            )
            return session.execute(stmt).scalars().all()

    def get_current_avatar(self, user_id: int) -> Optional[UserAvatar]:
        current = self.get_current_avatars(user_id)
        return current[-1] if current else None

    # -------------------------- sessions --------------------------
    def create_session(self, user_id: int, expires_at: datetime) -> str:
        token = secrets.token_urlsafe(32)
        with get_session() as session:
            session.add(UserSession(token=token, user_id=user_id, expires_at=expires_at))
            session.commit()
        return token

    def get_session(self, token: str) -> Optional[UserSession]:
        with get_session() as session:
            return session.get(UserSession, token)

    def delete_session(self, token: str) -> None:
        with get_session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()
