"""SQLAlchemy models for users, roles, permissions, privacy settings, avatars, sessions and post dislikes."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


role_user = Table(
    "role_user",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(String(80), nullable=False, index=True)
    lastname = Column(String(80), nullable=False)
    email = Column(String(254), unique=True, nullable=False)
    gender = Column(String(20), nullable=False)
    birthday = Column(Date, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    roles = relationship("Role", secondary=role_user, back_populates="users")
    privacy_setting = relationship("PrivacySetting", uselist=False, back_populates="user", cascade="all,delete-orphan")
    avatars = relationship("UserAvatar", back_populates="user", cascade="all,delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all,delete-orphan")


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(45), unique=True, nullable=False)
    name = Column(String(80), nullable=False)

    users = relationship("User", secondary=role_user, back_populates="roles")


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(45), unique=True, nullable=False)


class PrivacySetting(Base):
    __tablename__ = "privacy_settings"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    profile_privacy = Column(String(20), nullable=False, default="friends")
    who_can_add = Column(String(20), nullable=False, default="everyone")

    user = relationship("User", back_populates="privacy_setting")


class UserAvatar(Base):
    __tablename__ = "user_avatars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    path = Column(String(255), nullable=False)
    is_current_avatar = Column("isCurrentAvatar", Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="avatars")

    __table_args__ = (
        # At most one current avatar per user.
        Index(
            "uq_user_avatars_current",
            "user_id",
            unique=True,
            sqlite_where=is_current_avatar.is_(True),
            postgresql_where=is_current_avatar.is_(True),
        ),
    )


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="sessions")


class PostDislike(Base):
    """A user's dislike of a post; rows carry no timestamps."""

    __tablename__ = "post_dislikes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
