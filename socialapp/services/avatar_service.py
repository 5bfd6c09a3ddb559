"""
Avatar lifecycle: validate an upload, store it, and make it the current avatar.

HTTP layer -> UploadValidator.stage -> AvatarStorage.store
-> SQLRepository.replace_current_avatar
"""

from __future__ import annotations

import os
import time
import uuid
from typing import BinaryIO, Protocol

import structlog

from socialapp.core.config import Settings, get_settings
from socialapp.core.errors import InvalidImageError, NotFoundError, ValidationError, field_error
from socialapp.domain.images import (
    AVATAR_EXTENSIONS,
    AVATAR_IMAGE_TYPES,
    SNIFF_BYTES,
    declared_subtype,
    extension_of,
    sniff_image_type,
)
from socialapp.repositories.avatar_storage import AvatarStorage, StagedUpload, discard_file
from socialapp.repositories.sql_repository import SQLRepository

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 64 * 1024
UPLOAD_FIELD = "profile_pic"


class Upload(Protocol):
    """The subset of Starlette's UploadFile the validator relies on."""

    filename: str | None
    content_type: str | None
    file: BinaryIO


def avatar_to_dict(avatar) -> dict:
    return {
        "id": avatar.id,
        "user_id": avatar.user_id,
        "path": avatar.path,
        "isCurrentAvatar": bool(avatar.is_current_avatar),
        "created_at": avatar.created_at.isoformat() if avatar.created_at else None,
    }


class UploadValidator:
    """Checks presence, size, extension and declared type, then sniffs the real type from disk."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _reject(self, validation: str, message: str) -> ValidationError:
        return ValidationError([field_error(UPLOAD_FIELD, validation, message)])

    def stage(self, upload: Upload | None) -> StagedUpload:
        if upload is None or not (upload.filename or "").strip():
            raise ValidationError("no file!")
        if extension_of(upload.filename) not in AVATAR_EXTENSIONS:
            allowed = ", ".join(sorted(AVATAR_EXTENSIONS))
            raise self._reject("extnames", f"Invalid file extension {extension_of(upload.filename) or '(none)'}. Only {allowed} are allowed")
        subtype = declared_subtype(upload.content_type)
        if not subtype:
            raise self._reject("types", "Invalid file type. Only image files are allowed")

        temp_path = self._copy_to_temp(upload, subtype)
        try:
            with open(temp_path, "rb") as fh:
                header = fh.read(SNIFF_BYTES)
            size = os.path.getsize(temp_path)
        except OSError:
            discard_file(temp_path)
            raise

        image_type = sniff_image_type(header)
        if image_type not in AVATAR_IMAGE_TYPES:
            discard_file(temp_path)
            logger.info("avatar.sniff_rejected", filename=upload.filename, declared=subtype, sniffed=image_type)
            raise InvalidImageError("The uploaded file is not a valid image.")
        return StagedUpload(temp_path=temp_path, image_type=image_type, size=size)

    def _copy_to_temp(self, upload: Upload, subtype: str) -> str:
        limit = self.settings.max_avatar_bytes
        tmp_dir = self.settings.tmp_upload_dir
        os.makedirs(tmp_dir, exist_ok=True)
        safe_subtype = "".join(ch for ch in subtype if ch.isalnum()) or "bin"
        temp_path = os.path.join(tmp_dir, f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}.{safe_subtype}")

        written = 0
        source = upload.file
        try:
            source.seek(0)
        except (AttributeError, OSError):
            pass
        try:
            with open(temp_path, "wb") as out:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise self._reject("size", f"File size should be less than {limit // (1024 * 1024)}MB")
                    out.write(chunk)
        except Exception:
            discard_file(temp_path)
            raise
        if written == 0:
            discard_file(temp_path)
            raise self._reject("size", "The uploaded file is empty")
        return temp_path


class AvatarService:
    """Owns the per-user avatar state: default image at signup, uploads, history."""

    def __init__(
        self,
        repository: SQLRepository | None = None,
        storage: AvatarStorage | None = None,
        validator: UploadValidator | None = None,
    ) -> None:
        self.repository = repository or SQLRepository()
        self.storage = storage or AvatarStorage()
        self.validator = validator or UploadValidator(self.storage.settings)

    def _require_user(self, user_id: int) -> None:
        if not self.repository.get_user(user_id):
            raise NotFoundError("Could not find the specified user.")

    def _record(self, user_id: int, rel_path: str):
        try:
            return self.repository.replace_current_avatar(user_id, rel_path)
        except Exception:
            logger.exception("avatar.register_failed", user_id=user_id, path=rel_path)
            self.storage.discard(rel_path)
            raise

    def create_default_avatar(self, user_id: int):
        """Give a freshly registered user a copy of the default image as current avatar."""
        rel_path = self.storage.copy_default(user_id)
        return self._record(user_id, rel_path)

    def change_avatar(self, user_id: int, upload: Upload | None):
        self._require_user(user_id)
        staged = self.validator.stage(upload)
        rel_path = self.storage.store(user_id, staged)
        avatar = self._record(user_id, rel_path)
        logger.info("avatar.changed", user_id=user_id, path=rel_path, avatar_id=avatar.id)
        return avatar

    def list_avatars(self, user_id: int):
        self._require_user(user_id)
        return self.repository.list_avatars(user_id)
