"""
On-disk avatar storage.

Layout under the storage root:

    default/account.png           image copied for every new account
    user/<user_id>/<unix_ms>.<ext> stored avatars

Paths handed to the database are relative to ``user/`` (``42/1700000000000.png``).
"""

from __future__ import annotations

import errno
import os
import shutil
import time
from dataclasses import dataclass

import structlog

from socialapp.core.config import Settings, get_settings
from socialapp.core.errors import StorageWriteError

logger = structlog.get_logger(__name__)

DEFAULT_AVATAR_SIZE = (256, 256)
DEFAULT_AVATAR_COLOR = (200, 200, 200)


@dataclass(frozen=True)
class StagedUpload:
    """A validated upload waiting in the temp directory."""

    temp_path: str
    image_type: str
    size: int


def _now_ms() -> int:
    return int(time.time() * 1000)


class AvatarStorage:
    """Moves validated files into ``<storage_root>/user/<user_id>/``."""

    def __init__(self, settings: Settings | None = None, clock=_now_ms) -> None:
        self.settings = settings or get_settings()
        self._clock = clock

    @property
    def root(self) -> str:
        return self.settings.user_store_dir

    def user_dir(self, user_id: int) -> str:
        return os.path.join(self.root, str(int(user_id)))

    def absolute_path(self, rel_path: str) -> str:
        return os.path.join(self.root, *rel_path.strip("/").split("/"))

    def ensure_user_dir(self, user_id: int) -> str:
        path = self.user_dir(user_id)
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise StorageWriteError(f"Could not create storage for user {user_id}.") from exc
        return path

    def _reserve(self, user_id: int, ext: str) -> str:
        """Create an empty placeholder named after the current millisecond and return its relative path."""
        stamp = self._clock()
        while True:
            rel_path = f"{int(user_id)}/{stamp}.{ext}"
            try:
                fd = os.open(self.absolute_path(rel_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                stamp += 1
                continue
            os.close(fd)
            return rel_path

    def store(self, user_id: int, staged: StagedUpload) -> str:
        """Move a staged upload to its permanent location and return the relative path."""
        rel_path = None
        try:
            os.makedirs(self.user_dir(user_id), exist_ok=True)
            rel_path = self._reserve(user_id, staged.image_type)
            dest = self.absolute_path(rel_path)
            try:
                os.replace(staged.temp_path, dest)
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                shutil.copyfile(staged.temp_path, dest)
                os.unlink(staged.temp_path)
        except OSError as exc:
            logger.error("avatar.store_failed", user_id=user_id, temp_path=staged.temp_path, error=str(exc))
            discard_file(staged.temp_path)
            if rel_path:
                self.discard(rel_path)
            raise StorageWriteError("Could not store the uploaded file.") from exc
        logger.info("avatar.stored", user_id=user_id, path=rel_path, size=staged.size)
        return rel_path

    def copy_default(self, user_id: int) -> str:
        """Copy the default account image into the user's directory (registration)."""
        source = ensure_default_avatar(self.settings.default_avatar_path)
        rel_path = None
        try:
            os.makedirs(self.user_dir(user_id), exist_ok=True)
            rel_path = self._reserve(user_id, "png")
            shutil.copyfile(source, self.absolute_path(rel_path))
        except OSError as exc:
            if rel_path:
                self.discard(rel_path)
            raise StorageWriteError("Could not create the default avatar.") from exc
        return rel_path

    def exists(self, rel_path: str) -> bool:
        return os.path.isfile(self.absolute_path(rel_path))

    def discard(self, rel_path: str) -> None:
        discard_file(self.absolute_path(rel_path))


def discard_file(path: str | None) -> None:
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("avatar.discard_failed", path=path, error=str(exc))


def ensure_default_avatar(path: str) -> str:
    """Return ``path``, drawing a plain placeholder PNG there first if it does not exist."""
    if os.path.isfile(path):
        return path
    from PIL import Image

    os.makedirs(os.path.dirname(path), exist_ok=True)
    image = Image.new("RGB", DEFAULT_AVATAR_SIZE, DEFAULT_AVATAR_COLOR)
    tmp_path = f"{path}.{os.getpid()}.tmp"
    image.save(tmp_path, format="PNG", optimize=True)
    os.replace(tmp_path, path)
    logger.info("avatar.default_created", path=path)
    return path
