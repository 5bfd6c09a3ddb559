"""Image type detection from leading file bytes."""
from __future__ import annotations

SNIFF_BYTES = 12

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xFF\xD8\xFF"
GIF87_MAGIC = b"GIF87a"
GIF89_MAGIC = b"GIF89a"
RIFF_MAGIC = b"RIFF"
WEBP_MAGIC = b"WEBP"
BMP_MAGIC = b"BM"

# Types accepted as avatars; jpeg/jfif both land on "jpg".
AVATAR_IMAGE_TYPES = frozenset({"png", "jpg", "gif"})
AVATAR_EXTENSIONS = frozenset({"png", "jpg", "jfif", "gif"})


def sniff_image_type(header: bytes) -> str | None:
    """Return the image type encoded in ``header`` or None when unrecognised."""
    if not header:
        return None
    if header.startswith(PNG_MAGIC):
        return "png"
    if header.startswith(JPEG_MAGIC):
        return "jpg"
    if header.startswith(GIF87_MAGIC) or header.startswith(GIF89_MAGIC):
        return "gif"
    if header.startswith(RIFF_MAGIC) and header[8:12] == WEBP_MAGIC:
        return "webp"
    if header.startswith(BMP_MAGIC) and len(header) >= 6:
        return "bmp"
    return None


def extension_of(filename: str | None) -> str:
    name = (filename or "").strip()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_allowed_extension(filename: str | None) -> bool:
    return extension_of(filename) in AVATAR_EXTENSIONS


def declared_subtype(content_type: str | None) -> str:
    """``image/png`` -> ``png``; anything that is not image/* -> ``""``."""
    value = (content_type or "").split(";", 1)[0].strip().lower()
    if not value.startswith("image/"):
        return ""
    return value[len("image/"):]
