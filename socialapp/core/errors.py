"""
Error taxonomy shared by services and routers.

Services raise these; the exception handlers installed in app.py turn them
into the JSON envelope {status: "Error", message}.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500

    def __init__(self, message: Any):
        super().__init__(message if isinstance(message, str) else repr(message))
        self.message = message


class ValidationError(AppError):
    """Bad or missing input fields; message may be a list of field errors."""

    status_code = 400


class MalformedRequestError(AppError):
    status_code = 400


class InvalidImageError(AppError):
    """Uploaded bytes do not carry a recognised image signature."""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class AuthenticationError(AppError):
    status_code = 401


class StorageWriteError(AppError):
    """Moving a file into the permanent store failed."""

    status_code = 500


def field_error(field: str, validation: str, message: str) -> dict:
    return {"field": field, "validation": validation, "message": message}
