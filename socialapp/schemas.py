"""Request bodies accepted by the user endpoints."""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _Body(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class RegisterRequest(_Body):
    firstname: str = Field(min_length=1, max_length=80)
    lastname: str = Field(min_length=1, max_length=80)
    gender: str = Field(min_length=1, max_length=20)
    birthday: date
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateUserRequest(_Body):
    """Every field is optional; missing ones keep the stored value."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    gender: Optional[str] = Field(default=None, min_length=1, max_length=20)
    birthday: Optional[date] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=1)


class LoginRequest(_Body):
    email: EmailStr
    password: str = Field(min_length=1)


class ComparePasswordRequest(BaseModel):
    password: str
    hash: str
