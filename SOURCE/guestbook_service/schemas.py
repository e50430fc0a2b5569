"""
Pydantic models for request and response validation.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 6
NICKNAME_MAX_LENGTH = 50
MESSAGE_MAX_LENGTH = 500


class CredentialsRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise PydanticCustomError(
                "email_address_invalid",
                "Unable to validate email address: invalid format",
            )
        return value.lower()


class SignUpRequest(CredentialsRequest):
    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < PASSWORD_MIN_LENGTH:
            raise PydanticCustomError(
                "weak_password",
                "Password should be at least {min_length} characters",
                {"min_length": PASSWORD_MIN_LENGTH},
            )
        return value


class SignInRequest(CredentialsRequest):
    pass


class UserUpdateRequest(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data")
    @classmethod
    def check_nickname(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        nickname = value.get("nickname")
        if nickname is None:
            return value
        if not isinstance(nickname, str) or not nickname.strip():
            raise PydanticCustomError(
                "nickname_invalid", "Nickname must be a non-empty string"
            )
        if len(nickname.strip()) > NICKNAME_MAX_LENGTH:
            raise PydanticCustomError(
                "nickname_too_long",
                "Nickname should be at most {max_length} characters",
                {"max_length": NICKNAME_MAX_LENGTH},
            )
        return {**value, "nickname": nickname.strip()}


class EntryCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    author_id: Optional[str] = None
    nickname: str = Field(min_length=1, max_length=NICKNAME_MAX_LENGTH)
    message: str = Field(min_length=1, max_length=MESSAGE_MAX_LENGTH)


class EntryUpdateRequest(BaseModel):
    """Only the denormalised nickname may change after an entry is posted."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    nickname: str = Field(min_length=1, max_length=NICKNAME_MAX_LENGTH)


class UserResponse(BaseModel):
    id: str = Field(validation_alias="user_id")
    email: str
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[dt.datetime] = None
    last_sign_in_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EntryResponse(BaseModel):
    id: int
    author_id: str
    nickname: str
    message: str
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "CredentialsRequest",
    "SignUpRequest",
    "SignInRequest",
    "UserUpdateRequest",
    "EntryCreateRequest",
    "EntryUpdateRequest",
    "UserResponse",
    "EntryResponse",
    "NICKNAME_MAX_LENGTH",
    "MESSAGE_MAX_LENGTH",
    "PASSWORD_MIN_LENGTH",
]
