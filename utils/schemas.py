"""
Pydantic request / response schemas for the chat API.

Wire format is camelCase (``isOnline``, ``receiverId``) with Mongo-style
``_id`` keys; Python attributes stay snake_case.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from database.models import Message, User

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_TEXT_LENGTH = 1000
MAX_URL_LENGTH = 2048
MAX_PASSWORD_BYTES = 72


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > MAX_URL_LENGTH:
        raise ValueError(f"URL must be at most {MAX_URL_LENGTH} characters")
    if not value.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return value


def _check_username(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 20:
        raise ValueError("Username must be 3-20 characters")
    if not USERNAME_RE.match(value):
        raise ValueError("Username may only contain letters, digits and underscores")
    return value


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email")
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Auth — requests
# ═══════════════════════════════════════════════════════════════════════════════


class SignupRequest(CamelModel):
    username: str
    email: str
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        # bcrypt only accepts up to 72 bytes of input
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class LoginRequest(CamelModel):
    email: str
    password: str


class ProfileUpdateRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    username: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_username(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_email(value)

    @field_validator("avatar")
    @classmethod
    def validate_avatar(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


# ═══════════════════════════════════════════════════════════════════════════════
# Auth — responses
# ═══════════════════════════════════════════════════════════════════════════════


class UserPublic(CamelModel):
    """Public view of a user.  Never carries the password hash."""

    id: str = Field(..., alias="_id")
    username: str
    email: str
    avatar: str
    is_online: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=str(user.user_id),
            username=user.username,
            email=user.email,
            avatar=user.avatar,
            is_online=bool(user.is_online),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthResponse(CamelModel):
    token: str
    user: UserPublic


class UserResponse(CamelModel):
    user: UserPublic


class UserListResponse(CamelModel):
    users: List[UserPublic] = Field(default_factory=list)


class StatusResponse(CamelModel):
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════════════════════════


class MessageContent(CamelModel):
    """
    Body of a direct message: text, image URL, or both.

    Blank text is treated as absent; a message with neither part fails
    validation at construction.
    """

    text: Optional[str] = None
    image: Optional[str] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if len(value) > MAX_TEXT_LENGTH:
            raise ValueError(f"Message text must be at most {MAX_TEXT_LENGTH} characters")
        return value

    @field_validator("image")
    @classmethod
    def validate_image(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)

    @model_validator(mode="after")
    def require_content(self) -> "MessageContent":
        if self.text is None and self.image is None:
            raise ValueError("Message must contain text or an image")
        return self


class SendMessageRequest(MessageContent):
    receiver_id: str

    def content(self) -> MessageContent:
        return MessageContent(text=self.text, image=self.image)


class MessagePublic(CamelModel):
    id: str = Field(..., alias="_id")
    sender_id: str
    receiver_id: str
    text: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessagePublic":
        return cls(
            id=str(message.message_id),
            sender_id=str(message.sender_id),
            receiver_id=str(message.receiver_id),
            text=message.text,
            image=message.image,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )


class MessageResponse(CamelModel):
    message: MessagePublic


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_messages: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_messages=total,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class ConversationPage(CamelModel):
    messages: List[MessagePublic] = Field(default_factory=list)
    pagination: Pagination


class DeletedResponse(CamelModel):
    deleted_id: str
