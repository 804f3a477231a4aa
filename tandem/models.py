"""Request, response and row models.

JSON uses camelCase (``emailVerified``, ``createdAt``); Python uses
snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Pagination(ApiModel):
    limit: int
    offset: int


class Envelope(ApiModel, Generic[T]):
    """Uniform JSON envelope returned by every route."""

    success: bool = True
    message: str | None = None
    data: T | None = None
    pagination: Pagination | None = None


class Message(ApiModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserPublic(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    email_verified: bool
    image: str | None = None
    created_at: datetime
    updated_at: datetime


class UserCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=255)
    email: EmailStr = Field(max_length=255)
    email_verified: bool = False
    image: str | None = None


class UserUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=255)
    image: str | None = None

    def changes(self) -> dict[str, Any]:
        """Columns to update. ``image`` may be explicitly set to null."""
        return {key: value for key, value in self.model_dump(exclude_unset=True).items() if key == "image" or value}


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class AuthorSummary(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    image: str | None = None


class PostPublic(ApiModel):
    id: uuid.UUID
    title: str
    content: str
    published: bool
    author_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class PostWithAuthor(PostPublic):
    author: AuthorSummary


class PostCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    published: bool = False


class PostUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    published: bool | None = None

    def changes(self) -> dict[str, Any]:
        return {key: value for key, value in self.model_dump(exclude_unset=True).items() if value is not None}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(min_length=2, max_length=255)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class Principal(ApiModel):
    """The authenticated user behind a request."""

    id: uuid.UUID
    name: str
    email: str
    email_verified: bool = False
    image: str | None = None


class SessionPublic(ApiModel):
    token: str
    expires_at: datetime


class AuthResult(ApiModel):
    user: Principal
    session: SessionPublic
