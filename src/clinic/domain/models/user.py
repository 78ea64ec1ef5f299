from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from src.clinic.domain.models.base import ApiModel, Patch, reject_null


class UserRole(str, Enum):
    PROVIDER = "provider"
    SCRIBE = "scribe"
    BILLER = "biller"
    ADMIN = "admin"


class UserPublic(ApiModel):
    id: int
    name: str
    email: EmailStr
    role: UserRole


class User(UserPublic):
    """Stored user record.

    ``password_hash`` is an opaque bcrypt string and must never be returned to
    clients; handlers respond with :meth:`public` instead.
    """

    password_hash: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public(self) -> UserPublic:
        return UserPublic(id=self.id, name=self.name, email=self.email, role=self.role)


class UserCreate(ApiModel):
    name: str = Field(min_length=1)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes; longer inputs are refused
    # rather than silently truncated (see CredentialService.hash_password).
    password: str = Field(min_length=1, max_length=72)
    role: UserRole


class UserPatch(Patch):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None

    @field_validator("name", "email", "role")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResponse(ApiModel):
    user: UserPublic
    token: str
