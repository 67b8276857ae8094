"""Pydantic schemas for registration, login, and tokens.

Learn: Validation here is the pre-condition filter in front of
AuthService: malformed email, short password, or a missing refresh token
never reach the service. Failures become 400 "Validation failed".
"""

import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from taskvault.schemas.common import CamelModel


class _EmailBody(CamelModel):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class RegisterRequest(_EmailBody):
    password: str = Field(min_length=6)


class LoginRequest(_EmailBody):
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class UserRead(CamelModel):
    """Public projection of a user; never includes the password hash."""

    id: uuid.UUID
    email: str
    created_at: datetime


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str
    user: UserRead


class AccessTokenOnly(CamelModel):
    access_token: str
