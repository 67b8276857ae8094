"""Auth service — registration, login, and token refresh.

Learn: This is the identity half of the system. The flows are:
1. register → unique email check → bcrypt hash → insert → token pair
2. login → lookup → bcrypt verify → token pair
3. refresh → verify refresh token → new access token (refresh token reused)
4. logout → nothing to do server-side; the client drops its tokens

Failure messages are intentionally uniform. "Invalid email or password"
covers both unknown email and wrong password, and every refresh failure
reads "Invalid or expired refresh token". Keep it that way.

Refresh tokens are not rotated and there is no revocation list: any
correctly signed, unexpired refresh token keeps working until exp.
"""

import asyncio
import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.auth.jwt import (
    TokenClaims,
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)
from taskvault.auth.password import hash_password, verify_password
from taskvault.db.models import User
from taskvault.errors import Conflict, NotFound, Unauthorized

logger = structlog.get_logger()

USER_EXISTS = "User with this email already exists"
INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


@dataclass
class AuthResult:
    """Tokens plus the user they were issued for."""

    access_token: str
    refresh_token: str
    user: User


def normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_tokens(user: User) -> tuple[str, str]:
    """Mint an (access, refresh) pair bound to the user's id and email."""
    claims = TokenClaims(user_id=str(user.id), email=user.email)
    return create_access_token(claims), create_refresh_token(claims)


class AuthService:
    """Business logic for user identity and token issuance."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def get_user(self, user_id: str) -> User:
        """Load a user by id, raising NotFound if it no longer exists."""
        try:
            uid = uuid.UUID(str(user_id))
        except ValueError:
            raise NotFound("User not found")
        user = await self.db.get(User, uid)
        if not user:
            raise NotFound("User not found")
        return user

    # ─── Register ────────────────────────────────────────

    async def register(self, email: str, password: str) -> AuthResult:
        """Create an account and return a fresh token pair.

        Raises Conflict if the email is already registered.
        """
        email = normalize_email(email)
        if await self.get_user_by_email(email):
            raise Conflict(USER_EXISTS)

        # bcrypt is CPU-bound; keep it off the event loop
        password_hash = await asyncio.to_thread(hash_password, password)

        user = User(email=email, password_hash=password_hash)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            await self.db.rollback()
            raise Conflict(USER_EXISTS)
        await self.db.refresh(user)

        access_token, refresh_token = issue_tokens(user)
        logger.info("auth.registered", user_id=str(user.id))
        return AuthResult(access_token, refresh_token, user)

    # ─── Login ───────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and return a fresh token pair.

        Raises Unauthorized with the same message whether the email is
        unknown or the password is wrong.
        """
        user = await self.get_user_by_email(email)

        if not user:
            logger.info("auth.login_failed", reason="unknown_user")
            raise Unauthorized(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("auth.login_failed", reason="bad_password", user_id=str(user.id))
            raise Unauthorized(INVALID_CREDENTIALS)

        access_token, refresh_token = issue_tokens(user)
        logger.info("auth.login_succeeded", user_id=str(user.id))
        return AuthResult(access_token, refresh_token, user)

    # ─── Refresh ─────────────────────────────────────────

    async def refresh(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token.

        Learn: No database access here. The refresh token's own claims
        are trusted once the signature and exp check out.
        """
        try:
            claims = verify_refresh_token(refresh_token)
        except TokenError as e:
            logger.info("auth.refresh_rejected", reason=str(e))
            raise Unauthorized(INVALID_REFRESH_TOKEN)

        logger.info("auth.token_refreshed", user_id=claims.user_id)
        return create_access_token(claims)

    # ─── Logout ──────────────────────────────────────────

    async def logout(self) -> None:
        """Stateless logout: there is no server-side session to end."""
        return None
