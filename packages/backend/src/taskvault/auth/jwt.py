"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (30 min), authorizes API calls
- Refresh token: long-lived (7 days), used to mint new access tokens

Each class is signed with its own secret AND carries a "type" claim, so
a refresh token can never pass as an access token or the other way round.
Nothing is stored server-side: a token is valid until its exp, period.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from taskvault.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpired(TokenError):
    """The token's exp claim is in the past."""


class TokenInvalid(TokenError):
    """Bad signature, wrong token class, or malformed payload."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a token."""

    user_id: str
    email: str


def _secret_for(token_type: str) -> str:
    if token_type == ACCESS:
        return settings.jwt_access_secret
    return settings.jwt_refresh_secret


def _encode(claims: TokenClaims, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": claims.user_id,
        "email": claims.email,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def _decode(token: str, token_type: str) -> TokenClaims:
    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Invalid token: {e}")

    if payload.get("type") != token_type:
        raise TokenInvalid(f"Wrong token type: expected {token_type}")
    if not isinstance(payload.get("email"), str):
        raise TokenInvalid("Invalid token: missing email claim")
    return TokenClaims(user_id=str(payload["sub"]), email=payload["email"])


def create_access_token(
    claims: TokenClaims,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token."""
    return _encode(
        claims,
        ACCESS,
        expires_delta if expires_delta is not None
        else timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    claims: TokenClaims,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT refresh token."""
    return _encode(
        claims,
        REFRESH,
        expires_delta if expires_delta is not None
        else timedelta(days=settings.refresh_token_expire_days),
    )


def verify_access_token(token: str) -> TokenClaims:
    """Verify an access token and return its claims.

    Raises TokenExpired or TokenInvalid.
    """
    return _decode(token, ACCESS)


def verify_refresh_token(token: str) -> TokenClaims:
    """Verify a refresh token and return its claims.

    Raises TokenExpired or TokenInvalid.
    """
    return _decode(token, REFRESH)
