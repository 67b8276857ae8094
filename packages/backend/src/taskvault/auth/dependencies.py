"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (or on a whole
router via include_router(dependencies=...)) to extract and validate the
caller's identity from the Authorization header.

The gate is pure: it only verifies the token signature and expiry. It
never queries the database, so a deleted user's unexpired token still
passes here. Downstream queries are scoped by user_id and simply find
nothing for such a caller.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Header

from taskvault.auth.jwt import TokenError, verify_access_token
from taskvault.errors import AuthorizationInvalid, AuthorizationRequired

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated caller, as carried by the access token."""

    user_id: str
    email: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header.

    Raises AuthorizationRequired if the header is absent or not bearer-shaped.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthorizationRequired()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthorizationRequired()
    return token


def authenticate(authorization: Optional[str]) -> CurrentIdentity:
    """Verify the bearer token and return the identity it carries.

    Learn: Every verification failure (expired, bad signature, garbage)
    produces the same AuthorizationInvalid error. The specific reason is
    only logged, never returned to the client.
    """
    token = extract_bearer_token(authorization)
    try:
        claims = verify_access_token(token)
    except TokenError as e:
        logger.debug("auth.token_rejected", reason=str(e))
        raise AuthorizationInvalid()
    return CurrentIdentity(user_id=claims.user_id, email=claims.email)


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required, 401 if missing or invalid)."""
    return authenticate(authorization)
