"""Token service tests.

Learn: The properties that matter:
1. A token round-trips to the same identity
2. Access and refresh tokens are NOT interchangeable (different secrets)
3. Expired tokens fail with TokenExpired, tampered ones with TokenInvalid
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from taskvault.auth.jwt import (
    TokenClaims,
    TokenExpired,
    TokenInvalid,
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from taskvault.config import settings

CLAIMS = TokenClaims(user_id="5f0c6f7e-4b8f-4d0e-9f59-6b7b2c1d9a10", email="a@example.com")


def test_access_round_trip():
    token = create_access_token(CLAIMS)
    assert verify_access_token(token) == CLAIMS


def test_refresh_round_trip():
    token = create_refresh_token(CLAIMS)
    assert verify_refresh_token(token) == CLAIMS


def test_refresh_token_rejected_as_access():
    with pytest.raises(TokenInvalid):
        verify_access_token(create_refresh_token(CLAIMS))


def test_access_token_rejected_as_refresh():
    with pytest.raises(TokenInvalid):
        verify_refresh_token(create_access_token(CLAIMS))


def test_refresh_secret_never_validates_access_token():
    """Even with the right "type" claim, the wrong secret fails."""
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {
            "sub": CLAIMS.user_id,
            "email": CLAIMS.email,
            "type": "access",
            "iat": now,
            "exp": now + timedelta(minutes=5),
        },
        settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenInvalid):
        verify_access_token(forged)


def test_expired_access_token():
    token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        verify_access_token(token)


def test_expired_refresh_token():
    token = create_refresh_token(CLAIMS, expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        verify_refresh_token(token)


def test_default_ttls():
    """Expiry is issuance time plus the configured TTL."""
    access = jwt.decode(
        create_access_token(CLAIMS),
        settings.jwt_access_secret,
        algorithms=[settings.jwt_algorithm],
    )
    refresh = jwt.decode(
        create_refresh_token(CLAIMS),
        settings.jwt_refresh_secret,
        algorithms=[settings.jwt_algorithm],
    )
    assert access["exp"] - access["iat"] == settings.access_token_expire_minutes * 60
    assert refresh["exp"] - refresh["iat"] == settings.refresh_token_expire_days * 86400
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"


def test_zero_ttl_is_honored():
    """An explicit zero lifetime is not replaced by the default TTL."""
    options = {"verify_exp": False}
    access = jwt.decode(
        create_access_token(CLAIMS, expires_delta=timedelta(0)),
        settings.jwt_access_secret,
        algorithms=[settings.jwt_algorithm],
        options=options,
    )
    refresh = jwt.decode(
        create_refresh_token(CLAIMS, expires_delta=timedelta(0)),
        settings.jwt_refresh_secret,
        algorithms=[settings.jwt_algorithm],
        options=options,
    )
    assert access["exp"] == access["iat"]
    assert refresh["exp"] == refresh["iat"]


def test_tampered_token():
    """Swapping in a different payload breaks the signature."""
    token = create_access_token(CLAIMS)
    header, _, signature = token.split(".")
    other = create_access_token(TokenClaims(user_id=CLAIMS.user_id, email="evil@example.com"))
    forged_payload = other.split(".")[1]
    with pytest.raises(TokenInvalid):
        verify_access_token(".".join([header, forged_payload, signature]))


@pytest.mark.parametrize("garbage", ["", "not.a.jwt", "abc"])
def test_malformed_token(garbage):
    with pytest.raises(TokenInvalid):
        verify_access_token(garbage)


def test_missing_email_claim():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": CLAIMS.user_id, "type": "access", "iat": now, "exp": now + timedelta(minutes=5)},
        settings.jwt_access_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenInvalid):
        verify_access_token(token)
