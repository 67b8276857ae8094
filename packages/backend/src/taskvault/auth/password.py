"""Password hashing utilities.

Learn: Uses bcrypt for password hashing. bcrypt generates a random salt
on every call, so hashing the same password twice produces different
hashes, and it is deliberately slow (~100ms at rounds=12).
"""

import bcrypt

from taskvault.config import settings
from taskvault.errors import InvalidInput


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt.

    Learn: Hashes start with "$2b$" and embed the salt and work factor,
    so verify_password() needs nothing but the stored string. Passwords
    are truncated to 72 bytes (bcrypt's limit).

    Raises InvalidInput for empty or non-string passwords.
    """
    if not isinstance(password, str) or not password:
        raise InvalidInput("Password must be a non-empty string")
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash.

    Never raises: any mismatch, empty input or malformed hash is False.
    """
    if not password or not password_hash:
        return False
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError, AttributeError):
        return False
