"""Password hashing and auth cookie helpers.

Pipeline:
- hash_password / check_password: bcrypt, cost factor 12
- DUMMY_HASH: Timing-safe constant for user enumeration defense
- set_auth_cookie: httpOnly cookie carrying the authentication token
"""

import bcrypt
from fastapi import Response

from dsu.core.config import Settings

# bcrypt cost factor for password hashing
BCRYPT_ROUNDS = 12

# bcrypt only considers the first 72 bytes of input
MAX_PASSWORD_BYTES = 72

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password (at most 72 bytes UTF-8).

    Returns:
        The bcrypt hash as a string.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """Compare a plain-text password against a bcrypt hash.

    Always performs one bcrypt comparison, against DUMMY_HASH when there is
    no stored hash, so timing does not reveal whether the user exists.

    Args:
        password: Candidate plain-text password.
        password_hash: Stored bcrypt hash, or None for an unknown user.

    Returns:
        True only if a hash was given and it matches.
    """
    candidate = password.encode()
    if len(candidate) > MAX_PASSWORD_BYTES:
        bcrypt.checkpw(b"", DUMMY_HASH)
        return False
    if password_hash is None:
        bcrypt.checkpw(candidate, DUMMY_HASH)
        return False
    return bcrypt.checkpw(candidate, password_hash.encode())


def set_auth_cookie(
    response: Response, token: str, max_age_seconds: int, settings: Settings
) -> None:
    """Set httpOnly authentication-token cookie on response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: Authentication token value.
        max_age_seconds: Cookie lifetime, matching the token's remaining life.
        settings: Application settings.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=max_age_seconds,
    )
