"""Password hashing, password policy and session tokens."""

import re
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from ...infrastructure.config.settings import Settings, get_settings
from ..common.exceptions import AuthenticationError, ValidationError

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_password_policy(password: str, field: str = "password") -> None:
    """Enforce the password policy.

    At least ``PASSWORD_MIN_LENGTH`` characters with one upper case letter,
    one lower case letter and one digit.

    Raises:
        ValidationError: Listing every rule the password breaks.
    """
    min_length = get_settings().PASSWORD_MIN_LENGTH
    problems = []
    if len(password) < min_length:
        problems.append(f"must be at least {min_length} characters long")
    if not _LOWER.search(password):
        problems.append("must contain a lower case letter")
    if not _UPPER.search(password):
        problems.append("must contain an upper case letter")
    if not _DIGIT.search(password):
        problems.append("must contain a digit")

    if problems:
        raise ValidationError(
            "Password does not meet the password policy",
            details=[{"field": field, "message": problem} for problem in problems],
        )


def create_access_token(user_id: int, email: str, role: str, settings: Optional[Settings] = None) -> str:
    """Issue a signed session token for a user."""
    settings = settings or get_settings()
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRE_HOURS),
        "jti": secrets.token_urlsafe(16),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: Optional[str], settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Decode and validate a session token.

    Signature, expiry, issuer and audience are all checked.

    Raises:
        AuthenticationError: If the token is missing, malformed, expired or otherwise invalid.
    """
    if not token:
        raise AuthenticationError("Authentication token is missing")

    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            options={"require": ["sub", "exp", "jti"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    return payload
