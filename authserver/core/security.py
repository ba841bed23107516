"""
Security utilities for the auth server.
Consolidated JWT, password and random-secret handling.
"""
import base64
import random
import re
import secrets
import uuid
from datetime import timedelta
from typing import Optional, List, Tuple

import jwt
import bcrypt

from authserver.config import settings
from authserver.core.clock import utcnow


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def password_policy_errors(password: str) -> List[str]:
    """
    Check a password against the account password policy.

    Returns:
        List of human-readable violations (empty when the password is acceptable)
    """
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain a lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain a digit")
    return errors


def create_access_token(
    user_id: str,
    email: str,
    roles: List[str],
    expires_delta: Optional[timedelta] = None
) -> Tuple[str, int]:
    """
    Create a signed access token.

    Args:
        user_id: Subject of the token
        email: User email claim
        roles: One entry per assigned role
        expires_delta: Custom lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        (encoded JWT, lifetime in seconds)
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = utcnow()
    expire = now + expires_delta
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "jti": str(uuid.uuid4()),
        "roles": list(roles),
        "type": "access",
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": expire,
    }

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt, int(expires_delta.total_seconds())


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and verify an access token (signature, expiry, issuer, audience, type).

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"require": ["exp", "sub", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    if payload.get("type") != "access":
        return None
    return payload


def generate_refresh_token_value() -> str:
    """64 random bytes, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(64)).decode("ascii")


UPPERCASE = "ABCDEFGHJKLMNPQRSTUVWXYZ"
LOWERCASE = "abcdefghjkmnpqrstuvwxyz"
DIGITS = "23456789"
SYMBOLS = "!@#$%^&*"
PASSWORD_ALPHABET = UPPERCASE + LOWERCASE + DIGITS + SYMBOLS


def generate_temporary_password(length: int = None) -> str:
    """
    Generate a temporary password with at least one upper-case letter,
    lower-case letter, digit and symbol.

    The required classes are written to distinct randomly chosen positions
    and the remaining positions are drawn from the full alphabet.
    """
    length = length or settings.TEMP_PASSWORD_LENGTH
    required = (UPPERCASE, LOWERCASE, DIGITS, SYMBOLS)
    if length < len(required):
        raise ValueError(f"Temporary password length must be at least {len(required)}")

    rng = random.SystemRandom()
    chars = [rng.choice(PASSWORD_ALPHABET) for _ in range(length)]
    for position, charset in zip(rng.sample(range(length), len(required)), required):
        chars[position] = rng.choice(charset)
    return "".join(chars)


def slugify(name: str) -> str:
    """Lowercase, spaces to dashes, punctuation stripped."""
    slug = name.strip().lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")
