"""
Password hashing and bearer token helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hashed value."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def create_access_token(
    claims: dict[str, Any], secret: str, expires_hours: int = 24
) -> str:
    """Create a signed JWT carrying ``claims`` plus an expiry."""
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(hours=expires_hours)
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str) -> dict[str, Any]:
    """
    Decode and verify a JWT.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.PyJWTError: If the token is malformed or the signature is invalid.
    """
    return jwt.decode(token, secret, algorithms=[ALGORITHM])
