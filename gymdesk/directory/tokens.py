"""Password hashing and signed access tokens for the self-hosted directory."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any

import jwt
from passlib.context import CryptContext

_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check a password; unrecognised or malformed hashes never verify."""
    try:
        return bool(pwd_context.verify(password, encoded))
    except (ValueError, TypeError):
        return False


def new_refresh_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass(frozen=True, slots=True)
class AccessClaims:
    sub: str
    email: str
    exp: int


class TokenSigner:
    """Issues and verifies short-lived HS256 access tokens."""

    def __init__(self, secret_key: str, ttl_seconds: int = 3600) -> None:
        self._secret = secret_key
        self.ttl = ttl_seconds

    def issue(self, user_id: str, email: str) -> tuple[str, int]:
        """Return ``(token, expires_at)``."""
        now = int(time.time())
        expires_at = now + self.ttl
        payload: dict[str, Any] = {
            "sub": user_id,
            "email": email,
            "iat": now,
            "exp": expires_at,
            # Two tokens issued in the same second for one user must still differ
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM), expires_at

    def verify(self, token: str) -> AccessClaims:
        """Decode a token.

        Raises ``jwt.ExpiredSignatureError`` or ``jwt.InvalidTokenError``.
        """
        payload: dict[str, Any] = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        return AccessClaims(sub=payload["sub"], email=payload.get("email", ""), exp=payload["exp"])
