"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- SHA-256 digests of refresh tokens for storage
- JTI generation for token identifiers
"""
from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

ph = PasswordHasher()

# Verified against when the email is unknown so a failed login costs the same
# whether or not the account exists.
_DUMMY_HASH = ph.hash("not-a-real-password")


class TokenError(Exception):
    """Raised when a JWT cannot be decoded or has the wrong type."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2 (constant-time comparison).
    A missing hash is checked against a dummy hash and always fails.
    """
    if password_hash is None:
        try:
            ph.verify(_DUMMY_HASH, password)
        except VerificationError:
            pass
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    return ph.check_needs_rehash(password_hash)


def hash_token(token: str) -> str:
    """Deterministic sha256 hex digest of a raw token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_jwt_token(
    user_id: int,
    email: str,
    token_type: str,
    secret: str,
    lifetime: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Sign {id, email, type} with iat/exp and a fresh jti."""
    now = _now()
    payload = {
        "id": user_id,
        "email": email,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        "jti": generate_jti(),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, expected_type: str, algorithm: str = "HS256") -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises TokenError on invalid signature, expiry,
    malformed input, missing claims or a token of the wrong type.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    if not isinstance(decoded.get("id"), int):
        raise TokenError("Invalid token: missing subject")
    return decoded
