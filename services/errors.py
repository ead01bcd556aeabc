"""
Error kinds raised by the auth services.

Callers discriminate on ``AuthError.kind`` (or the subclass), never on the
message text. The HTTP layer maps each kind to a status code in api/errors.py.
"""
from __future__ import annotations

import enum


class ConfigurationError(ValueError):
    """Raised while loading settings; never mapped to an HTTP response."""


class AuthErrorKind(enum.Enum):
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    NOT_OWNED_OR_NOT_FOUND = "NOT_OWNED_OR_NOT_FOUND"


class AuthError(Exception):
    kind: AuthErrorKind
    default_message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AlreadyExists(AuthError):
    kind = AuthErrorKind.ALREADY_EXISTS
    default_message = "User already exists"


class InvalidCredentials(AuthError):
    kind = AuthErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class InvalidRefreshToken(AuthError):
    kind = AuthErrorKind.INVALID_REFRESH_TOKEN
    default_message = "Invalid or expired refresh token"


class NotOwnedOrNotFound(AuthError):
    kind = AuthErrorKind.NOT_OWNED_OR_NOT_FOUND
    default_message = "Refresh token not found or does not belong to user"
