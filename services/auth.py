"""
Auth/session manager.

- register / login with argon2-hashed passwords
- short-lived access tokens and long-lived refresh tokens, signed with
  different secrets
- refresh tokens persisted as sha256 hashes, rotated on every use and
  revocable on logout

AuthService holds only its settings and its two collaborators, so the app
factory can build one per application and tests can build their own.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from services.errors import (
    AlreadyExists,
    InvalidCredentials,
    InvalidRefreshToken,
    NotOwnedOrNotFound,
)
from services.tokens import TokenStore
from services.users import UserDirectory
from utils.durations import Duration, parse_duration
from utils.security import (
    TokenError,
    create_jwt_token,
    decode_token,
    hash_password,
    hash_token,
    password_needs_rehash,
    verify_password,
)

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class AuthSettings:
    access_secret: str
    access_lifetime: Duration
    refresh_secret: str
    refresh_lifetime: Duration
    algorithm: str = "HS256"
    reuse_detection: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AuthSettings":
        """Build settings from a Flask-style config mapping.

        Raises ConfigurationError when a lifetime is not "<int><d|h|m|s>".
        """
        return cls(
            access_secret=config["JWT_SECRET"],
            access_lifetime=parse_duration(config["JWT_EXPIRES_IN"], "JWT_EXPIRES_IN"),
            refresh_secret=config["JWT_REFRESH_SECRET"],
            refresh_lifetime=parse_duration(config["JWT_REFRESH_EXPIRES_IN"], "JWT_REFRESH_EXPIRES_IN"),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            reuse_detection=bool(config.get("REFRESH_TOKEN_REUSE_DETECTION", False)),
        )


class AuthService:
    def __init__(self, settings: AuthSettings, users: UserDirectory, tokens: TokenStore):
        self.settings = settings
        self.users = users
        self.tokens = tokens

    # -- registration / login ------------------------------------------------

    def register(self, name: str, email: str, password: str) -> dict:
        if self.users.find_by_email(email) is not None:
            raise AlreadyExists()
        try:
            user = self.users.create(name, email, password)
        except IntegrityError:
            # lost a race with a concurrent registration of the same email
            raise AlreadyExists() from None
        logger.info("Registered user id=%s", user.id)
        return self.users.to_public(user)

    def login(self, email: str, password: str) -> dict:
        user = self.users.find_by_email(email)
        if not verify_password(password, user.password_hash if user else None):
            raise InvalidCredentials()

        if password_needs_rehash(user.password_hash):
            self.users.update_password_hash(user, hash_password(password))

        access_token = self.generate_access_token(user.id, user.email)
        refresh_token = self.generate_refresh_token(user.id, user.email)
        self.save_refresh_token(user.id, refresh_token)

        logger.info("User id=%s logged in", user.id)
        return {
            "user": self.users.to_public(user),
            "access_token": access_token,
            "refresh_token": refresh_token,
        }

    # -- token issuance -------------------------------------------------------

    def generate_access_token(self, user_id: int, email: str) -> str:
        s = self.settings
        return create_jwt_token(user_id, email, ACCESS, s.access_secret, s.access_lifetime.to_timedelta(), s.algorithm)

    def generate_refresh_token(self, user_id: int, email: str) -> str:
        s = self.settings
        return create_jwt_token(user_id, email, REFRESH, s.refresh_secret, s.refresh_lifetime.to_timedelta(), s.algorithm)

    def decode_access_token(self, token: str) -> dict:
        """Stateless check of an access token; raises TokenError."""
        return decode_token(token, self.settings.access_secret, ACCESS, self.settings.algorithm)

    def save_refresh_token(self, user_id: int, token: str, commit: bool = True) -> None:
        expires_at = datetime.now(timezone.utc) + self.settings.refresh_lifetime.to_timedelta()
        self.tokens.insert(user_id, hash_token(token), expires_at)
        if commit:
            self.tokens.commit()

    # -- refresh / revocation -------------------------------------------------

    def refresh_access_token(self, refresh_token: str) -> dict:
        try:
            payload = decode_token(refresh_token, self.settings.refresh_secret, REFRESH, self.settings.algorithm)
        except TokenError as exc:
            logger.warning("Rejected refresh token: %s", exc)
            raise InvalidRefreshToken() from None

        user_id = payload["id"]
        token_hash = hash_token(refresh_token)

        if self.tokens.find_active(token_hash, user_id) is None:
            self._handle_inactive_token(token_hash, user_id)
            raise InvalidRefreshToken()

        user = self.users.find_by_id(user_id)
        if user is None:
            raise InvalidRefreshToken()

        access_token = self.generate_access_token(user.id, user.email)

        # Rotation: only one request may revoke the presented token
        if not self.tokens.revoke_if_active(token_hash):
            self.tokens.rollback()
            logger.warning("Concurrent reuse of refresh token for user id=%s", user_id)
            raise InvalidRefreshToken()
        new_refresh_token = self.generate_refresh_token(user.id, user.email)
        self.save_refresh_token(user.id, new_refresh_token, commit=False)
        self.tokens.commit()

        logger.info("Rotated refresh token for user id=%s", user_id)
        return {"access_token": access_token, "refresh_token": new_refresh_token}

    def _handle_inactive_token(self, token_hash: str, user_id: int) -> None:
        if not self.settings.reuse_detection:
            return
        record = self.tokens.find_owned(token_hash, user_id)
        if record is not None and record.is_revoked:
            revoked = self.tokens.revoke_all_for_user(user_id)
            self.tokens.commit()
            logger.warning(
                "Revoked refresh token replayed for user id=%s; revoked %s active session(s)",
                user_id,
                revoked,
            )

    def revoke_refresh_token(self, refresh_token: str) -> None:
        self.tokens.mark_revoked(hash_token(refresh_token))
        self.tokens.commit()

    def revoke_user_refresh_token(self, user_id: int, refresh_token: str) -> None:
        token_hash = hash_token(refresh_token)
        if self.tokens.find_owned(token_hash, user_id) is None:
            raise NotOwnedOrNotFound()
        self.tokens.mark_revoked(token_hash)
        self.tokens.commit()
        logger.info("User id=%s logged out", user_id)
