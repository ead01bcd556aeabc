"""Tests for services/auth.py -- registration, login, rotation and revocation.

The service runs against the real UserDirectory / TokenStore on an
in-memory SQLite database; only PyJWT-level edge cases build tokens by hand.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from conftest import PASSWORD
from models.refresh_token import RefreshToken
from services.auth import AuthService
from services.errors import (
    AlreadyExists,
    AuthErrorKind,
    InvalidCredentials,
    InvalidRefreshToken,
    NotOwnedOrNotFound,
)
from utils.security import create_jwt_token, hash_token


def _stored(auth_service, token):
    session = auth_service.tokens._storage.get_session()
    return session.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).one_or_none()


class TestRegister:
    def test_register_then_login(self, auth_service):
        user = auth_service.register("Alice", "alice@example.com", PASSWORD)
        assert user["email"] == "alice@example.com"
        assert user["role"] == "teamMember"
        assert "password" not in user and "password_hash" not in user

        result = auth_service.login("alice@example.com", PASSWORD)
        assert result["user"]["id"] == user["id"]

    def test_register_issues_no_token(self, auth_service, alice):
        assert auth_service.tokens._storage.count(RefreshToken) == 0

    def test_duplicate_email_fails(self, auth_service, alice):
        with pytest.raises(AlreadyExists) as exc_info:
            auth_service.register("Other", "alice@example.com", "another-pass")
        assert exc_info.value.kind is AuthErrorKind.ALREADY_EXISTS

    def test_registration_race_reports_already_exists(self, auth_service, alice, monkeypatch):
        monkeypatch.setattr(auth_service.users, "find_by_email", lambda email: None)
        with pytest.raises(AlreadyExists) as exc_info:
            auth_service.register("Other", "alice@example.com", PASSWORD)
        assert exc_info.value.__suppress_context__ is True

    def test_duplicate_email_is_case_insensitive(self, auth_service, alice):
        with pytest.raises(AlreadyExists):
            auth_service.register("Other", "  ALICE@example.com ", PASSWORD)

    def test_password_is_hashed(self, auth_service, alice):
        user = auth_service.users.find_by_id(alice["id"])
        assert user.password_hash != PASSWORD
        assert user.password_hash.startswith("$argon2")
        with pytest.raises(AttributeError):
            user.password


class TestLogin:
    def test_login_returns_tokens_and_public_user(self, auth_service, alice):
        result = auth_service.login("alice@example.com", PASSWORD)
        assert set(result) == {"user", "access_token", "refresh_token"}
        assert result["user"]["email"] == "alice@example.com"
        assert "password" not in result["user"]
        assert result["access_token"] != result["refresh_token"]

    def test_login_persists_hashed_refresh_token(self, auth_service, alice):
        result = auth_service.login("alice@example.com", PASSWORD)
        record = _stored(auth_service, result["refresh_token"])
        assert record is not None
        assert record.user_id == alice["id"]
        assert record.is_revoked is False
        assert record.token_hash != result["refresh_token"]
        assert len(record.token_hash) == 64

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, auth_service, alice):
        with pytest.raises(InvalidCredentials) as wrong_password:
            auth_service.login("alice@example.com", "not-the-password")
        with pytest.raises(InvalidCredentials) as unknown_email:
            auth_service.login("nobody@example.com", PASSWORD)
        assert type(wrong_password.value) is type(unknown_email.value)
        assert str(wrong_password.value) == str(unknown_email.value) == "Invalid credentials"

    def test_each_login_is_an_independent_session(self, auth_service, alice):
        first = auth_service.login("alice@example.com", PASSWORD)
        second = auth_service.login("alice@example.com", PASSWORD)
        assert first["refresh_token"] != second["refresh_token"]
        assert not _stored(auth_service, first["refresh_token"]).is_revoked
        assert not _stored(auth_service, second["refresh_token"]).is_revoked


class TestTokens:
    def test_access_token_claims(self, auth_service):
        token = auth_service.generate_access_token(7, "x@example.com")
        claims = auth_service.decode_access_token(token)
        assert claims["id"] == 7
        assert claims["email"] == "x@example.com"
        assert claims["type"] == "access"
        assert claims["exp"] - claims["iat"] == auth_service.settings.access_lifetime.seconds

    def test_refresh_token_signed_with_refresh_secret(self, auth_service):
        token = auth_service.generate_refresh_token(7, "x@example.com")
        claims = jwt.decode(token, auth_service.settings.refresh_secret, algorithms=["HS256"])
        assert claims["type"] == "refresh"
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, auth_service.settings.access_secret, algorithms=["HS256"])

    def test_save_refresh_token_sets_expiry_from_settings(self, auth_service, alice):
        token = auth_service.generate_refresh_token(alice["id"], alice["email"])
        auth_service.save_refresh_token(alice["id"], token)
        record = _stored(auth_service, token)
        expires_at = record.expires_at.replace(tzinfo=None)
        expected = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=7)
        assert abs(expires_at - expected) < timedelta(minutes=1)


class TestRefresh:
    def test_refresh_rotates_token(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        result = auth_service.refresh_access_token(login["refresh_token"])

        assert set(result) == {"access_token", "refresh_token"}
        assert result["refresh_token"] != login["refresh_token"]
        assert auth_service.decode_access_token(result["access_token"])["id"] == alice["id"]
        assert _stored(auth_service, login["refresh_token"]).is_revoked is True
        assert _stored(auth_service, result["refresh_token"]).is_revoked is False

    def test_replaying_rotated_token_fails(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        auth_service.refresh_access_token(login["refresh_token"])
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["refresh_token"])

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_fails(self, auth_service, token):
        with pytest.raises(InvalidRefreshToken) as exc_info:
            auth_service.refresh_access_token(token)
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__ is True

    def test_token_signed_with_wrong_secret_fails(self, auth_service, alice):
        forged = create_jwt_token(alice["id"], alice["email"], "refresh", "not-the-secret", timedelta(days=1))
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(forged)

    def test_access_token_is_not_a_refresh_token(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["access_token"])

    def test_expired_token_fails(self, auth_service, alice):
        settings = auth_service.settings
        expired = create_jwt_token(alice["id"], alice["email"], "refresh", settings.refresh_secret, timedelta(seconds=-30))
        auth_service.save_refresh_token(alice["id"], expired)
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(expired)

    def test_expired_record_with_valid_jwt_fails(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        record = _stored(auth_service, login["refresh_token"])
        record.expires_at = datetime.now(timezone.utc) - timedelta(seconds=5)
        auth_service.tokens.commit()

        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["refresh_token"])
        assert _stored(auth_service, login["refresh_token"]).is_revoked is False

    def test_signed_token_without_stored_record_fails(self, auth_service, alice):
        token = auth_service.generate_refresh_token(alice["id"], alice["email"])
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(token)

    def test_stored_record_of_another_user_fails(self, auth_service, alice, bob):
        # signed for alice but persisted under bob's id
        token = auth_service.generate_refresh_token(alice["id"], alice["email"])
        auth_service.save_refresh_token(bob["id"], token)
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(token)

    def test_lost_rotation_race_fails_without_issuing(self, auth_service, alice, monkeypatch):
        login = auth_service.login("alice@example.com", PASSWORD)
        monkeypatch.setattr(auth_service.tokens, "revoke_if_active", lambda token_hash: False)
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["refresh_token"])
        assert auth_service.tokens._storage.count(RefreshToken) == 1

    def test_revoke_if_active_only_succeeds_once(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        token_hash = hash_token(login["refresh_token"])
        assert auth_service.tokens.revoke_if_active(token_hash) is True
        assert auth_service.tokens.revoke_if_active(token_hash) is False


class TestReuseDetection:
    def test_disabled_by_default_keeps_other_sessions(self, auth_service, alice):
        first = auth_service.login("alice@example.com", PASSWORD)
        second = auth_service.login("alice@example.com", PASSWORD)
        auth_service.refresh_access_token(first["refresh_token"])
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(first["refresh_token"])
        assert auth_service.refresh_access_token(second["refresh_token"])

    def test_replay_revokes_every_session(self, auth_service, alice):
        strict = AuthService(
            replace(auth_service.settings, reuse_detection=True),
            auth_service.users,
            auth_service.tokens,
        )
        first = strict.login("alice@example.com", PASSWORD)
        second = strict.login("alice@example.com", PASSWORD)
        rotated = strict.refresh_access_token(first["refresh_token"])

        with pytest.raises(InvalidRefreshToken):
            strict.refresh_access_token(first["refresh_token"])
        with pytest.raises(InvalidRefreshToken):
            strict.refresh_access_token(second["refresh_token"])
        with pytest.raises(InvalidRefreshToken):
            strict.refresh_access_token(rotated["refresh_token"])


class TestRevocation:
    def test_revoke_refresh_token(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        auth_service.revoke_refresh_token(login["refresh_token"])
        assert _stored(auth_service, login["refresh_token"]).is_revoked is True
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["refresh_token"])

    def test_owner_can_revoke(self, auth_service, alice):
        login = auth_service.login("alice@example.com", PASSWORD)
        auth_service.revoke_user_refresh_token(alice["id"], login["refresh_token"])
        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh_access_token(login["refresh_token"])

    def test_other_user_cannot_revoke(self, auth_service, alice, bob):
        login = auth_service.login("alice@example.com", PASSWORD)
        with pytest.raises(NotOwnedOrNotFound) as exc_info:
            auth_service.revoke_user_refresh_token(bob["id"], login["refresh_token"])
        assert exc_info.value.kind is AuthErrorKind.NOT_OWNED_OR_NOT_FOUND
        assert _stored(auth_service, login["refresh_token"]).is_revoked is False

    def test_unknown_token_cannot_be_revoked(self, auth_service, alice):
        with pytest.raises(NotOwnedOrNotFound):
            auth_service.revoke_user_refresh_token(alice["id"], "never-issued")


def test_full_session_lifecycle(auth_service):
    auth_service.register("Alice", "alice@example.com", "secret123")

    login = auth_service.login("alice@example.com", "secret123")
    assert login["access_token"] and login["refresh_token"]
    assert login["user"]["email"] == "alice@example.com"
    assert "password" not in login["user"]

    refreshed = auth_service.refresh_access_token(login["refresh_token"])
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_access_token(login["refresh_token"])

    auth_service.revoke_user_refresh_token(login["user"]["id"], refreshed["refresh_token"])
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_access_token(refreshed["refresh_token"])
