"""
Refresh token store.

Rows are keyed by the sha256 of the raw token. Nothing here deletes rows:
revoked and expired tokens stay for audit and replay detection.

Methods that change state flush but do not commit, so the caller decides the
unit of work (rotation revokes one row and inserts another in one commit).
"""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import update

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    @property
    def _session(self):
        return self._storage.get_session()

    def insert(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            is_revoked=False,
        )
        self._storage.new(record)
        self._storage.flush()
        return record

    def find_active(self, token_hash: str, user_id: int) -> RefreshToken | None:
        """Matching hash and owner, not revoked and not expired."""
        return (
            self._session.query(RefreshToken)
            .filter(
                RefreshToken.token_hash == token_hash,
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > _utcnow(),
            )
            .first()
        )

    def find_owned(self, token_hash: str, user_id: int) -> RefreshToken | None:
        """Matching hash and owner, regardless of state."""
        return (
            self._session.query(RefreshToken)
            .filter(RefreshToken.token_hash == token_hash, RefreshToken.user_id == user_id)
            .first()
        )

    def mark_revoked(self, token_hash: str) -> None:
        self._session.execute(
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .values(is_revoked=True)
            .execution_options(synchronize_session="evaluate")
        )

    def revoke_if_active(self, token_hash: str) -> bool:
        """Conditionally revoke; False when another request already revoked it."""
        result = self._session.execute(
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    def revoke_all_for_user(self, user_id: int) -> int:
        result = self._session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    def commit(self) -> None:
        self._storage.save()

    def rollback(self) -> None:
        self._storage.rollback()
