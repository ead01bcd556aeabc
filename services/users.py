"""
User directory: the only place that creates users or touches password hashes.
"""
from __future__ import annotations

from models.db_storage import DBStorage
from models.schemas.common import normalize_email
from models.schemas.user import UserOutSchema
from models.user import User, UserRole
from utils.security import hash_password

_user_out_schema = UserOutSchema()


class UserDirectory:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def find_by_email(self, email: str) -> User | None:
        session = self._storage.get_session()
        return session.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> User | None:
        return self._storage.get(User, user_id)

    def create(self, name: str, email: str, raw_password: str, role: UserRole | None = None) -> User:
        """Hash the password and insert a new user. Commits."""
        user = User(
            name=name,
            email=normalize_email(email),
            password_hash=hash_password(raw_password),
            role=role or UserRole.TEAM_MEMBER,
        )
        self._storage.new(user)
        self._storage.save()
        return user

    def update_password_hash(self, user: User, new_hash: str) -> None:
        user.password_hash = new_hash
        self._storage.new(user)
        self._storage.save()

    def set_role(self, user_id: int, role: UserRole) -> User | None:
        user = self.find_by_id(user_id)
        if user is None:
            return None
        user.role = role
        self._storage.new(user)
        self._storage.save()
        return user

    @staticmethod
    def to_public(user: User) -> dict:
        """Serialize a user without any password material."""
        return _user_out_schema.dump(user)
