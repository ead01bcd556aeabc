"""
Persistence layer: SQLAlchemy models and the DBStorage session wrapper.

The app factory builds one DBStorage per application from its DATABASE_URL,
so there is no module-level storage instance.
"""
from models.base_model import Base
from models.user import User, UserRole
from models.refresh_token import RefreshToken
from models.db_storage import DBStorage

__all__ = ["Base", "User", "UserRole", "RefreshToken", "DBStorage"]
