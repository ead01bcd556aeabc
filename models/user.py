import enum

from models.base_model import Base, BaseModel, TimestampMixin
from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship


class UserRole(enum.Enum):
    TEAM_MEMBER = "teamMember"
    PROJECT_MANAGER = "projectManager"
    PRODUCT_OWNER = "productOwner"
    ADMIN = "admin"


class User(TimestampMixin, BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.TEAM_MEMBER,
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
