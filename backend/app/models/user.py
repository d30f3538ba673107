# backend/app/models/user.py

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from .base import BaseModel
from .types import StatusEnum
import enum


class UserRole(str, enum.Enum):
    """Roles the identity directory can resolve a user id to."""

    ADMIN = "admin"
    TALENT = "talent"
    CLIENT = "client"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


class User(BaseModel):
    __tablename__ = "users"

    id           = Column(Integer, primary_key=True, index=True)
    email        = Column(String, unique=True, index=True, nullable=False)
    first_name   = Column(String, nullable=True)
    last_name    = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    role         = Column(StatusEnum(UserRole, name="user_role"), nullable=False, default=UserRole.TALENT, index=True)
    status       = Column(StatusEnum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)
    # Guardian co-signs contracts on behalf of a minor talent
    guardian_id  = Column(Integer, ForeignKey("users.id"), nullable=True)

    guardian = relationship("User", remote_side=[id], uselist=False)

    @property
    def full_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email
