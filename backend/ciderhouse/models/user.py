"""
User Models
Handles authentication and role-based authorization
"""

from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class RoleEnum(str, enum.Enum):
    """User role enumeration"""
    admin = "admin"
    operator = "operator"
    viewer = "viewer"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(SQLEnum(RoleEnum, name="role_t"), nullable=False, default=RoleEnum.viewer)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    def token_payload(self) -> dict:
        """Claims embedded in access tokens"""
        return {
            "user_id": str(self.id),
            "email": self.email,
            "role": self.role.value,
        }
