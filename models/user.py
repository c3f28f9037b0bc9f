# models/user.py
import enum

from sqlalchemy import Column, Integer, DateTime, Boolean, String, Enum
from sqlalchemy.sql import func

from .base import Base


class Role(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    MERCHANT = "MERCHANT"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(100), nullable=True)
    role = Column(Enum(Role, name="user_role", native_enum=False), default=Role.CUSTOMER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} role={self.role}>"
