"""SQLAlchemy models for staff accounts and their activity trail."""

from __future__ import annotations

import enum

from sqlalchemy import Column, ForeignKey, Integer, Text

from ..db.session import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActionType(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    SALE_CREATE = "SALE_CREATE"
    ORDER_CREATE = "ORDER_CREATE"
    ORDER_STATUS_CHANGE = "ORDER_STATUS_CHANGE"
    ORDER_DELETE = "ORDER_DELETE"
    PRODUCT_CREATE = "PRODUCT_CREATE"
    PRODUCT_UPDATE = "PRODUCT_UPDATE"
    PRODUCT_DELETE = "PRODUCT_DELETE"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    USER_STATUS_CHANGE = "USER_STATUS_CHANGE"
    PAGE_VIEW = "PAGE_VIEW"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default=Role.EMPLOYEE.value)
    status = Column(Text, nullable=False, default=UserStatus.ACTIVE.value)
    last_login = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value


class UserActivityLog(Base):
    """Append-only audit record; rows are never updated."""

    __tablename__ = "user_activity_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(Text, nullable=False, index=True)
    action_details = Column(Text, nullable=True)
    ip_address = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, index=True)


__all__ = ["ActionType", "Role", "User", "UserActivityLog", "UserStatus"]
