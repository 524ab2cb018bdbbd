# app/models/user.py - Portal user accounts (admin, student, partner)
from __future__ import annotations
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.models.base import Base
import enum


class UserRole(str, enum.Enum):
    """System-wide user roles"""
    ADMIN = "admin"          # Full back-office access
    MANAGER = "manager"      # Back-office access to enrollments and students
    STUDENT = "student"      # Student portal
    PARTNER = "partner"      # Partner portal


class PortalType(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"
    PARTNER = "partner"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


# Roles allowed to drive the enrollment pipeline and the back-office CRUD
BACK_OFFICE_ROLES = [UserRole.ADMIN.value, UserRole.MANAGER.value]


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Login: for students the username is the email address
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    cpf: Mapped[str | None] = mapped_column(String(14), index=True)
    phone: Mapped[str | None] = mapped_column(String(32))

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=UserStatus.ACTIVE.value)
    portal_type: Mapped[str] = mapped_column(String(16), nullable=False, default=PortalType.STUDENT.value)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.STUDENT.value)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=func.now(), onupdate=func.now())
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("portal_type IN ('student','admin','partner')", name="ck_user_portal_type"),
        CheckConstraint("status IN ('active','inactive','blocked')", name="ck_user_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role"""
        return self.role == role

    def has_any_role(self, roles: list[str]) -> bool:
        """Check if user has any of the specified roles"""
        return self.role in roles

    def is_admin(self) -> bool:
        return self.has_role(UserRole.ADMIN.value)

    def is_back_office(self) -> bool:
        """Admins and managers operate the enrollment pipeline"""
        return self.has_any_role(BACK_OFFICE_ROLES)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role={self.role})>"
