# app/models/enrollment.py - Formal enrollments created by the conversion pipeline
from __future__ import annotations
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, ForeignKey, DateTime, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base


class EnrollmentStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    WAITING_PAYMENT = "waiting_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"


_STATUS_VALUES = ",".join(f"'{s.value}'" for s in EnrollmentStatus)


class Enrollment(Base):
    """
    Authoritative enrollment linking a student account to a course.
    simplified_enrollment_id is unique: a simplified enrollment converts at most once.
    """
    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    simplified_enrollment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("simplified_enrollments.id"),
        unique=True,
        nullable=True
    )
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    payment_gateway: Mapped[str] = mapped_column(String(16), nullable=False, default="asaas")
    payment_external_id: Mapped[str | None] = mapped_column(String(64))

    status: Mapped[str] = mapped_column(String(24), nullable=False, default=EnrollmentStatus.ACTIVE.value)
    enrollment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    created_by_id: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
    course: Mapped["Course"] = relationship("Course")

    __table_args__ = (
        Index("ix_enrollments_student_course", "student_id", "course_id"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_enrollment_status"),
    )
