# app/models/simplified_enrollment.py - Checkout/lead records and their status history
from __future__ import annotations
import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, DateTime, Text, ForeignKey, CheckConstraint, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base


class SimplifiedEnrollmentStatus(str, enum.Enum):
    PENDING = "pending"
    WAITING_PAYMENT = "waiting_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    CONVERTED = "converted"
    EXPIRED = "expired"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"
    FAILED = "failed"


_STATUS_VALUES = ",".join(f"'{s.value}'" for s in SimplifiedEnrollmentStatus)


class SimplifiedEnrollment(Base):
    """
    Lightweight enrollment created at checkout time, before payment.
    Converted into a formal Enrollment once payment is confirmed; never deleted.
    """
    __tablename__ = "simplified_enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # Prospective student
    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    student_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    student_phone: Mapped[str | None] = mapped_column(String(32))
    student_cpf: Mapped[str | None] = mapped_column(String(14))

    # Pricing
    full_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    discount_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # Checkout / payment gateway
    status: Mapped[str] = mapped_column(String(24), nullable=False, default=SimplifiedEnrollmentStatus.PENDING.value, index=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime)
    payment_gateway: Mapped[str] = mapped_column(String(16), nullable=False, default="asaas")
    payment_external_id: Mapped[str | None] = mapped_column(String(64), index=True)
    payment_url: Mapped[str | None] = mapped_column(String(512))

    # Conversion links; at most one of each, ever
    student_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    converted_enrollment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("enrollments.id", use_alter=True, name="fk_simplified_enrollments_converted_enrollment"),
        unique=True
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_by_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))
    observations: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    status_logs: Mapped[list["SimplifiedEnrollmentStatusLog"]] = relationship(
        "SimplifiedEnrollmentStatusLog",
        back_populates="simplified_enrollment",
        order_by="SimplifiedEnrollmentStatusLog.id",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_simplified_enrollment_status"),
    )

    @property
    def is_converted(self) -> bool:
        return (
            self.status == SimplifiedEnrollmentStatus.CONVERTED.value
            or self.converted_enrollment_id is not None
        )

    def __repr__(self):
        return f"<SimplifiedEnrollment(id={self.id}, email='{self.student_email}', status={self.status})>"


class SimplifiedEnrollmentStatusLog(Base):
    """Append-only audit trail of status transitions"""
    __tablename__ = "simplified_enrollment_status_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    simplified_enrollment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("simplified_enrollments.id"),
        index=True,
        nullable=False
    )
    old_status: Mapped[str] = mapped_column(String(24), nullable=False)
    new_status: Mapped[str] = mapped_column(String(24), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(512))
    gateway_data: Mapped[dict | None] = mapped_column(JSON)
    created_by_id: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    simplified_enrollment: Mapped["SimplifiedEnrollment"] = relationship(
        "SimplifiedEnrollment", back_populates="status_logs"
    )

    __table_args__ = (
        Index("ix_status_logs_enrollment_created", "simplified_enrollment_id", "created_at"),
    )
