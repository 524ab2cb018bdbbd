# app/models/contract.py - Educational contracts generated at conversion time
from __future__ import annotations
import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base


class ContractType(str, enum.Enum):
    SEGUNDA_GRADUACAO = "SEGUNDA_GRADUACAO"
    POS_GRADUACAO = "POS_GRADUACAO"
    MBA = "MBA"
    TECNICO = "TECNICO"
    CURSO_LIVRE = "CURSO_LIVRE"
    GRADUACAO = "GRADUACAO"


class ContractStatus(str, enum.Enum):
    PENDING = "pending"
    SIGNED = "signed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class EducationalContract(Base):
    """
    One contract per converted simplified enrollment.
    enrollment_reference holds the simplified enrollment uuid and is unique.
    """
    __tablename__ = "educational_contracts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    enrollment_reference: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    enrollment_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("enrollments.id", ondelete="SET NULL"), index=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    contract_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    contract_type: Mapped[str] = mapped_column(String(32), nullable=False, default=ContractType.GRADUACAO.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ContractStatus.PENDING.value)

    # Financial terms
    total_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    installments: Mapped[int] = mapped_column(Integer, nullable=False)
    installment_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)

    # Validity window
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    campus: Mapped[str | None] = mapped_column(String(128))

    signature_date: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("installments > 0", name="ck_contract_installments_positive"),
        CheckConstraint("total_value >= 0", name="ck_contract_total_positive"),
        CheckConstraint("status IN ('pending','signed','cancelled','expired')", name="ck_contract_status"),
        Index("ix_contracts_student_course", "student_id", "course_id"),
    )
