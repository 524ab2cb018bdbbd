# app/models/course.py
from __future__ import annotations
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, DateTime, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base


class CourseStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CourseStatus.DRAFT.value)
    workload: Mapped[int | None] = mapped_column(Integer)  # hours
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # Declared contract type (ContractType value). NULL for courses created before
    # the column existed; those fall back to the name heuristic.
    contract_type: Mapped[str | None] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('draft','published','archived')", name="ck_course_status"),
    )
