# app/schemas/simplified_enrollment.py - Checkout records, pipeline results
from pydantic import BaseModel, ConfigDict, EmailStr, Field, validator
from typing import Optional, Dict, Any
from decimal import Decimal
from datetime import datetime
import re
from app.models.simplified_enrollment import SimplifiedEnrollmentStatus


class SimplifiedEnrollmentCreate(BaseModel):
    course_id: int
    student_name: str = Field(..., min_length=1, max_length=255)
    student_email: EmailStr
    student_phone: Optional[str] = None
    student_cpf: Optional[str] = None
    full_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    discount_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    payment_external_id: Optional[str] = None
    payment_url: Optional[str] = None
    observations: Optional[str] = None

    @validator("student_cpf")
    def validate_cpf(cls, v):
        if v is None:
            return v
        digits = re.sub(r"\D", "", v)
        if len(digits) != 11:
            raise ValueError("CPF must contain 11 digits")
        return digits

    @validator("discount_price")
    def validate_discount_price(cls, v, values):
        full_price = values.get("full_price")
        if v is not None and full_price is not None and v > full_price:
            raise ValueError("discount_price cannot exceed full_price")
        return v


class SimplifiedEnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    course_id: int
    student_name: str
    student_email: str
    student_phone: Optional[str] = None
    student_cpf: Optional[str] = None
    full_price: Optional[Decimal] = None
    discount_price: Optional[Decimal] = None
    status: str
    expires_at: Optional[datetime] = None
    payment_gateway: str
    payment_external_id: Optional[str] = None
    payment_url: Optional[str] = None
    student_id: Optional[int] = None
    converted_enrollment_id: Optional[int] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    simplified_enrollment_id: int
    old_status: str
    new_status: str
    reason: Optional[str] = None
    gateway_data: Optional[Dict[str, Any]] = None
    created_by_id: Optional[int] = None
    created_at: datetime


class BatchResult(BaseModel):
    processed: int
    failed: int


class FixStudentAccountOut(BaseModel):
    success: bool
    message: str
    user_id: int = Field(..., serialization_alias="userId")
    username: str


class StatusUpdateIn(BaseModel):
    status: SimplifiedEnrollmentStatus
    reason: Optional[str] = Field(default=None, max_length=512)
