# app/schemas/enrollment.py - Formal enrollment and contract schemas
from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


class EnrollmentOut(BaseModel):
    id: int
    code: str
    simplified_enrollment_id: Optional[int] = None
    student_id: int
    course_id: int
    amount: Decimal
    payment_gateway: str
    payment_external_id: Optional[str] = None
    status: str
    enrollment_date: datetime

    class Config:
        from_attributes = True


class ContractOut(BaseModel):
    id: str
    enrollment_reference: str
    enrollment_id: Optional[int] = None
    student_id: int
    course_id: int
    contract_number: str
    contract_type: str
    status: str
    total_value: Decimal
    installments: int
    installment_value: Decimal
    discount: Decimal
    payment_method: str
    start_date: datetime
    end_date: datetime
    campus: Optional[str] = None
    signature_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class IntegrationCheckOut(BaseModel):
    enrollment_id: int
    valid: bool
    issues: List[str] = []
