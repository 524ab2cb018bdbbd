# app/schemas/course.py - Course schemas
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
from app.models.course import CourseStatus
from app.models.contract import ContractType


class CourseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: CourseStatus = CourseStatus.DRAFT
    workload: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    contract_type: Optional[ContractType] = Field(
        default=None,
        description="Declared contract type; omitted types are inferred from the course name"
    )


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    description: Optional[str] = None
    status: str
    workload: Optional[int] = None
    price: Optional[Decimal] = None
    contract_type: Optional[str] = None
    created_at: Optional[datetime] = None
