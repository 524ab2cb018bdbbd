# app/schemas/student.py - Student account schemas
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from app.models.user import UserStatus


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    display_name: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None
    status: str
    portal_type: str
    role: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[UserStatus] = None
