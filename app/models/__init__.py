# app/models/__init__.py - Import all models so SQLAlchemy can discover them

from app.models.base import Base

from app.models.user import User, UserRole, PortalType, UserStatus
from app.models.course import Course, CourseStatus
from app.models.simplified_enrollment import (
    SimplifiedEnrollment,
    SimplifiedEnrollmentStatus,
    SimplifiedEnrollmentStatusLog,
)
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.contract import EducationalContract, ContractType, ContractStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "PortalType",
    "UserStatus",
    "Course",
    "CourseStatus",
    "SimplifiedEnrollment",
    "SimplifiedEnrollmentStatus",
    "SimplifiedEnrollmentStatusLog",
    "Enrollment",
    "EnrollmentStatus",
    "EducationalContract",
    "ContractType",
    "ContractStatus",
]
