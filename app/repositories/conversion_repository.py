# app/repositories/conversion_repository.py - Persistence interface for the enrollment pipeline
from datetime import datetime
from typing import Optional, List, Dict, Any, Protocol
import logging

from sqlalchemy import select, or_, and_
from sqlalchemy.orm import Session

from app.models import (
    User,
    UserRole,
    Course,
    Enrollment,
    EnrollmentStatus,
    EducationalContract,
    SimplifiedEnrollment,
    SimplifiedEnrollmentStatus,
    SimplifiedEnrollmentStatusLog,
)

logger = logging.getLogger(__name__)


class ConversionRepository(Protocol):
    """
    Everything the conversion services read or write.

    Writes are flushed, never committed: callers own the unit of work and
    finish it with commit() or rollback().
    """

    def get_simplified_enrollment(self, enrollment_id: int, for_update: bool = False) -> Optional[SimplifiedEnrollment]: ...

    def get_simplified_enrollment_by_reference(self, reference: str) -> Optional[SimplifiedEnrollment]: ...

    def list_simplified_enrollments(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[SimplifiedEnrollment]: ...

    def list_simplified_enrollments_by_status(self, status: str) -> List[SimplifiedEnrollment]: ...

    def list_incomplete_simplified_enrollments(self) -> List[SimplifiedEnrollment]: ...

    def create_simplified_enrollment(self, **fields: Any) -> SimplifiedEnrollment: ...

    def add_status_log(
        self,
        enrollment: SimplifiedEnrollment,
        old_status: str,
        new_status: str,
        reason: str,
        created_by_id: Optional[int] = None,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> SimplifiedEnrollmentStatusLog: ...

    def list_status_logs(self, enrollment_id: int) -> List[SimplifiedEnrollmentStatusLog]: ...

    def set_simplified_enrollment_status(
        self,
        enrollment: SimplifiedEnrollment,
        new_status: str,
        reason: str,
        created_by_id: Optional[int] = None,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> SimplifiedEnrollmentStatusLog: ...

    def link_student_account(self, enrollment: SimplifiedEnrollment, user: User) -> None: ...

    def get_user(self, user_id: int) -> Optional[User]: ...

    def get_user_by_username(self, username: str) -> Optional[User]: ...

    def create_user(self, **fields: Any) -> User: ...

    def list_students(self, search: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[User]: ...

    def get_course(self, course_id: int) -> Optional[Course]: ...

    def get_enrollment(self, enrollment_id: int) -> Optional[Enrollment]: ...

    def convert_to_formal_enrollment(self, simplified: SimplifiedEnrollment, student: User) -> Enrollment: ...

    def get_contract_for_reference(self, reference: str) -> Optional[EducationalContract]: ...

    def create_contract(self, **fields: Any) -> EducationalContract: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class SqlAlchemyConversionRepository:
    """ConversionRepository backed by a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    # ---- simplified enrollments -------------------------------------------------

    def get_simplified_enrollment(self, enrollment_id: int, for_update: bool = False) -> Optional[SimplifiedEnrollment]:
        stmt = select(SimplifiedEnrollment).where(SimplifiedEnrollment.id == enrollment_id)
        if for_update:
            # Row lock on PostgreSQL; ignored by SQLite
            stmt = stmt.with_for_update()
        return self.db.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_simplified_enrollment_by_reference(self, reference: str) -> Optional[SimplifiedEnrollment]:
        """Match the gateway externalReference against the uuid, then the payment id"""
        enrollment = self.db.execute(
            select(SimplifiedEnrollment).where(SimplifiedEnrollment.uuid == reference)
        ).scalar_one_or_none()
        if enrollment is not None:
            return enrollment

        return self.db.execute(
            select(SimplifiedEnrollment)
            .where(SimplifiedEnrollment.payment_external_id == reference)
            .order_by(SimplifiedEnrollment.id.desc())
        ).scalars().first()

    def list_simplified_enrollments(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[SimplifiedEnrollment]:
        stmt = select(SimplifiedEnrollment)
        if status:
            stmt = stmt.where(SimplifiedEnrollment.status == status)
        stmt = stmt.order_by(SimplifiedEnrollment.created_at.desc(), SimplifiedEnrollment.id.desc())
        return list(self.db.execute(stmt.offset(offset).limit(limit)).scalars().all())

    def list_simplified_enrollments_by_status(self, status: str) -> List[SimplifiedEnrollment]:
        return list(self.db.execute(
            select(SimplifiedEnrollment)
            .where(SimplifiedEnrollment.status == status)
            .order_by(SimplifiedEnrollment.id)
        ).scalars().all())

    def list_incomplete_simplified_enrollments(self) -> List[SimplifiedEnrollment]:
        """
        Records that should have converted but carry no formal-enrollment link:
        flagged converted without the link, or confirmed with an account already provisioned.
        """
        return list(self.db.execute(
            select(SimplifiedEnrollment)
            .where(
                SimplifiedEnrollment.converted_enrollment_id.is_(None),
                or_(
                    SimplifiedEnrollment.status == SimplifiedEnrollmentStatus.CONVERTED.value,
                    and_(
                        SimplifiedEnrollment.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value,
                        SimplifiedEnrollment.student_id.is_not(None),
                    ),
                ),
            )
            .order_by(SimplifiedEnrollment.id)
        ).scalars().all())

    def set_simplified_enrollment_status(
        self,
        enrollment: SimplifiedEnrollment,
        new_status: str,
        reason: str,
        created_by_id: Optional[int] = None,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> SimplifiedEnrollmentStatusLog:
        old_status = enrollment.status
        enrollment.status = new_status
        enrollment.updated_at = datetime.utcnow()
        return self.add_status_log(enrollment, old_status, new_status, reason, created_by_id, gateway_data)

    def create_simplified_enrollment(self, **fields: Any) -> SimplifiedEnrollment:
        enrollment = SimplifiedEnrollment(**fields)
        self.db.add(enrollment)
        self.db.flush()
        return enrollment

    def add_status_log(
        self,
        enrollment: SimplifiedEnrollment,
        old_status: str,
        new_status: str,
        reason: str,
        created_by_id: Optional[int] = None,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> SimplifiedEnrollmentStatusLog:
        log_entry = SimplifiedEnrollmentStatusLog(
            simplified_enrollment_id=enrollment.id,
            old_status=old_status,
            new_status=new_status,
            reason=reason,
            gateway_data=gateway_data,
            created_by_id=created_by_id,
        )
        self.db.add(log_entry)
        self.db.flush()
        return log_entry

    def list_status_logs(self, enrollment_id: int) -> List[SimplifiedEnrollmentStatusLog]:
        return list(self.db.execute(
            select(SimplifiedEnrollmentStatusLog)
            .where(SimplifiedEnrollmentStatusLog.simplified_enrollment_id == enrollment_id)
            .order_by(SimplifiedEnrollmentStatusLog.id)
        ).scalars().all())

    def link_student_account(self, enrollment: SimplifiedEnrollment, user: User) -> None:
        enrollment.student_id = user.id
        enrollment.updated_at = datetime.utcnow()
        self.db.flush()

    # ---- accounts and courses ---------------------------------------------------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(or_(User.username == username, User.email == username))
        ).scalars().first()

    def create_user(self, **fields: Any) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        return user

    def list_students(self, search: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[User]:
        stmt = select(User).where(User.role == UserRole.STUDENT.value)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(User.full_name.ilike(pattern), User.email.ilike(pattern), User.cpf.ilike(pattern)))
        return list(self.db.execute(
            stmt.order_by(User.full_name).offset(offset).limit(limit)
        ).scalars().all())

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.db.get(Course, course_id)

    # ---- formal enrollments and contracts ---------------------------------------

    def get_enrollment(self, enrollment_id: int) -> Optional[Enrollment]:
        return self.db.get(Enrollment, enrollment_id)

    def convert_to_formal_enrollment(self, simplified: SimplifiedEnrollment, student: User) -> Enrollment:
        """
        Create the formal enrollment for a simplified one, or return the one
        already recorded for it. Links both records.
        """
        existing = self.db.execute(
            select(Enrollment).where(Enrollment.simplified_enrollment_id == simplified.id)
        ).scalar_one_or_none()

        if existing is None:
            now = datetime.utcnow()
            existing = Enrollment(
                code=f"MAT{now:%Y%m%d}{simplified.id:06d}",
                simplified_enrollment_id=simplified.id,
                student_id=student.id,
                course_id=simplified.course_id,
                amount=simplified.discount_price or simplified.full_price or 0,
                payment_gateway=simplified.payment_gateway,
                payment_external_id=simplified.payment_external_id,
                status=EnrollmentStatus.ACTIVE.value,
                enrollment_date=now,
                created_by_id=simplified.created_by_id,
            )
            self.db.add(existing)
            self.db.flush()
            logger.info(f"Formal enrollment {existing.code} created for simplified enrollment {simplified.id}")

        simplified.student_id = student.id
        simplified.converted_enrollment_id = existing.id
        simplified.processed_at = datetime.utcnow()
        self.db.flush()
        return existing

    def get_contract_for_reference(self, reference: str) -> Optional[EducationalContract]:
        return self.db.execute(
            select(EducationalContract).where(EducationalContract.enrollment_reference == reference)
        ).scalar_one_or_none()

    def create_contract(self, **fields: Any) -> EducationalContract:
        contract = EducationalContract(**fields)
        self.db.add(contract)
        self.db.flush()
        return contract

    # ---- unit of work -----------------------------------------------------------

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
