# app/api/routers/enrollments.py - Formal enrollments, contracts and integration checks
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Dict, Any, List, Optional
import logging

from app.core.db import get_db
from app.api.deps.auth import require_back_office
from app.api.deps.params import parse_id
from app.models import Enrollment, EducationalContract, User, Course, CourseStatus
from app.schemas.enrollment import EnrollmentOut, ContractOut, IntegrationCheckOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_enrollment_or_404(db: Session, raw_id: str) -> Enrollment:
    enrollment = db.get(Enrollment, parse_id(raw_id, "ID da matrícula"))
    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Matrícula não encontrada"
        )
    return enrollment


@router.get("", response_model=List[EnrollmentOut])
async def list_enrollments(
    student_id: Optional[int] = Query(None),
    course_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    stmt = select(Enrollment)
    if student_id:
        stmt = stmt.where(Enrollment.student_id == student_id)
    if course_id:
        stmt = stmt.where(Enrollment.course_id == course_id)
    stmt = stmt.order_by(Enrollment.enrollment_date.desc()).offset(offset).limit(limit)
    return db.execute(stmt).scalars().all()


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    return _get_enrollment_or_404(db, enrollment_id)


@router.get("/{enrollment_id}/contract", response_model=ContractOut)
async def get_enrollment_contract(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    enrollment = _get_enrollment_or_404(db, enrollment_id)

    contract = db.execute(
        select(EducationalContract).where(EducationalContract.enrollment_id == enrollment.id)
    ).scalars().first()
    if not contract:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contrato não encontrado"
        )
    return contract


@router.get("/{enrollment_id}/verify-integration", response_model=IntegrationCheckOut)
async def verify_integration(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    """The student account and the course behind the enrollment both exist"""
    enrollment = _get_enrollment_or_404(db, enrollment_id)

    issues = []
    if db.get(User, enrollment.student_id) is None:
        issues.append("Conta do aluno não encontrada")
    if db.get(Course, enrollment.course_id) is None:
        issues.append("Curso não encontrado")

    return IntegrationCheckOut(enrollment_id=enrollment.id, valid=not issues, issues=issues)


@router.get("/{enrollment_id}/validate", response_model=IntegrationCheckOut)
async def validate_enrollment(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    """The student account is active and the course is published"""
    enrollment = _get_enrollment_or_404(db, enrollment_id)

    issues = []
    student = db.get(User, enrollment.student_id)
    if student is None:
        issues.append("Conta do aluno não encontrada")
    elif not student.is_active:
        issues.append("Conta do aluno inativa")

    course = db.get(Course, enrollment.course_id)
    if course is None:
        issues.append("Curso não encontrado")
    elif course.status != CourseStatus.PUBLISHED.value:
        issues.append("Curso não publicado")

    if issues:
        logger.info(f"Enrollment {enrollment.id} failed validation: {issues}")
    return IntegrationCheckOut(enrollment_id=enrollment.id, valid=not issues, issues=issues)
