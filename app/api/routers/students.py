# app/api/routers/students.py - Student accounts (back office)
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from app.core.db import get_db
from app.api.deps.auth import require_back_office
from app.api.deps.params import parse_id
from app.api.deps.services import get_repository
from app.models.user import User, UserRole
from app.repositories.conversion_repository import SqlAlchemyConversionRepository
from app.schemas.student import UserOut, StudentUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_student_or_404(db: Session, raw_id: str) -> User:
    student = db.get(User, parse_id(raw_id, "ID do aluno"))
    if not student or student.role != UserRole.STUDENT.value:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Aluno não encontrado"
        )
    return student


@router.get("", response_model=List[UserOut])
async def list_students(
    search: Optional[str] = Query(None, description="Search by name, email or CPF"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    return repo.list_students(search=search, limit=limit, offset=offset)


@router.get("/{student_id}", response_model=UserOut)
async def get_student(
    student_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    return _get_student_or_404(db, student_id)


@router.patch("/{student_id}", response_model=UserOut)
async def update_student(
    student_id: str,
    data: StudentUpdate,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    student = _get_student_or_404(db, student_id)

    updates = data.model_dump(exclude_unset=True)
    if "full_name" in updates and updates["full_name"]:
        student.full_name = updates["full_name"].strip()
        student.display_name = student.full_name.split()[0]
    if "phone" in updates:
        student.phone = updates["phone"]
    if updates.get("status"):
        student.status = updates["status"].value
    student.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(student)

    logger.info(f"Student {student.id} updated by user {ctx['user'].id}: {sorted(updates)}")
    return student
