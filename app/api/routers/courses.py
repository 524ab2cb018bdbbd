# app/api/routers/courses.py - Course catalogue
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Dict, Any, List, Optional
import logging

from app.core.db import get_db
from app.api.deps.auth import get_current_user, require_back_office
from app.api.deps.params import parse_id
from app.models.course import Course, CourseStatus
from app.schemas.course import CourseCreate, CourseOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    ctx: Dict[str, Any] = Depends(require_back_office),
    db: Session = Depends(get_db)
):
    """Create a course; contract_type is declared here rather than guessed later"""
    code = data.code.strip().upper()

    existing = db.execute(
        select(Course).where(Course.code == code)
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Course with code {code} already exists"
        )

    course = Course(
        code=code,
        name=data.name.strip(),
        description=data.description,
        status=data.status.value,
        workload=data.workload,
        price=data.price,
        contract_type=data.contract_type.value if data.contract_type else None,
    )
    db.add(course)
    db.commit()
    db.refresh(course)

    logger.info(f"Course {course.code} created by user {ctx['user'].id}")
    return course


@router.get("", response_model=List[CourseOut])
async def list_courses(
    status_filter: Optional[CourseStatus] = Query(None, alias="status"),
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    stmt = select(Course).order_by(Course.name)
    if status_filter:
        stmt = stmt.where(Course.status == status_filter.value)
    return db.execute(stmt).scalars().all()


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: str,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    course = db.get(Course, parse_id(course_id, "ID do curso"))
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Curso não encontrado"
        )
    return course
