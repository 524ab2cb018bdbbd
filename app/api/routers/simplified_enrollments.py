# app/api/routers/simplified_enrollments.py - Conversion pipeline control surface + checkout CRUD
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta
import logging

from app.core.config import settings
from app.api.deps.auth import require_back_office
from app.api.deps.params import parse_id
from app.api.deps.services import get_repository, get_converter, get_reconciler
from app.models import SimplifiedEnrollmentStatus
from app.repositories.conversion_repository import SqlAlchemyConversionRepository
from app.services.enrollment_converter import EnrollmentConverter
from app.services.enrollment_reconciler import EnrollmentReconciler
from app.services.exceptions import EnrollmentNotFoundError, MissingStudentEmailError
from app.schemas.common import ApiResponse
from app.schemas.simplified_enrollment import (
    SimplifiedEnrollmentCreate,
    SimplifiedEnrollmentOut,
    StatusLogOut,
    StatusUpdateIn,
    BatchResult,
    FixStudentAccountOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()

ENROLLMENT_ID_LABEL = "ID da matrícula"


def _tally_response(tally: Dict[str, int]) -> ApiResponse:
    return ApiResponse(
        success=True,
        message=f"Processamento concluído. Matrículas processadas: {tally['processed']}, falhas: {tally['failed']}",
        data=BatchResult(**tally).model_dump(),
    )


# ---- conversion pipeline --------------------------------------------------------

@router.post("/process-pending", response_model=ApiResponse, response_model_exclude_none=True)
def process_pending_enrollments(
    ctx: Dict[str, Any] = Depends(require_back_office),
    reconciler: EnrollmentReconciler = Depends(get_reconciler)
):
    """Convert every simplified enrollment with a confirmed payment"""
    logger.info(f"User {ctx['user'].id} triggered processing of pending enrollments")
    return _tally_response(reconciler.process_pending_enrollments())


@router.post("/recover-incomplete", response_model=ApiResponse, response_model_exclude_none=True)
def recover_incomplete_enrollments(
    ctx: Dict[str, Any] = Depends(require_back_office),
    reconciler: EnrollmentReconciler = Depends(get_reconciler)
):
    """Finish conversions that stopped before the formal enrollment was linked"""
    logger.info(f"User {ctx['user'].id} triggered recovery of incomplete enrollments")
    return _tally_response(reconciler.recover_incomplete_enrollments())


@router.post("/{enrollment_id}/sync", response_model=ApiResponse, response_model_exclude_none=True)
def sync_simplified_enrollment(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    converter: EnrollmentConverter = Depends(get_converter)
):
    """Convert one simplified enrollment"""
    numeric_id = parse_id(enrollment_id, ENROLLMENT_ID_LABEL)

    if not converter.sync_simplified_enrollment(numeric_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Não foi possível sincronizar a matrícula"
        )

    return ApiResponse(success=True, message="Matrícula sincronizada com sucesso")


@router.post("/{enrollment_id}/fix-student-account", response_model=FixStudentAccountOut)
def fix_student_account(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    reconciler: EnrollmentReconciler = Depends(get_reconciler)
):
    """Find or create the student account and link it to the simplified enrollment"""
    numeric_id = parse_id(enrollment_id, ENROLLMENT_ID_LABEL)

    try:
        account = reconciler.fix_student_account(numeric_id)
    except EnrollmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Matrícula simplificada não encontrada"
        )
    except MissingStudentEmailError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Matrícula sem email do aluno"
        )

    message = (
        "Conta de aluno criada e vinculada à matrícula"
        if account.created else
        "Conta de aluno existente vinculada à matrícula"
    )
    return FixStudentAccountOut(
        success=True,
        message=message,
        user_id=account.user.id,
        username=account.user.username,
    )


# ---- checkout records -----------------------------------------------------------

@router.post("", response_model=SimplifiedEnrollmentOut, status_code=status.HTTP_201_CREATED)
def create_simplified_enrollment(
    data: SimplifiedEnrollmentCreate,
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    """Create a pending checkout record"""
    if repo.get_course(data.course_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Curso não encontrado"
        )

    fields = data.model_dump()
    fields["student_email"] = data.student_email.strip().lower()

    try:
        enrollment = repo.create_simplified_enrollment(
            **fields,
            status=SimplifiedEnrollmentStatus.PENDING.value,
            expires_at=datetime.utcnow() + timedelta(days=settings.SIMPLIFIED_ENROLLMENT_EXPIRY_DAYS),
            created_by_id=ctx["user"].id,
        )
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"Simplified enrollment {enrollment.id} created for course {data.course_id}")
    return enrollment


@router.get("", response_model=List[SimplifiedEnrollmentOut])
def list_simplified_enrollments(
    status_filter: Optional[SimplifiedEnrollmentStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    return repo.list_simplified_enrollments(
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )


def _get_or_404(repo: SqlAlchemyConversionRepository, raw_id: str):
    enrollment = repo.get_simplified_enrollment(parse_id(raw_id, ENROLLMENT_ID_LABEL))
    if enrollment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Matrícula simplificada não encontrada"
        )
    return enrollment


@router.get("/{enrollment_id}", response_model=SimplifiedEnrollmentOut)
def get_simplified_enrollment(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    return _get_or_404(repo, enrollment_id)


@router.get("/{enrollment_id}/status-log", response_model=List[StatusLogOut])
def get_status_log(
    enrollment_id: str,
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    enrollment = _get_or_404(repo, enrollment_id)
    return repo.list_status_logs(enrollment.id)


@router.post("/{enrollment_id}/status", response_model=SimplifiedEnrollmentOut)
def update_status(
    enrollment_id: str,
    data: StatusUpdateIn,
    ctx: Dict[str, Any] = Depends(require_back_office),
    repo: SqlAlchemyConversionRepository = Depends(get_repository)
):
    """Manual status change by the back office; conversion itself goes through /sync"""
    enrollment = _get_or_404(repo, enrollment_id)

    if data.status == SimplifiedEnrollmentStatus.CONVERTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use a sincronização para converter a matrícula"
        )
    if enrollment.is_converted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Matrícula já convertida"
        )

    try:
        repo.set_simplified_enrollment_status(
            enrollment,
            data.status.value,
            reason=data.reason or "Alteração manual",
            created_by_id=ctx["user"].id,
        )
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"Simplified enrollment {enrollment.id} set to {data.status.value} by user {ctx['user'].id}")
    return enrollment
