# app/services/contract_generator.py - Contract numbering, type resolution and financial terms
import calendar
import logging
import time
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, Union

from app.core.config import settings
from app.models import Course, ContractType, ContractStatus, EducationalContract, SimplifiedEnrollment
from app.repositories.conversion_repository import ConversionRepository

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value: Union[Decimal, int, float, str, None]) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def build_contract_number(course_code: Optional[str], student_id: int, epoch_millis: Optional[int] = None) -> str:
    """{course code or "C"}-{student id}-{last 6 digits of epoch millis}"""
    if epoch_millis is None:
        epoch_millis = int(time.time() * 1000)
    return f"{course_code or 'C'}-{student_id}-{str(epoch_millis)[-6:]}"


def infer_contract_type(course_name: Optional[str]) -> ContractType:
    """
    Guess the contract type from the course name.

    Migration fallback only, for courses created before Course.contract_type
    existed. Checked in precedence order.
    """
    name = (course_name or "").lower()

    if "graduação" in name and "segunda" in name:
        return ContractType.SEGUNDA_GRADUACAO
    if "graduação" in name and "pós" in name:
        return ContractType.POS_GRADUACAO
    if "mba" in name:
        return ContractType.MBA
    if "técnico" in name:
        return ContractType.TECNICO
    if "livre" in name or "extensão" in name:
        return ContractType.CURSO_LIVRE
    return ContractType.GRADUACAO


def resolve_contract_type(course: Course, override: Optional[Union[ContractType, str]] = None) -> ContractType:
    """Explicit override, then the course's declared type, then the name heuristic"""
    if override:
        return ContractType(override)
    if course.contract_type:
        return ContractType(course.contract_type)
    return infer_contract_type(course.name)


def discount_percentage(full_price, discount_price) -> Decimal:
    """Percentage drop from full to discounted price; 0 unless both are present"""
    if full_price is None or discount_price is None:
        return Decimal("0.00")
    full = Decimal(str(full_price))
    if full <= 0:
        return Decimal("0.00")
    discounted = Decimal(str(discount_price))
    return ((full - discounted) / full * 100).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_financial_terms(
    enrollment: SimplifiedEnrollment,
    total_value=None,
    installments: Optional[int] = None,
    discount=None,
) -> Dict[str, Any]:
    total = to_money(total_value if total_value is not None else enrollment.full_price)
    count = settings.DEFAULT_CONTRACT_INSTALLMENTS if installments is None else installments
    if count < 1:
        raise ValueError("installments must be at least 1")

    return {
        "total_value": total,
        "installments": count,
        "installment_value": (total / count).quantize(CENTS, rounding=ROUND_HALF_UP),
        "discount": (
            to_money(discount) if discount is not None
            else discount_percentage(enrollment.full_price, enrollment.discount_price)
        ),
    }


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the target month's length"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class ContractGenerator:
    """Creates the one educational contract owed to each converted enrollment"""

    def __init__(self, repo: ConversionRepository):
        self.repo = repo

    def generate_contract(
        self,
        student_id: int,
        course: Course,
        enrollment: SimplifiedEnrollment,
        formal_enrollment_id: Optional[int] = None,
        contract_type: Optional[Union[ContractType, str]] = None,
        total_value=None,
        installments: Optional[int] = None,
        payment_method: Optional[str] = None,
        discount=None,
        campus: Optional[str] = None,
    ) -> EducationalContract:
        """
        Persist the contract for a simplified enrollment.

        The contract is keyed by the enrollment uuid; when one already exists
        it is returned unchanged.
        """
        existing = self.repo.get_contract_for_reference(enrollment.uuid)
        if existing is not None:
            logger.info(f"Contract {existing.contract_number} already exists for enrollment {enrollment.uuid}")
            return existing

        terms = compute_financial_terms(enrollment, total_value, installments, discount)
        start_date = datetime.utcnow()
        # Fixed duration, independent of the installment count
        end_date = add_months(start_date, settings.CONTRACT_DURATION_MONTHS)

        contract = self.repo.create_contract(
            enrollment_reference=enrollment.uuid,
            enrollment_id=formal_enrollment_id,
            student_id=student_id,
            course_id=course.id,
            contract_number=build_contract_number(course.code, student_id),
            contract_type=resolve_contract_type(course, contract_type).value,
            status=ContractStatus.PENDING.value,
            payment_method=payment_method or settings.DEFAULT_CONTRACT_PAYMENT_METHOD,
            start_date=start_date,
            end_date=end_date,
            campus=campus or settings.DEFAULT_CONTRACT_CAMPUS,
            **terms,
        )

        logger.info(
            f"Contract {contract.contract_number} ({contract.contract_type}) created for student {student_id}, "
            f"{terms['installments']}x {terms['installment_value']}"
        )
        return contract
