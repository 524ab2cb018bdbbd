# app/services/enrollment_converter.py - Simplified enrollment -> account + formal enrollment + contract
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError

from app.core.security import only_digits
from app.models import SimplifiedEnrollment, SimplifiedEnrollmentStatus, Course
from app.repositories.conversion_repository import ConversionRepository
from app.services.account_provisioner import AccountProvisioner, ProvisionedAccount
from app.services.contract_generator import ContractGenerator
from app.services.email_service import EmailService, email_service
from app.services.sms_service import SmsService, sms_service
from app.services.exceptions import (
    EnrollmentError,
    EnrollmentNotFoundError,
    CourseNotFoundError,
    InvalidEnrollmentStateError,
)

logger = logging.getLogger(__name__)

CONVERSION_REASON = "Matrícula convertida com sucesso"
RESUMED_CONVERSION_REASON = "Conversão concluída pela recuperação de matrículas incompletas"


class EnrollmentConverter:
    """
    Drives a simplified enrollment from payment_confirmed to converted.

    Account, formal enrollment, contract and the status transition are written
    in one unit of work and committed together; the credentials email goes out
    only after the commit. Every failure rolls back and is reported as False so
    the record stays retryable.
    """

    def __init__(
        self,
        repo: ConversionRepository,
        provisioner: Optional[AccountProvisioner] = None,
        contract_generator: Optional[ContractGenerator] = None,
        notifier: Optional[EmailService] = None,
        sms_notifier: Optional[SmsService] = None,
    ):
        self.repo = repo
        self.provisioner = provisioner or AccountProvisioner(repo)
        self.contract_generator = contract_generator or ContractGenerator(repo)
        self.notifier = notifier or email_service
        self.sms_notifier = sms_notifier or sms_service

    def sync_simplified_enrollment(self, enrollment_id: int, resume: bool = False) -> bool:
        """
        Convert one simplified enrollment. Safe to call repeatedly.

        Args:
            enrollment_id: simplified enrollment id
            resume: also accept records flagged converted that never got their formal enrollment

        Returns:
            True when the enrollment is converted (now or before), False otherwise
        """
        logger.info(f"Syncing simplified enrollment {enrollment_id}")

        try:
            result = self._convert(enrollment_id, resume)
        except IntegrityError as e:
            self.repo.rollback()
            return self._converted_concurrently(enrollment_id, e)
        except EnrollmentError as e:
            self.repo.rollback()
            logger.warning(f"Simplified enrollment {enrollment_id} not converted: {e}")
            return False
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Error converting simplified enrollment {enrollment_id}: {e}", exc_info=True)
            return False

        if result is None:
            return True

        enrollment, course, account = result
        if account.created:
            self._send_credentials(enrollment, course, account)
        return True

    def _convert(self, enrollment_id: int, resume: bool):
        enrollment = self.repo.get_simplified_enrollment(enrollment_id, for_update=True)
        if enrollment is None:
            raise EnrollmentNotFoundError(enrollment_id)

        if self._already_converted(enrollment, resume):
            logger.info(f"Simplified enrollment {enrollment_id} already converted, skipping")
            return None

        accepted = [SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value]
        if resume:
            accepted.append(SimplifiedEnrollmentStatus.CONVERTED.value)
        if enrollment.status not in accepted:
            raise InvalidEnrollmentStateError(enrollment_id, enrollment.status)

        account = self.provisioner.resolve_student_account(enrollment)
        self.repo.link_student_account(enrollment, account.user)

        course = self.repo.get_course(enrollment.course_id)
        if course is None:
            raise CourseNotFoundError(enrollment.course_id)

        formal = self.repo.convert_to_formal_enrollment(enrollment, account.user)
        logger.info(f"Simplified enrollment {enrollment_id} -> formal enrollment {formal.id}")

        contract = self.contract_generator.generate_contract(
            student_id=account.user.id,
            course=course,
            enrollment=enrollment,
            formal_enrollment_id=formal.id,
        )
        logger.info(f"Contract {contract.id} ({contract.contract_number}) bound to enrollment {formal.id}")

        previous_status = enrollment.status
        self.repo.set_simplified_enrollment_status(
            enrollment,
            SimplifiedEnrollmentStatus.CONVERTED.value,
            reason=RESUMED_CONVERSION_REASON if previous_status == SimplifiedEnrollmentStatus.CONVERTED.value else CONVERSION_REASON,
            created_by_id=enrollment.created_by_id,
        )
        self.repo.commit()

        logger.info(f"Simplified enrollment {enrollment_id}: {previous_status} -> converted")
        return enrollment, course, account

    @staticmethod
    def _already_converted(enrollment: SimplifiedEnrollment, resume: bool) -> bool:
        if enrollment.converted_enrollment_id is not None:
            return True
        # Flagged converted without the link: only a resume run finishes it
        return enrollment.status == SimplifiedEnrollmentStatus.CONVERTED.value and not resume

    def _converted_concurrently(self, enrollment_id: int, error: IntegrityError) -> bool:
        """A uniqueness constraint fired: succeed if a concurrent run converted the record"""
        enrollment = self.repo.get_simplified_enrollment(enrollment_id)
        if enrollment is not None and enrollment.converted_enrollment_id is not None:
            logger.info(f"Simplified enrollment {enrollment_id} was converted by a concurrent run")
            return True

        logger.error(f"Integrity error converting simplified enrollment {enrollment_id}: {error}")
        return False

    def _send_credentials(self, enrollment: SimplifiedEnrollment, course: Course, account: ProvisionedAccount) -> None:
        password = account.initial_password or only_digits(enrollment.student_cpf)
        try:
            sent = self.notifier.send_student_credentials_email(
                to_email=account.user.email,
                full_name=account.user.full_name,
                password=password,
                course_name=course.name,
            )
        except Exception as e:
            logger.error(f"Credentials notifier raised for simplified enrollment {enrollment.id}: {e}", exc_info=True)
            sent = False

        if sent:
            logger.info(f"Credentials email sent for simplified enrollment {enrollment.id}")
        else:
            logger.warning(f"Credentials email failed for simplified enrollment {enrollment.id}; conversion kept")

        phone = account.user.phone or enrollment.student_phone
        if not phone:
            return
        try:
            sms_sent = self.sms_notifier.send_student_credentials_sms(
                phone=phone,
                full_name=account.user.full_name,
                login=account.user.email,
                password=password,
            )
        except Exception as e:
            logger.error(f"SMS notifier raised for simplified enrollment {enrollment.id}: {e}", exc_info=True)
            sms_sent = False

        if not sms_sent:
            logger.warning(f"Credentials SMS failed for simplified enrollment {enrollment.id}; conversion kept")
