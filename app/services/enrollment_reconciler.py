# app/services/enrollment_reconciler.py - Batch conversion and account repair
from typing import Dict, List, Optional
import logging

from app.repositories.conversion_repository import ConversionRepository
from app.models import SimplifiedEnrollmentStatus
from app.services.account_provisioner import ProvisionedAccount
from app.services.email_service import EmailService
from app.services.sms_service import SmsService
from app.services.enrollment_converter import EnrollmentConverter
from app.services.exceptions import EnrollmentNotFoundError

logger = logging.getLogger(__name__)

FALLBACK_COURSE_NAME = "Curso"


class EnrollmentReconciler:
    """
    Finds simplified enrollments that are owed a conversion and runs the
    converter over them one at a time.
    """

    def __init__(
        self,
        repo: ConversionRepository,
        converter: EnrollmentConverter,
        notifier: Optional[EmailService] = None,
        sms_notifier: Optional[SmsService] = None,
    ):
        self.repo = repo
        self.converter = converter
        self.notifier = notifier or converter.notifier
        self.sms_notifier = sms_notifier or converter.sms_notifier

    def process_pending_enrollments(self) -> Dict[str, int]:
        """Convert every simplified enrollment whose payment is confirmed"""
        pending = self.repo.list_simplified_enrollments_by_status(
            SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value
        )
        ids = [enrollment.id for enrollment in pending]
        logger.info(f"Processing {len(ids)} pending simplified enrollments")

        tally = self._run(ids, resume=False)
        logger.info(f"Pending enrollments processed: {tally['processed']}, failed: {tally['failed']}")
        return tally

    def recover_incomplete_enrollments(self) -> Dict[str, int]:
        """
        Re-run the converter over records that should have converted but have no
        formal enrollment: flagged converted without the link, or confirmed with
        an account already provisioned.
        """
        incomplete = self.repo.list_incomplete_simplified_enrollments()
        ids = [enrollment.id for enrollment in incomplete]
        logger.info(f"Recovering {len(ids)} incomplete simplified enrollments")

        tally = self._run(ids, resume=True)
        logger.info(f"Incomplete enrollments recovered: {tally['processed']}, failed: {tally['failed']}")
        return tally

    def _run(self, ids: List[int], resume: bool) -> Dict[str, int]:
        tally = {"processed": 0, "failed": 0}
        # One unit of work per record
        for enrollment_id in ids:
            if self.converter.sync_simplified_enrollment(enrollment_id, resume=resume):
                tally["processed"] += 1
            else:
                tally["failed"] += 1
        return tally

    def fix_student_account(self, enrollment_id: int) -> ProvisionedAccount:
        """
        Repair only the account link of a simplified enrollment: find or create
        the account, link it, and send credentials when the account is new.

        Raises:
            EnrollmentNotFoundError: unknown enrollment id
            MissingStudentEmailError: the enrollment has no email
        """
        enrollment = self.repo.get_simplified_enrollment(enrollment_id, for_update=True)
        if enrollment is None:
            raise EnrollmentNotFoundError(enrollment_id)

        try:
            account = self.converter.provisioner.resolve_student_account(enrollment)
            self.repo.link_student_account(enrollment, account.user)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Simplified enrollment {enrollment_id} linked to account {account.user.id}")

        if account.created:
            self._send_credentials(enrollment, account)

        return account

    def _send_credentials(self, enrollment, account: ProvisionedAccount) -> None:
        course = self.repo.get_course(enrollment.course_id)
        sent = self.notifier.send_student_credentials_email(
            to_email=account.user.email,
            full_name=account.user.full_name,
            password=account.initial_password,
            course_name=course.name if course else FALLBACK_COURSE_NAME,
        )
        if not sent:
            logger.warning(f"Credentials email failed for repaired account {account.user.id}")

        phone = account.user.phone or enrollment.student_phone
        if phone and not self.sms_notifier.send_student_credentials_sms(
            phone=phone,
            full_name=account.user.full_name,
            login=account.user.email,
            password=account.initial_password,
        ):
            logger.warning(f"Credentials SMS failed for repaired account {account.user.id}")
