# app/services/account_provisioner.py - Find-or-create the student account behind a simplified enrollment
from dataclasses import dataclass
from typing import Optional
import logging

from app.core.security import password_manager, only_digits
from app.models import User, UserRole, PortalType, UserStatus, SimplifiedEnrollment
from app.repositories.conversion_repository import ConversionRepository
from app.services.exceptions import MissingStudentEmailError

logger = logging.getLogger(__name__)


@dataclass
class ProvisionedAccount:
    user: User
    # Plaintext seed, only set when the account was created by this call. Never persisted.
    initial_password: Optional[str]
    created: bool


def normalize_username(email: str) -> str:
    return email.strip().lower()


def display_name_for(full_name: Optional[str]) -> Optional[str]:
    """First whitespace-delimited token of the full name"""
    if not full_name:
        return None
    parts = full_name.split()
    return parts[0] if parts else None


class AccountProvisioner:
    """
    Resolves exactly one student account per distinct email.

    Username and email are the de-duplication key: two simplified enrollments
    sharing an email resolve to the same account.
    """

    def __init__(self, repo: ConversionRepository):
        self.repo = repo

    def resolve_student_account(self, enrollment: SimplifiedEnrollment) -> ProvisionedAccount:
        """
        Find the account for the enrollment's student, creating it when absent.

        Raises:
            MissingStudentEmailError: the enrollment carries no email
        """
        # A previous run already linked the account
        if enrollment.student_id:
            linked = self.repo.get_user(enrollment.student_id)
            if linked is not None:
                logger.info(f"Reusing account {linked.id} already linked to simplified enrollment {enrollment.id}")
                return ProvisionedAccount(user=linked, initial_password=None, created=False)

        if not enrollment.student_email or not enrollment.student_email.strip():
            raise MissingStudentEmailError(enrollment.id)

        username = normalize_username(enrollment.student_email)

        existing = self.repo.get_user_by_username(username)
        if existing is not None:
            logger.info(f"Found existing account {existing.id} for simplified enrollment {enrollment.id}")
            return ProvisionedAccount(user=existing, initial_password=None, created=False)

        initial_password = password_manager.initial_password_from_cpf(enrollment.student_cpf)
        full_name = (enrollment.student_name or "").strip() or username

        user = self.repo.create_user(
            username=username,
            email=username,
            password_hash=password_manager.hash_password(initial_password),
            full_name=full_name,
            display_name=display_name_for(full_name),
            cpf=only_digits(enrollment.student_cpf) or None,
            phone=enrollment.student_phone,
            status=UserStatus.ACTIVE.value,
            portal_type=PortalType.STUDENT.value,
            role=UserRole.STUDENT.value,
        )
        logger.info(f"Created student account {user.id} for simplified enrollment {enrollment.id}")
        return ProvisionedAccount(user=user, initial_password=initial_password, created=True)
