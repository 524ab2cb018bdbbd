# app/api/deps/services.py - Request-scoped wiring of the enrollment pipeline
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.repositories.conversion_repository import SqlAlchemyConversionRepository
from app.services.email_service import EmailService, email_service
from app.services.sms_service import SmsService, sms_service
from app.services.enrollment_converter import EnrollmentConverter
from app.services.enrollment_reconciler import EnrollmentReconciler
from app.services.payment_webhook import PaymentWebhookService


def get_email_service() -> EmailService:
    return email_service


def get_sms_service() -> SmsService:
    return sms_service


def get_repository(db: Session = Depends(get_db)) -> SqlAlchemyConversionRepository:
    return SqlAlchemyConversionRepository(db)


def get_converter(
    repo: SqlAlchemyConversionRepository = Depends(get_repository),
    notifier: EmailService = Depends(get_email_service),
    sms_notifier: SmsService = Depends(get_sms_service),
) -> EnrollmentConverter:
    return EnrollmentConverter(repo, notifier=notifier, sms_notifier=sms_notifier)


def get_reconciler(
    repo: SqlAlchemyConversionRepository = Depends(get_repository),
    converter: EnrollmentConverter = Depends(get_converter),
) -> EnrollmentReconciler:
    return EnrollmentReconciler(repo, converter)


def get_webhook_service(
    repo: SqlAlchemyConversionRepository = Depends(get_repository),
    converter: EnrollmentConverter = Depends(get_converter),
) -> PaymentWebhookService:
    return PaymentWebhookService(repo, converter)
