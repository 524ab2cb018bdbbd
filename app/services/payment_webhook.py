# app/services/payment_webhook.py - Asaas payment notifications -> simplified enrollment status
from typing import Optional, Dict, Any
import logging

from app.core.config import settings
from app.models import SimplifiedEnrollmentStatus
from app.repositories.conversion_repository import ConversionRepository
from app.services.enrollment_converter import EnrollmentConverter

logger = logging.getLogger(__name__)

# Gateway event -> target simplified enrollment status
EVENT_STATUS_MAP = {
    "PAYMENT_CONFIRMED": SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value,
    "PAYMENT_RECEIVED": SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value,
    "PAYMENT_OVERDUE": SimplifiedEnrollmentStatus.WAITING_PAYMENT.value,
    "PAYMENT_DELETED": SimplifiedEnrollmentStatus.CANCELLED.value,
    "PAYMENT_REFUNDED": SimplifiedEnrollmentStatus.CANCELLED.value,
}


class WebhookResult:
    IGNORED = "ignored"
    NOT_FOUND = "not_found"
    UNHANDLED_EVENT = "unhandled_event"
    ALREADY_PROCESSED = "already_processed"
    STATUS_UPDATED = "status_updated"
    CONVERTED = "converted"
    CONVERSION_FAILED = "conversion_failed"


class PaymentWebhookService:
    """Applies payment gateway events to simplified enrollments"""

    def __init__(
        self,
        repo: ConversionRepository,
        converter: EnrollmentConverter,
        auto_convert: Optional[bool] = None,
    ):
        self.repo = repo
        self.converter = converter
        self.auto_convert = settings.AUTO_CONVERT_ON_PAYMENT if auto_convert is None else auto_convert

    def handle_asaas_event(self, event: str, payment: Dict[str, Any]) -> str:
        """
        Apply one notification and return a WebhookResult value.

        The payment's externalReference is matched against the simplified
        enrollment uuid, then against the stored gateway payment id.
        """
        reference = payment.get("externalReference")
        if not reference:
            logger.info(f"Webhook {event} for payment {payment.get('id')} has no external reference, ignored")
            return WebhookResult.IGNORED

        target_status = EVENT_STATUS_MAP.get(event)
        if target_status is None:
            logger.info(f"Webhook event {event} not handled")
            return WebhookResult.UNHANDLED_EVENT

        enrollment = self.repo.get_simplified_enrollment_by_reference(reference)
        if enrollment is None:
            logger.warning(f"Webhook {event}: no simplified enrollment for reference {reference}")
            return WebhookResult.NOT_FOUND

        if enrollment.is_converted:
            logger.info(f"Webhook {event}: simplified enrollment {enrollment.id} already converted")
            return WebhookResult.ALREADY_PROCESSED

        if enrollment.status == target_status:
            logger.info(f"Webhook {event}: simplified enrollment {enrollment.id} already {target_status}")
            return WebhookResult.ALREADY_PROCESSED

        try:
            if payment.get("id") and not enrollment.payment_external_id:
                enrollment.payment_external_id = payment["id"]
            self.repo.set_simplified_enrollment_status(
                enrollment,
                target_status,
                reason=f"Webhook Asaas: {event}",
                gateway_data=payment,
            )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info(f"Webhook {event}: simplified enrollment {enrollment.id} -> {target_status}")

        if target_status != SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value or not self.auto_convert:
            return WebhookResult.STATUS_UPDATED

        if self.converter.sync_simplified_enrollment(enrollment.id):
            return WebhookResult.CONVERTED
        return WebhookResult.CONVERSION_FAILED
