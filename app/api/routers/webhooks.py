# app/api/routers/webhooks.py - Public payment gateway notifications
from fastapi import APIRouter, Depends
import logging

from app.api.deps.services import get_webhook_service
from app.services.payment_webhook import PaymentWebhookService
from app.schemas.common import ApiResponse
from app.schemas.webhook import AsaasWebhookIn

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/asaas", response_model=ApiResponse, response_model_exclude_none=True)
def asaas_webhook(
    payload: AsaasWebhookIn,
    webhook_service: PaymentWebhookService = Depends(get_webhook_service)
):
    """
    Asaas payment notification. Always acknowledged with 200 once the payload
    is valid so the gateway does not redeliver; the outcome is in data.result.
    """
    payment = payload.payment.model_dump(mode="json", exclude_none=True)
    logger.info(f"Asaas webhook {payload.event} for payment {payload.payment.id}")

    try:
        result = webhook_service.handle_asaas_event(payload.event, payment)
        success = True
        message = "Webhook processado"
    except Exception as e:
        logger.error(f"Error processing Asaas webhook {payload.event}: {e}", exc_info=True)
        result = "error"
        success = False
        message = "Erro ao processar webhook"

    return ApiResponse(
        success=success,
        message=message,
        data={
            "event": payload.event,
            "paymentId": payload.payment.id,
            "reference": payload.payment.externalReference,
            "result": result,
        },
    )
