# app/schemas/webhook.py - Asaas payment notification payload
from pydantic import BaseModel, ConfigDict
from typing import Optional
from decimal import Decimal


class AsaasPayment(BaseModel):
    # The gateway sends many more fields; keep them for the status log
    model_config = ConfigDict(extra="allow")

    id: str
    status: Optional[str] = None
    value: Optional[Decimal] = None
    externalReference: Optional[str] = None


class AsaasWebhookIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str
    payment: AsaasPayment
