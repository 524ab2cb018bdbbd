import logging
import re
from typing import Optional

from twilio.rest import Client

from app.core.config import settings
from app.services.account_provisioner import display_name_for

logger = logging.getLogger(__name__)

BRAZIL_COUNTRY_CODE = "55"


def format_phone_number(phone: str) -> str:
    """
    E.164 form of a phone number. Numbers without a leading + are taken as
    Brazilian and get the 55 country code unless they already start with it.
    """
    number = phone.strip()
    if not number.startswith("+"):
        number = f"+{number}" if number.startswith(BRAZIL_COUNTRY_CODE) else f"+{BRAZIL_COUNTRY_CODE}{number}"
    return "+" + re.sub(r"\D", "", number)


class SmsService:
    """SMS service using Twilio"""

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.login_url = settings.STUDENT_PORTAL_LOGIN_URL
        self._client: Optional[Client] = None

    @property
    def configured(self) -> bool:
        # Twilio account SIDs always start with AC
        return bool(
            self.account_sid and self.account_sid.startswith("AC")
            and self.auth_token and self.from_number
        )

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send_sms(self, to_number: str, body: str) -> bool:
        """Send one SMS. Never raises; failures are logged and reported as False."""
        if not self.configured:
            logger.warning(f"Twilio not configured; SMS to {to_number} not sent")
            return False

        try:
            message = self.client.messages.create(
                body=body,
                from_=self.from_number,
                to=format_phone_number(to_number),
            )
            logger.info(f"SMS sent successfully to {to_number} (sid {message.sid})")
            return True

        except Exception as e:
            logger.error(f"Failed to send SMS to {to_number}: {e}", exc_info=True)
            return False

    def send_student_credentials_sms(
        self,
        phone: Optional[str],
        full_name: str,
        login: str,
        password: str
    ) -> bool:
        """Short welcome with the portal login and initial password"""
        if not phone:
            logger.info(f"No phone number for {login}; credentials SMS skipped")
            return False

        first_name = display_name_for(full_name) or ""
        body = (
            f"Olá {first_name}! Sua conta no Portal do Aluno da EdunexIA foi criada. "
            f"Login: {login} / Senha: {password}. Acesse: {self.login_url}"
        )
        return self.send_sms(phone, body)


# Singleton instance
sms_service = SmsService()
