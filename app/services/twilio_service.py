import logging
from typing import Optional
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
from app.config.database import settings
from app.config.messaging_config import messaging_config
from app.utils.validators import to_international

logger = logging.getLogger("twilio")


class TwilioService:
    def __init__(self):
        self.account_sid = messaging_config.TWILIO_ACCOUNT_SID
        self.auth_token = messaging_config.TWILIO_AUTH_TOKEN
        self.whatsapp_number = messaging_config.TWILIO_WHATSAPP_NUMBER
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send_whatsapp(self, to_number: str, message: str) -> bool:
        try:
            sent = self.client.messages.create(
                body=message,
                from_=f"whatsapp:{self.whatsapp_number}",
                to=f"whatsapp:{to_number}"
            )
            logger.info(f"WhatsApp message sent: {sent.sid}")
            return True
        except TwilioRestException as e:
            logger.error(f"WhatsApp send error ({e.status}): {e.msg}")
            return False

    def send_appointment_reminder(
        self,
        phone: str,
        service_name: str,
        formatted_date: str,
        start_time: str
    ) -> bool:
        if not messaging_config.ENABLE_WHATSAPP_REMINDERS:
            logger.info("WhatsApp reminders disabled, skipping send")
            return False

        recipient = to_international(phone, settings.phone_country_code)
        if not recipient:
            logger.warning(f"No usable phone number: {phone!r}")
            return False

        message = messaging_config.REMINDER_TEMPLATE.format(
            service_name=service_name,
            formatted_date=formatted_date,
            start_time=start_time,
            clinic_name=messaging_config.CLINIC_NAME
        )
        return self.send_whatsapp(recipient, message)


# Twilio global instance
twilio_service = TwilioService()
