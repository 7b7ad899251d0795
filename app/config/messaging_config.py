# app/config/messaging_config.py

import os
from dotenv import load_dotenv

load_dotenv()


class MessagingConfig:
    """Outbound messaging (WhatsApp reminders) settings"""

    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_WHATSAPP_NUMBER = os.getenv("TWILIO_WHATSAPP_NUMBER")

    ENABLE_WHATSAPP_REMINDERS = os.getenv("ENABLE_WHATSAPP_REMINDERS", "true").lower() == "true"

    CLINIC_NAME = os.getenv("CLINIC_NAME", "8 Senses Clinic")
    CLINIC_PHONE = os.getenv("CLINIC_PHONE", TWILIO_WHATSAPP_NUMBER)

    REMINDER_TEMPLATE = (
        "Dear Parent,\n\n"
        "Your appointment for {service_name} has been fixed at {start_time} on {formatted_date}.\n"
        "Kindly confirm your availability by replying YES or NO.\n\n"
        "- {clinic_name}"
    )


messaging_config = MessagingConfig()
