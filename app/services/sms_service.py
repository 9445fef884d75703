"""SMS transport with Twilio integration"""

from typing import Any, Dict, Optional
import logging
from twilio.rest import Client
from twilio.base.exceptions import TwilioException
import asyncio
import phonenumbers

from app.core.config import settings
from app.core.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)

class SMSService:
    """Twilio SMS transport"""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.messaging_service_sid = settings.TWILIO_MESSAGING_SERVICE_SID

    async def send_sms(self, to_number: str, message: str) -> Dict[str, Any]:
        """Send SMS; raises NotificationDeliveryError on transport failure"""
        formatted_number = self.format_phone_number(to_number)

        kwargs = {
            "body": message,
            "to": formatted_number
        }

        # Use messaging service if available for better deliverability
        if self.messaging_service_sid:
            kwargs["messaging_service_sid"] = self.messaging_service_sid
        else:
            kwargs["from_"] = self.from_number

        # Run in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: self.client.messages.create(**kwargs)
            )
        except TwilioException as e:
            logger.error(f"Twilio error sending SMS to {formatted_number}: {str(e)}")
            raise NotificationDeliveryError("SMS", formatted_number, str(e)) from e

        logger.info(f"SMS sent to {formatted_number}, SID: {result.sid}")

        return {
            "sid": result.sid,
            "status": result.status,
            "to": formatted_number,
        }

    def format_phone_number(self, phone: str, default_region: Optional[str] = None) -> str:
        """Format phone number to E.164 format"""
        try:
            parsed = phonenumbers.parse(phone, default_region or settings.SMS_DEFAULT_REGION)
            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
        except phonenumbers.NumberParseException:
            # Return as-is if parsing fails
            return phone
