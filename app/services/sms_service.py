"""
app/services/sms_service.py

Purpose: SMS sending via Twilio

- Sends plain SMS through the Twilio Messages REST API
- Surfaces Twilio error codes (e.g. 21608 unverified trial number)
- Used for phone OTP delivery
"""

import httpx
from typing import Dict, Any
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Twilio trial accounts can only message verified numbers
TWILIO_UNVERIFIED_NUMBER = 21608


class SMSService:
    """Service for sending SMS via Twilio"""

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.base_url = f"https://api.twilio.com/2010-04-01/Accounts/{self.account_sid}"

    async def send_sms(self, to_phone: str, message: str) -> Dict[str, Any]:
        """
        Sends an SMS via Twilio

        Args:
            to_phone: Recipient phone in E.164 (+919876543210)
            message: Message text

        Returns:
            {
                "success": True/False,
                "message_sid": "SMxxx...",
                "error": "Optional error message",
                "error_code": Optional Twilio error code
            }
        """
        try:
            url = f"{self.base_url}/Messages.json"

            data = {
                "From": self.from_number,
                "To": to_phone,
                "Body": message
            }

            logger.info(f"📤 Sending SMS to {to_phone[:5]}*****")

            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    data=data,
                    auth=(self.account_sid, self.auth_token),
                    timeout=10.0
                )

                if response.status_code in [200, 201]:
                    result = response.json()
                    logger.info(f"✅ SMS sent: SID={result.get('sid')}")

                    return {
                        "success": True,
                        "message_sid": result.get("sid"),
                        "status": result.get("status")
                    }

                error_code = None
                error_message = f"Twilio API error: {response.status_code}"
                try:
                    body = response.json()
                    error_code = body.get("code")
                    error_message = body.get("message") or error_message
                except ValueError:
                    pass

                logger.error(f"❌ Twilio API error: {response.status_code} - {error_message}")

                return {
                    "success": False,
                    "error": error_message,
                    "error_code": error_code
                }

        except httpx.TimeoutException:
            logger.error("Twilio API timeout")
            return {
                "success": False,
                "error": "Twilio API timeout",
                "error_code": None
            }
        except httpx.HTTPError as e:
            logger.error(f"Error sending SMS: {e}", exc_info=True)
            return {
                "success": False,
                "error": str(e),
                "error_code": None
            }

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(
            self.account_sid
            and self.auth_token
            and self.from_number
            and self.account_sid != "your_twilio_sid"
        )


# Singleton instance
sms_service = SMSService()
