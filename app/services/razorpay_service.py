"""
app/services/razorpay_service.py

Purpose: Razorpay gateway wrapper

- Orders, payment links, payment lookups
- Checkout and webhook signature verification (HMAC-SHA256)
- The SDK is synchronous; calls are pushed to a worker thread
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import razorpay
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, ServiceNotConfiguredError
from app.core.logging import get_logger

logger = get_logger(__name__)

QR_CODE_FALLBACK_URL = "https://api.qrserver.com/v1/create-qr-code/?size=300x300&data={data}"


class RazorpayNotConfigured(ServiceNotConfiguredError):
    """Raised when Razorpay credentials are missing."""

    def __init__(self):
        super().__init__("Payment gateway is not configured. Please contact support.")


@dataclass(frozen=True)
class RazorpayOrderDetails:
    order_id: str
    amount: int
    currency: str
    key: str
    notes: Dict[str, Any]


def to_paise(amount_inr: float) -> int:
    """Razorpay works in the smallest currency unit."""
    return int(round(amount_inr * 100))


def compute_hmac_sha256(message: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class RazorpayService:
    """
    Wrapper around the Razorpay SDK for booking payments.

    Usage:
    1. Create order using create_order() (or a hosted link with create_payment_link())
    2. Pass order details to the frontend checkout
    3. Verify the checkout signature with verify_payment_signature()
    4. Confirm the payment state with fetch_payment()
    """

    def __init__(self, key_id: Optional[str], key_secret: Optional[str], webhook_secret: Optional[str] = None):
        self.key_id = (key_id or "").strip()
        self.key_secret = (key_secret or "").strip()
        self.webhook_secret = (webhook_secret or "").strip()
        self._client = None

        if self.key_id and self.key_secret:
            if self.key_id.startswith("rzp_test_"):
                logger.warning("⚠️ Using Razorpay TEST key")
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        else:
            logger.info("Razorpay credentials not provided. Card/UPI checkout disabled.")

    @property
    def enabled(self) -> bool:
        """Check if Razorpay is properly configured and ready."""
        return self._client is not None

    @classmethod
    def from_settings(cls) -> "RazorpayService":
        return cls(
            settings.RAZORPAY_KEY_ID,
            settings.RAZORPAY_KEY_SECRET,
            settings.RAZORPAY_WEBHOOK_SECRET,
        )

    def _require_client(self):
        if not self.enabled:
            raise RazorpayNotConfigured()
        return self._client

    async def _call(self, description: str, func, *args) -> Dict[str, Any]:
        try:
            return await run_in_threadpool(func, *args)
        except Exception as e:
            logger.error(f"Razorpay {description} failed: {e}")
            raise ExternalServiceError(
                f"Payment gateway error while trying to {description}",
                details={"reason": str(e)}
            ) from e

    async def create_order(
        self,
        *,
        amount_inr: float,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
        currency: str = "INR"
    ) -> RazorpayOrderDetails:
        """
        Create a Razorpay order for payment.

        Args:
            amount_inr: Amount in Indian Rupees (e.g., 8500.00)
            receipt: Unique receipt ID (max 40 chars)
            notes: Metadata echoed back in webhooks
            currency: Currency code (default: INR)
        """
        client = self._require_client()

        payload = {
            "amount": to_paise(amount_inr),
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,  # Auto-capture payment
            "notes": notes or {},
        }

        logger.info(f"Creating Razorpay order: ₹{amount_inr} ({payload['amount']} paise)")
        order = await self._call("create an order", client.order.create, payload)
        logger.info(f"✓ Razorpay order created: {order.get('id')}")

        return RazorpayOrderDetails(
            order_id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            key=self.key_id,
            notes=order.get("notes", {}),
        )

    async def create_payment_link(
        self,
        *,
        amount_inr: float,
        description: str,
        customer: Dict[str, str],
        notes: Dict[str, Any],
        callback_url: str
    ) -> Dict[str, Any]:
        client = self._require_client()

        payload = {
            "amount": to_paise(amount_inr),
            "currency": "INR",
            "description": description,
            "customer": customer,
            "notify": {"sms": False, "email": False},
            "reminder_enable": False,
            "notes": notes,
            "callback_url": callback_url,
            "callback_method": "get",
        }

        link = await self._call("create a payment link", client.payment_link.create, payload)
        logger.info(f"✓ Razorpay payment link created: {link.get('id')}")
        return link

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        client = self._require_client()
        return await self._call("fetch the payment", client.payment.fetch, payment_id)

    async def fetch_order(self, order_id: str) -> Dict[str, Any]:
        client = self._require_client()
        return await self._call("fetch the order", client.order.fetch, order_id)

    async def fetch_order_payments(self, order_id: str) -> Dict[str, Any]:
        client = self._require_client()
        return await self._call("fetch order payments", client.order.payments, order_id)

    async def fetch_payment_link(self, link_id: str) -> Dict[str, Any]:
        client = self._require_client()
        return await self._call("fetch the payment link", client.payment_link.fetch, link_id)

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Checkout callback check: HMAC-SHA256("order_id|payment_id", key_secret).
        """
        if not self.key_secret:
            raise RazorpayNotConfigured()
        expected = compute_hmac_sha256(f"{order_id}|{payment_id}", self.key_secret)
        return hmac.compare_digest(expected, signature or "")

    def verify_webhook_signature(self, raw_body: bytes, signature: str) -> bool:
        """
        Webhook check: HMAC-SHA256(raw request body, webhook_secret).
        """
        if not self.webhook_secret:
            raise ServiceNotConfiguredError("Razorpay webhook secret not configured")
        expected = hmac.new(self.webhook_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    @staticmethod
    def qr_code_for_link(link: Dict[str, Any]) -> Optional[str]:
        """Razorpay's QR image when present, else one generated from the short URL."""
        for field in ("qr_code", "qr_code_url", "qr_code_image"):
            if link.get(field):
                return link[field]
        short_url = link.get("short_url")
        if not short_url:
            return None
        return QR_CODE_FALLBACK_URL.format(data=quote(short_url, safe=""))


# Singleton instance
razorpay_service = RazorpayService.from_settings()
