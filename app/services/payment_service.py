"""
app/services/payment_service.py

Purpose: Booking payments

- Razorpay checkout orders and hosted payment links
- Checkout signature verification and status reconciliation
- Razorpay webhooks
- Manual UPI (QR scan) confirmation
"""

import json
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from pymongo import ReturnDocument

from app.db.mongo import get_bookings_collection
from app.core.config import settings
from app.core.exceptions import (
    ValidationError,
    ResourceNotFoundError,
    PermissionDeniedError,
    ExternalServiceError,
)
from app.core.logging import get_logger, LogContext
from app.models.enums import (
    BookingStatus,
    PaymentStatus,
    PaymentMethod,
    NotificationType,
    NotificationPriority,
)
from app.services.notification_service import notify_safely
from app.services.razorpay_service import razorpay_service, to_paise
from utils.format_utils import format_inr
from utils.time_utils import utc_now, now_ms
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)

AMOUNT_TOLERANCE = 0.01
RECEIPT_MAX_LENGTH = 40
PAYMENT_LINK_PREFIX = "plink_"
SUCCESSFUL_PAYMENT_STATES = {"captured", "authorized"}
WEBHOOK_PAYMENT_EVENTS = {"payment.captured", "payment.authorized"}


# =============================================================================
# HELPERS
# =============================================================================

async def _get_tenant_booking(booking_id: str, user: Dict[str, Any], allow_paid: bool = False) -> Dict[str, Any]:
    """
    Loads a booking the caller is paying for.

    Raises:
        ValidationError: Malformed id, or the booking is already paid
        ResourceNotFoundError: No such booking
        PermissionDeniedError: Caller is not the tenant
    """
    if not booking_id:
        raise ValidationError("Booking ID is required")

    oid = parse_object_id(booking_id)
    if oid is None:
        raise ValidationError("Invalid booking ID format")

    booking = await get_bookings_collection().find_one({"_id": oid})
    if not booking:
        raise ResourceNotFoundError("Booking not found")

    if booking.get("user") != user["_id"]:
        raise PermissionDeniedError("You don't have permission to pay for this booking")

    if not allow_paid and booking.get("payment_status") == PaymentStatus.PAID.value:
        raise ValidationError("This booking is already paid")

    return booking


def _check_amount(booking: Dict[str, Any], amount: Optional[float], required: bool = True) -> None:
    if amount is None:
        if required:
            raise ValidationError("Valid amount is required")
        return
    if amount <= 0:
        raise ValidationError("Valid amount is required")
    if abs(float(booking.get("total_amount") or 0) - amount) > AMOUNT_TOLERANCE:
        raise ValidationError("Payment amount doesn't match booking amount")


def build_receipt(booking_id: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Razorpay receipts are capped at 40 characters.

    >>> build_receipt("65f1c0ffee0123456789abcd", 1700000123456)
    'bk_65f1c0ffee01_00123456'
    """
    stamp = str(timestamp_ms if timestamp_ms is not None else now_ms())[-8:]
    return f"bk_{booking_id[:12]}_{stamp}"[:RECEIPT_MAX_LENGTH]


def _paid_at(payment: Dict[str, Any]) -> datetime:
    created = payment.get("created_at")
    if isinstance(created, (int, float)) and created > 0:
        return datetime.fromtimestamp(created, tz=timezone.utc).replace(tzinfo=None)
    return utc_now()


def _amount_matches(booking: Dict[str, Any], amount_paise: Any) -> bool:
    """Gateway amounts are in paise and must equal the booking total."""
    try:
        return int(amount_paise) == to_paise(float(booking.get("total_amount") or 0))
    except (TypeError, ValueError):
        return False


def _belongs_to_booking(booking: Dict[str, Any], reference: str, entity: Dict[str, Any]) -> bool:
    """
    A gateway order or link counts for a booking when it is the one stored
    on the booking, or when the notes we attached at creation name it.
    """
    if reference and reference == booking.get("payment_id"):
        return True
    return (entity.get("notes") or {}).get("booking_id") == str(booking["_id"])


async def _mark_paid(
    booking: Dict[str, Any],
    payment_id: str,
    method: str,
    details: Dict[str, Any]
) -> Dict[str, Any]:
    """Marks the booking paid/confirmed and tells the tenant."""
    now = utc_now()
    updated = await get_bookings_collection().find_one_and_update(
        {"_id": booking["_id"]},
        {"$set": {
            "payment_status": PaymentStatus.PAID.value,
            "status": BookingStatus.CONFIRMED.value,
            "payment_id": payment_id,
            "payment_method": method,
            "payment_details": {**details, "paid_at": details.get("paid_at", now)},
            "updated_at": now,
        }},
        return_document=ReturnDocument.AFTER
    )

    with LogContext(booking_id=str(booking["_id"]), user_id=str(booking.get("user"))):
        logger.info(f"✅ Booking paid via {method}", extra={"payment_id": payment_id})

    await notify_safely(
        user_id=booking["user"],
        type=NotificationType.PAYMENT,
        title="Payment Successful",
        message=f"Your payment of {format_inr(float(booking.get('total_amount') or 0))} for {booking.get('property_title') or 'your booking'} was received. Your booking is confirmed.",
        link=f"/bookings/{booking['_id']}",
        priority=NotificationPriority.HIGH,
        metadata={"booking_id": str(booking["_id"]), "payment_id": payment_id},
    )

    return updated


def _status_response(booking: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": True,
        "is_paid": booking.get("payment_status") == PaymentStatus.PAID.value,
        "payment_status": booking.get("payment_status"),
        "status": booking.get("status"),
    }


# =============================================================================
# RAZORPAY CHECKOUT
# =============================================================================

async def create_razorpay_order(booking_id: str, amount: Optional[float], user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Creates a Razorpay order for the booking and stores the order id.

    Returns:
        Checkout payload for the frontend widget
    """
    booking = await _get_tenant_booking(booking_id, user)
    _check_amount(booking, amount)

    notes = {
        "booking_id": str(booking["_id"]),
        "user_id": str(user["_id"]),
        "property_id": str(booking.get("property")),
    }
    order = await razorpay_service.create_order(
        amount_inr=amount,
        receipt=build_receipt(str(booking["_id"])),
        notes=notes,
    )

    await get_bookings_collection().update_one(
        {"_id": booking["_id"]},
        {"$set": {"payment_id": order.order_id, "payment_method": PaymentMethod.RAZORPAY.value, "updated_at": utc_now()}}
    )

    with LogContext(booking_id=str(booking["_id"]), user_id=str(user["_id"])):
        logger.info(f"Razorpay order {order.order_id} created")

    return {
        "success": True,
        "order_id": order.order_id,
        "amount": order.amount,
        "currency": order.currency,
        "key": order.key,
        "name": settings.SITE_NAME,
        "description": f"Booking payment for {booking.get('property_title') or 'property'}",
        "prefill": {
            "name": user.get("name", ""),
            "email": user.get("email", ""),
            "contact": user.get("phone", "") or "",
        },
        "notes": order.notes,
    }


async def create_payment_link(booking_id: str, amount: Optional[float], user: Dict[str, Any]) -> Dict[str, Any]:
    """Hosted Razorpay payment page plus a QR code for it."""
    booking = await _get_tenant_booking(booking_id, user)
    _check_amount(booking, amount)

    customer = {"name": user.get("name", ""), "email": user.get("email", "")}
    if user.get("phone"):
        customer["contact"] = user["phone"]

    link = await razorpay_service.create_payment_link(
        amount_inr=amount,
        description=f"Booking payment for {booking.get('property_title') or 'property'}",
        customer=customer,
        notes={"booking_id": str(booking["_id"]), "user_id": str(user["_id"])},
        callback_url=f"{settings.SITE_URL.rstrip('/')}/bookings/{booking['_id']}?payment=success",
    )

    await get_bookings_collection().update_one(
        {"_id": booking["_id"]},
        {"$set": {"payment_id": link.get("id"), "payment_method": PaymentMethod.PAYMENT_LINK.value, "updated_at": utc_now()}}
    )

    return {
        "success": True,
        "payment_link_id": link.get("id"),
        "short_url": link.get("short_url"),
        "qr_code": razorpay_service.qr_code_for_link(link),
        "amount": link.get("amount"),
        "currency": link.get("currency", "INR"),
    }


async def verify_razorpay_payment(
    order_id: str,
    payment_id: str,
    signature: str,
    booking_id: str,
    user: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Confirms a checkout callback.

    Raises:
        ValidationError: Missing data, bad signature, or payment not completed
    """
    if not order_id or not payment_id or not signature:
        raise ValidationError("Payment verification data is required")
    if not booking_id:
        raise ValidationError("Booking ID is required")
    if parse_object_id(booking_id) is None:
        raise ValidationError("Invalid booking ID format")

    if not razorpay_service.verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid payment signature for order {order_id}")
        raise ValidationError("Invalid payment signature")

    booking = await _get_tenant_booking(booking_id, user, allow_paid=True)
    if booking.get("payment_status") == PaymentStatus.PAID.value:
        return {"success": True, "message": "Payment already confirmed", "booking": booking, "payment_id": booking.get("payment_id")}

    if order_id != booking.get("payment_id"):
        order = await razorpay_service.fetch_order(order_id)
        if not _belongs_to_booking(booking, order_id, order):
            with LogContext(booking_id=booking_id, user_id=str(user["_id"])):
                logger.warning(f"Order {order_id} does not belong to this booking")
            raise ValidationError("Payment does not belong to this booking")

    payment = await razorpay_service.fetch_payment(payment_id)
    if payment.get("order_id") and payment["order_id"] != order_id:
        raise ValidationError("Payment does not belong to this booking")
    if payment.get("status") not in SUCCESSFUL_PAYMENT_STATES:
        raise ValidationError("Payment not completed", details={"payment_status": payment.get("status")})
    if not _amount_matches(booking, payment.get("amount")):
        raise ValidationError(
            "Payment amount doesn't match booking amount",
            details={"paid": payment.get("amount"), "expected": to_paise(float(booking.get("total_amount") or 0))}
        )

    updated = await _mark_paid(
        booking,
        payment_id,
        PaymentMethod.RAZORPAY.value,
        {"razorpay_order_id": order_id, "razorpay_payment_id": payment_id, "paid_at": _paid_at(payment)},
    )

    return {
        "success": True,
        "message": "Payment verified and confirmed successfully",
        "booking": updated,
        "payment_id": payment_id,
    }


async def _reconcile_payment_link(booking: Dict[str, Any], link_id: str) -> Optional[Dict[str, Any]]:
    link = await razorpay_service.fetch_payment_link(link_id)
    if not _belongs_to_booking(booking, link_id, link):
        logger.warning(f"Payment link {link_id} does not belong to booking {booking['_id']}")
        return None

    for payment in link.get("payments") or []:
        if payment.get("status") in SUCCESSFUL_PAYMENT_STATES and _amount_matches(booking, payment.get("amount")):
            payment_id = payment.get("payment_id") or payment.get("id") or link_id
            return await _mark_paid(
                booking,
                payment_id,
                PaymentMethod.PAYMENT_LINK.value,
                {"razorpay_payment_link_id": link_id, "razorpay_payment_id": payment_id, "paid_at": _paid_at(payment)},
            )

    if link.get("status") == "paid" and _amount_matches(booking, link.get("amount_paid")):
        return await _mark_paid(
            booking,
            link_id,
            PaymentMethod.PAYMENT_LINK.value,
            {"razorpay_payment_link_id": link_id, "amount_paid": link.get("amount_paid")},
        )

    return None


async def _reconcile_order(booking: Dict[str, Any], order_id: str) -> Optional[Dict[str, Any]]:
    order = await razorpay_service.fetch_order(order_id)
    if not _belongs_to_booking(booking, order_id, order):
        logger.warning(f"Order {order_id} does not belong to booking {booking['_id']}")
        return None

    payments = await razorpay_service.fetch_order_payments(order_id)
    for payment in payments.get("items") or []:
        if payment.get("status") in SUCCESSFUL_PAYMENT_STATES and _amount_matches(booking, payment.get("amount")):
            return await _mark_paid(
                booking,
                payment["id"],
                PaymentMethod.RAZORPAY.value,
                {"razorpay_order_id": order_id, "razorpay_payment_id": payment["id"], "paid_at": _paid_at(payment)},
            )

    if order.get("status") == "paid" and _amount_matches(booking, order.get("amount_paid")):
        return await _mark_paid(booking, order_id, PaymentMethod.RAZORPAY.value, {"razorpay_order_id": order_id})

    return None


async def check_payment_status(booking_id: str, user: Dict[str, Any], order_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Reports the booking's payment state, asking Razorpay when it is still unpaid.

    A caller-supplied order id only counts when it is the booking's stored
    order or the order's notes name this booking. Gateway errors are logged
    and the stored state is returned.
    """
    booking = await _get_tenant_booking(booking_id, user, allow_paid=True)

    if booking.get("payment_status") == PaymentStatus.PAID.value:
        return _status_response(booking)

    reference = order_id or booking.get("payment_id")
    if reference and razorpay_service.enabled and not reference.startswith("upi_"):
        try:
            if reference.startswith(PAYMENT_LINK_PREFIX):
                updated = await _reconcile_payment_link(booking, reference)
            else:
                updated = await _reconcile_order(booking, reference)
            if updated:
                return _status_response(updated)
        except ExternalServiceError as e:
            with LogContext(booking_id=booking_id):
                logger.warning(f"Payment status lookup failed for {reference}: {e.message}")

    return _status_response(booking)


async def _find_webhook_booking(order_id: str, payment: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    bookings = get_bookings_collection()
    booking = await bookings.find_one({"payment_id": order_id})
    if booking:
        return booking

    # The order id is overwritten when the tenant opens a second checkout
    oid = parse_object_id((payment.get("notes") or {}).get("booking_id"))
    if oid is None:
        return None
    return await bookings.find_one({"_id": oid})


async def handle_webhook(raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Razorpay webhook receiver.

    Raises:
        ValidationError: Missing or invalid signature, malformed body
        ServiceNotConfiguredError: No webhook secret configured
    """
    if not signature:
        raise ValidationError("Missing signature")

    if not razorpay_service.verify_webhook_signature(raw_body, signature):
        logger.warning("Rejected Razorpay webhook with invalid signature")
        raise ValidationError("Invalid signature")

    try:
        event = json.loads(raw_body)
    except ValueError as e:
        raise ValidationError("Invalid webhook payload") from e

    event_name = event.get("event")
    logger.info(f"Razorpay webhook received: {event_name}")

    if event_name not in WEBHOOK_PAYMENT_EVENTS:
        return {"received": True}

    payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
    order_id = payment.get("order_id")
    if not order_id:
        return {"received": True}

    booking = await _find_webhook_booking(order_id, payment)
    if not booking:
        logger.warning(f"No booking found for Razorpay order {order_id}")
        return {"received": True}

    if booking.get("payment_status") == PaymentStatus.PAID.value:
        return {"received": True}

    if not _amount_matches(booking, payment.get("amount")):
        with LogContext(booking_id=str(booking["_id"])):
            logger.warning(f"Webhook amount {payment.get('amount')} does not match booking total, ignoring")
        return {"received": True}

    await _mark_paid(
        booking,
        payment.get("id") or order_id,
        PaymentMethod.RAZORPAY.value,
        {"razorpay_order_id": order_id, "razorpay_payment_id": payment.get("id"), "paid_at": _paid_at(payment)},
    )

    return {"received": True}


# =============================================================================
# MANUAL UPI
# =============================================================================

async def confirm_upi_payment(
    booking_id: str,
    user: Dict[str, Any],
    amount: Optional[float] = None,
    upi_id: Optional[str] = None,
    method: str = PaymentMethod.UPI.value
) -> Dict[str, Any]:
    """Tenant-confirmed UPI transfer (QR scan)."""
    booking = await _get_tenant_booking(booking_id, user)
    _check_amount(booking, amount, required=False)

    payment_id = f"upi_{now_ms()}_{booking_id}"
    updated = await _mark_paid(booking, payment_id, method, {"upi_id": upi_id or "qr_scan"})

    return {
        "success": True,
        "message": "UPI payment confirmed successfully",
        "booking": updated,
        "payment_id": payment_id,
    }


async def get_upi_status(booking_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    booking = await _get_tenant_booking(booking_id, user, allow_paid=True)
    return _status_response(booking)
