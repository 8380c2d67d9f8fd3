"""
app/services/booking_service.py

Purpose: Booking workflow

- Create a booking request against an approved property
- Tenant / owner / admin views
- Cancellation and status changes
"""

from typing import Optional, Dict, Any, List

from bson import ObjectId
from pymongo import ReturnDocument

from app.db.mongo import get_bookings_collection, get_properties_collection
from app.core.exceptions import ValidationError, ResourceNotFoundError, PermissionDeniedError
from app.core.logging import get_logger, LogContext
from app.models.booking import BookingQuote, new_booking_document, is_valid_transition
from app.models.enums import BookingStatus, NotificationType, NotificationPriority
from app.models.user import is_admin
from app.services.notification_service import notify_safely
from utils.format_utils import format_inr
from utils.time_utils import utc_now, parse_iso_date, start_of_today, format_timestamp
from utils.validation_utils import parse_object_id, sanitize_input

logger = get_logger(__name__)

MAX_DURATION_MONTHS = 24
MAX_OCCUPANTS = 6


async def create_booking(
    user: Dict[str, Any],
    property_id: str,
    move_in_date: str,
    duration_months: int = 1,
    occupants: int = 1,
    message: Optional[str] = None
) -> Dict[str, Any]:
    """
    Creates a pending booking.

    Raises:
        ValidationError: Bad id, unapproved listing, past date, own listing, bad duration
        ResourceNotFoundError: Property does not exist
    """
    oid = parse_object_id(property_id)
    if oid is None:
        raise ValidationError("Invalid property ID")

    property_doc = await get_properties_collection().find_one({"_id": oid})
    if not property_doc:
        raise ResourceNotFoundError("Property not found")

    if not property_doc.get("is_approved") or property_doc.get("is_rejected"):
        raise ValidationError("This property is not available for booking")

    if property_doc.get("owner") == user["_id"]:
        raise ValidationError("You cannot book your own property")

    move_in = parse_iso_date(move_in_date)
    if move_in is None:
        raise ValidationError("move_in_date must be a date (YYYY-MM-DD)")
    if move_in < start_of_today():
        raise ValidationError("Move-in date cannot be in the past")

    if not 1 <= duration_months <= MAX_DURATION_MONTHS:
        raise ValidationError(f"Duration must be between 1 and {MAX_DURATION_MONTHS} months")
    if not 1 <= occupants <= MAX_OCCUPANTS:
        raise ValidationError(f"Occupants must be between 1 and {MAX_OCCUPANTS}")

    price = float(property_doc.get("price") or 0)
    if price <= 0:
        raise ValidationError("This property has no valid price")

    quote = BookingQuote(
        monthly_rent=price,
        duration_months=duration_months,
        security_deposit=float(property_doc.get("security_deposit") or 0),
    )

    booking = new_booking_document(
        user["_id"],
        property_doc,
        move_in,
        quote,
        occupants=occupants,
        message=sanitize_input(message) if message else None,
    )
    result = await get_bookings_collection().insert_one(booking)
    booking["_id"] = result.inserted_id

    with LogContext(user_id=str(user["_id"]), booking_id=str(result.inserted_id)):
        logger.info(
            f"Booking created for {property_doc.get('title')}",
            extra={"total_amount": quote.total_amount}
        )

    title = property_doc.get("title")
    await notify_safely(
        user_id=user["_id"],
        type=NotificationType.BOOKING,
        title="Booking Request Created",
        message=f"Your booking for {title} from {format_timestamp(move_in, '%d %b %Y')} is pending payment of {format_inr(quote.total_amount)}.",
        link=f"/bookings/{booking['_id']}",
        priority=NotificationPriority.HIGH,
        metadata={"booking_id": str(booking["_id"]), "property_id": str(oid)},
    )
    if property_doc.get("owner"):
        await notify_safely(
            user_id=property_doc["owner"],
            type=NotificationType.BOOKING,
            title="New Booking Request",
            message=f"{user.get('name', 'A student')} requested {title} for {duration_months} month(s).",
            link="/dashboard/bookings",
            priority=NotificationPriority.HIGH,
            metadata={"booking_id": str(booking["_id"]), "property_id": str(oid)},
        )

    return booking


async def get_booking(booking_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Tenant, listing owner or admin only."""
    oid = parse_object_id(booking_id)
    if oid is None:
        raise ValidationError("Invalid booking ID format")

    booking = await get_bookings_collection().find_one({"_id": oid})
    if not booking:
        raise ResourceNotFoundError("Booking not found")

    if booking.get("user") != user["_id"] and booking.get("owner") != user["_id"] and not is_admin(user):
        raise PermissionDeniedError("You don't have permission to view this booking")

    return booking


async def list_user_bookings(user_id: ObjectId) -> List[Dict[str, Any]]:
    cursor = get_bookings_collection().find({"user": user_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def list_owner_bookings(owner_id: ObjectId) -> List[Dict[str, Any]]:
    cursor = get_bookings_collection().find({"owner": owner_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def cancel_booking(booking_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    booking = await get_booking(booking_id, user)

    if booking.get("user") != user["_id"] and not is_admin(user):
        raise PermissionDeniedError("Only the tenant can cancel this booking")

    if not is_valid_transition(booking.get("status"), BookingStatus.CANCELLED.value):
        raise ValidationError(f"A {booking.get('status')} booking cannot be cancelled")

    updated = await get_bookings_collection().find_one_and_update(
        {"_id": booking["_id"]},
        {"$set": {"status": BookingStatus.CANCELLED.value, "cancelled_at": utc_now(), "updated_at": utc_now()}},
        return_document=ReturnDocument.AFTER
    )

    with LogContext(user_id=str(user["_id"]), booking_id=booking_id):
        logger.info("Booking cancelled")

    if booking.get("owner"):
        await notify_safely(
            user_id=booking["owner"],
            type=NotificationType.BOOKING,
            title="Booking Cancelled",
            message=f"A booking for {booking.get('property_title')} was cancelled.",
            metadata={"booking_id": booking_id},
        )

    return updated
