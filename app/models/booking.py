"""
app/models/booking.py

Purpose: Booking document model and status rules

- Document fields (see new_booking_document)
- Valid status transitions
- Total amount calculation
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId

from app.models.enums import BookingStatus, PaymentStatus
from utils.time_utils import utc_now


@dataclass(frozen=True)
class BookingQuote:
    """Price breakdown shown to the tenant before payment."""
    monthly_rent: float
    duration_months: int
    security_deposit: float

    @property
    def rent_total(self) -> float:
        return round(self.monthly_rent * self.duration_months, 2)

    @property
    def total_amount(self) -> float:
        return round(self.rent_total + self.security_deposit, 2)


# Valid status transitions
BOOKING_TRANSITIONS: Dict[BookingStatus, List[BookingStatus]] = {
    BookingStatus.PENDING: [
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    ],
    BookingStatus.CONFIRMED: [
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.CONFIRMED,  # Repeat payment confirmations are no-ops
    ],
    BookingStatus.CANCELLED: [],
    BookingStatus.COMPLETED: [],
}


def is_valid_transition(from_status: str, to_status: str) -> bool:
    """
    Checks if a booking status transition is valid.

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise
    """
    try:
        current = BookingStatus(from_status)
        target = BookingStatus(to_status)
    except ValueError:
        return False
    return target in BOOKING_TRANSITIONS.get(current, [])


def new_booking_document(
    user_id: ObjectId,
    property_doc: Dict[str, Any],
    move_in_date: datetime,
    quote: BookingQuote,
    occupants: int = 1,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    now = utc_now()
    return {
        "user": user_id,
        "property": property_doc["_id"],
        "owner": property_doc.get("owner"),
        "property_title": property_doc.get("title"),
        "move_in_date": move_in_date,
        "duration_months": quote.duration_months,
        "occupants": occupants,
        "message": message,
        "monthly_rent": quote.monthly_rent,
        "security_deposit": quote.security_deposit,
        "total_amount": quote.total_amount,
        "status": BookingStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
        "payment_id": None,
        "payment_method": None,
        "payment_details": None,
        "created_at": now,
        "updated_at": now,
    }
