"""
app/schemas/booking.py

Purpose: Request bodies for bookings, payments and mess subscriptions
"""

from pydantic import BaseModel, Field
from typing import Optional

from app.models.enums import PaymentMethod


class BookingCreate(BaseModel):
    property_id: str
    move_in_date: str = Field(..., description="YYYY-MM-DD")
    duration_months: int = 1
    occupants: int = 1
    message: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "property_id": "65f1c0ffee0123456789abcd",
                "move_in_date": "2026-07-01",
                "duration_months": 6
            }
        }


class PaymentRequest(BaseModel):
    """Razorpay order or payment link for a booking."""
    booking_id: str
    amount: Optional[float] = Field(None, description="Must match the booking total (INR)")


class RazorpayVerifyRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    booking_id: str


class UPIConfirmRequest(BaseModel):
    booking_id: str
    amount: Optional[float] = None
    upi_id: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.UPI


class MessSubscriptionCreate(BaseModel):
    mess_id: str
    start_date: str = Field(..., description="YYYY-MM-DD")
    phone: Optional[str] = None
