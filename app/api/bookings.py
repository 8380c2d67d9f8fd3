"""
app/api/bookings.py

Purpose: Booking endpoints for tenants and listing owners
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, require_owner
from app.schemas.booking import BookingCreate
from app.services import booking_service
from utils.format_utils import serialize_doc

router = APIRouter()


@router.post("/bookings", status_code=201)
async def create_booking(body: BookingCreate, user: Dict[str, Any] = Depends(get_current_user)):
    booking = await booking_service.create_booking(
        user,
        body.property_id,
        body.move_in_date,
        duration_months=body.duration_months,
        occupants=body.occupants,
        message=body.message,
    )
    return {"success": True, "message": "Booking created", "booking": serialize_doc(booking)}


@router.get("/bookings")
async def my_bookings(user: Dict[str, Any] = Depends(get_current_user)):
    items = await booking_service.list_user_bookings(user["_id"])
    return {"items": serialize_doc(items)}


@router.get("/bookings/owner")
async def owner_bookings(user: Dict[str, Any] = Depends(require_owner)):
    items = await booking_service.list_owner_bookings(user["_id"])
    return {"items": serialize_doc(items)}


@router.get("/bookings/{booking_id}")
async def get_booking(booking_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    booking = await booking_service.get_booking(booking_id, user)
    return {"booking": serialize_doc(booking)}


@router.post("/bookings/{booking_id}/cancel")
async def cancel_booking(booking_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    booking = await booking_service.cancel_booking(booking_id, user)
    return {"success": True, "message": "Booking cancelled", "booking": serialize_doc(booking)}
