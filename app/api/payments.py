"""
app/api/payments.py

Purpose: Booking payment endpoints

- Razorpay order / payment link / checkout verification / status polling
- Razorpay webhook (signature checked on the raw body)
- Manual UPI confirmation and status
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Header, Query, Request

from app.api.deps import get_current_user
from app.core.logging import get_logger
from app.schemas.booking import PaymentRequest, RazorpayVerifyRequest, UPIConfirmRequest
from app.services import payment_service
from utils.format_utils import serialize_doc

logger = get_logger(__name__)
router = APIRouter()


@router.post("/payments/razorpay/order")
async def create_order(body: PaymentRequest, user: Dict[str, Any] = Depends(get_current_user)):
    return await payment_service.create_razorpay_order(body.booking_id, body.amount, user)


@router.post("/payments/razorpay/payment-link")
async def create_payment_link(body: PaymentRequest, user: Dict[str, Any] = Depends(get_current_user)):
    return await payment_service.create_payment_link(body.booking_id, body.amount, user)


@router.post("/payments/razorpay/verify")
async def verify_payment(body: RazorpayVerifyRequest, user: Dict[str, Any] = Depends(get_current_user)):
    result = await payment_service.verify_razorpay_payment(
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
        body.booking_id,
        user,
    )
    return serialize_doc(result)


@router.get("/payments/razorpay/verify")
async def payment_status(
    booking_id: str = Query(...),
    order_id: Optional[str] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user)
):
    return await payment_service.check_payment_status(booking_id, user, order_id)


@router.post("/payments/razorpay/webhook")
async def razorpay_webhook(request: Request, x_razorpay_signature: Optional[str] = Header(None)):
    """
    Razorpay calls this without a user session; authenticity comes from the signature.
    """
    raw_body = await request.body()
    return await payment_service.handle_webhook(raw_body, x_razorpay_signature)


@router.post("/payments/upi")
async def confirm_upi(body: UPIConfirmRequest, user: Dict[str, Any] = Depends(get_current_user)):
    result = await payment_service.confirm_upi_payment(
        body.booking_id,
        user,
        amount=body.amount,
        upi_id=body.upi_id,
        method=body.payment_method.value,
    )
    return serialize_doc(result)


@router.get("/payments/upi")
async def upi_status(booking_id: str = Query(...), user: Dict[str, Any] = Depends(get_current_user)):
    return await payment_service.get_upi_status(booking_id, user)
