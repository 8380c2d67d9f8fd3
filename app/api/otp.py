"""
app/api/otp.py

Purpose: One-time password endpoints (email and phone)
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_optional_user
from app.schemas.auth import SendOTPRequest, VerifyOTPRequest, SendPhoneOTPRequest, VerifyPhoneOTPRequest
from app.services import otp_service

router = APIRouter()


@router.post("/otp/send")
async def send_otp(body: SendOTPRequest):
    return await otp_service.send_email_otp(body.email, body.type, body.user_type)


@router.post("/otp/verify")
async def verify_otp(body: VerifyOTPRequest):
    return await otp_service.verify_email_otp(body.email, body.otp, body.type)


@router.post("/otp/send-phone")
async def send_phone_otp(
    body: SendPhoneOTPRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    return await otp_service.send_phone_otp(body.phone, body.type, user)


@router.post("/otp/verify-phone")
async def verify_phone_otp(
    body: VerifyPhoneOTPRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    return await otp_service.verify_phone_otp(body.phone, body.otp, body.type, user)
