"""
app/api/auth.py

Purpose: Account and token endpoints

- Email availability check
- Registration (plain and OTP-gated), login, token refresh
- Token verification (header or body)
- Password reset after OTP verification
"""

from typing import Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.core.security import extract_token_from_header
from app.schemas.auth import (
    CheckEmailRequest,
    RegisterRequest,
    RegisterWithOTPRequest,
    LoginRequest,
    RefreshRequest,
    VerifyTokenRequest,
    ResetPasswordRequest,
)
from app.services import auth_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/auth/check-email")
async def check_email(body: CheckEmailRequest):
    return await auth_service.check_email(body.email)


@router.post("/auth/register")
async def register(body: RegisterRequest):
    """
    201 for a new account, 200 when an existing user was upgraded to owner.
    """
    result = await auth_service.register(
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        is_property_owner=body.is_property_owner,
        return_token=body.return_token,
    )
    status_code = 201 if result["status"] == "created" else 200
    return JSONResponse(status_code=status_code, content=result)


@router.post("/auth/register-with-otp")
async def register_with_otp(body: RegisterWithOTPRequest):
    result = await auth_service.register_with_otp(
        name=body.name,
        email=body.email,
        password=body.password,
        otp=body.otp,
        phone=body.phone,
        is_property_owner=body.is_property_owner,
    )
    status_code = 201 if result["status"] == "created" else 200
    return JSONResponse(status_code=status_code, content=result)


@router.post("/auth/login")
async def login(body: LoginRequest):
    return await auth_service.login(body.email, body.password)


@router.post("/auth/refresh")
async def refresh(body: RefreshRequest):
    return await auth_service.refresh(body.refresh_token)


@router.get("/auth/verify")
async def verify_from_header(authorization: Optional[str] = Header(None)):
    return await auth_service.verify(extract_token_from_header(authorization))


@router.post("/auth/verify")
async def verify_from_body(body: VerifyTokenRequest):
    return await auth_service.verify(body.token)


@router.post("/auth/reset-password")
async def reset_password(body: ResetPasswordRequest):
    return await auth_service.reset_password(body.email, body.new_password)
