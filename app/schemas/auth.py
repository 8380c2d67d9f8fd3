"""
app/schemas/auth.py

Purpose: Request bodies for auth and OTP endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional

from app.models.enums import OTPType


class CheckEmailRequest(BaseModel):
    email: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    is_property_owner: bool = False
    return_token: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Asha Rao",
                "email": "asha@example.com",
                "password": "secret123",
                "is_property_owner": True
            }
        }


class RegisterWithOTPRequest(BaseModel):
    name: str
    email: str
    password: str
    otp: str
    phone: Optional[str] = None
    is_property_owner: bool = True


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class VerifyTokenRequest(BaseModel):
    token: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: str
    new_password: str


class SendOTPRequest(BaseModel):
    email: str
    type: OTPType = OTPType.REGISTRATION
    user_type: Optional[str] = Field(None, description="'owner' restricts password reset to owner accounts")


class VerifyOTPRequest(BaseModel):
    email: str
    otp: str
    type: OTPType = OTPType.REGISTRATION


class SendPhoneOTPRequest(BaseModel):
    phone: str
    type: OTPType = OTPType.PHONE_VERIFICATION


class VerifyPhoneOTPRequest(BaseModel):
    phone: str
    otp: str
    type: OTPType = OTPType.PHONE_VERIFICATION
