"""
app/services/otp_service.py

Purpose: One-time password issuance and verification

- Email OTPs (registration, login, password reset)
- Phone OTPs over SMS (verification, login)
- One live code per (recipient, type); a code is accepted once
- Records carry expires_at and are also purged by the TTL index
"""

import secrets
from typing import Optional, Dict, Any

from app.db.mongo import get_otps_collection
from app.core.config import settings
from app.core.exceptions import (
    ValidationError,
    AuthenticationError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ConflictError,
    ExternalServiceError,
    ServiceNotConfiguredError,
)
from app.core.logging import get_logger
from app.models.enums import OTPType, UserRole
from app.services import user_service
from app.services.email_service import email_service
from app.services.sms_service import sms_service, TWILIO_UNVERIFIED_NUMBER
from utils.constants import (
    SMS_OTP_MESSAGE,
    EMAIL_OTP_SUBJECTS,
    EMAIL_OTP_PURPOSE,
    EMAIL_OTP_HTML,
    EMAIL_OTP_TEXT,
    PASSWORD_RESET_UNKNOWN_MESSAGE,
    DUPLICATE_ACCOUNT_MESSAGE,
)
from utils.time_utils import utc_now, calculate_otp_expiry, is_expired
from utils.validation_utils import (
    normalize_email,
    validate_email,
    normalize_phone_e164,
    validate_phone_e164,
    validate_otp_format,
)

logger = get_logger(__name__)

INVALID_OTP_MESSAGE = "Invalid OTP"
EXPIRED_OTP_MESSAGE = "OTP has expired. Please request a new one."


def generate_otp() -> str:
    """6 digits, never starting with 0."""
    return str(secrets.randbelow(900000) + 100000)


def _mask_phone(phone: str) -> str:
    return f"{phone[:5]}*****{phone[-2:]}" if len(phone) > 7 else phone


async def _store_otp(recipient_field: str, recipient: str, otp_type: OTPType) -> Dict[str, Any]:
    """
    Replaces any live code for (recipient, type) with a fresh one.
    """
    otps = get_otps_collection()
    await otps.delete_many({recipient_field: recipient, "type": otp_type.value})

    now = utc_now()
    record = {
        recipient_field: recipient,
        "otp": generate_otp(),
        "type": otp_type.value,
        "verified": False,
        "created_at": now,
        "expires_at": calculate_otp_expiry(now, settings.OTP_EXPIRY_MINUTES),
    }
    result = await otps.insert_one(record)
    record["_id"] = result.inserted_id
    return record


async def _check_otp(recipient_field: str, recipient: str, otp: str, otp_type: OTPType) -> Dict[str, Any]:
    """
    Looks up a matching, unexpired code. Expired matches are deleted.

    Raises:
        ValidationError: If the code is wrong or expired
    """
    if not validate_otp_format(otp or ""):
        raise ValidationError(INVALID_OTP_MESSAGE)

    otps = get_otps_collection()
    record = await otps.find_one({
        recipient_field: recipient,
        "otp": otp.strip(),
        "type": otp_type.value,
    })

    if not record:
        raise ValidationError(INVALID_OTP_MESSAGE)

    if is_expired(record.get("expires_at")):
        await otps.delete_one({"_id": record["_id"]})
        raise ValidationError(EXPIRED_OTP_MESSAGE)

    return record


# ==============================================
# EMAIL
# ==============================================

async def send_email_otp(email: str, otp_type: OTPType, user_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Issues an email OTP.

    For password resets the account must exist; owner resets additionally
    require an owner/admin account.
    """
    if not email or not validate_email(email):
        raise ValidationError("Valid email is required")

    normalized = normalize_email(email)

    if otp_type == OTPType.PASSWORD_RESET:
        _, user, ambiguous = await user_service.find_user_by_email_loose(normalized)
        if ambiguous:
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)
        if not user:
            raise ResourceNotFoundError(PASSWORD_RESET_UNKNOWN_MESSAGE)
        if user_type == UserRole.OWNER.value and user.get("role") not in (UserRole.OWNER.value, UserRole.ADMIN.value):
            raise PermissionDeniedError("This email is not registered as a property owner")

    if not email_service.is_configured() and not settings.is_development:
        raise ServiceNotConfiguredError("Email service is not configured")

    record = await _store_otp("email", normalized, otp_type)

    subject_key = otp_type.value
    if otp_type == OTPType.PASSWORD_RESET and user_type == UserRole.OWNER.value:
        subject_key = "password-reset-owner"

    purpose = EMAIL_OTP_PURPOSE[otp_type.value]
    result = await email_service.send(
        to=normalized,
        subject=EMAIL_OTP_SUBJECTS[subject_key],
        html=EMAIL_OTP_HTML.format(otp=record["otp"], purpose=purpose),
        text=EMAIL_OTP_TEXT.format(otp=record["otp"], purpose=purpose),
    )

    response: Dict[str, Any] = {
        "success": True,
        "message": "OTP sent to your email",
        "expires_in": settings.OTP_EXPIRY_MINUTES * 60,
    }

    if not result["success"]:
        if settings.is_development:
            logger.warning(f"Email OTP not delivered (dev mode), returning code for {normalized}")
            response["dev_mode"] = True
            response["otp"] = record["otp"]
            return response
        await get_otps_collection().delete_one({"_id": record["_id"]})
        raise ExternalServiceError("Failed to send OTP email. Please try again.")

    logger.info(f"Email OTP sent ({otp_type.value})")
    return response


async def verify_email_otp(email: str, otp: str, otp_type: OTPType) -> Dict[str, Any]:
    """
    Checks an email OTP.

    Password-reset codes are marked verified and kept for the reset step;
    every other type is consumed immediately.
    """
    if not email or not otp:
        raise ValidationError("Email and OTP are required")

    normalized = normalize_email(email)
    record = await _check_otp("email", normalized, otp, otp_type)
    otps = get_otps_collection()

    if otp_type == OTPType.PASSWORD_RESET:
        await otps.update_one({"_id": record["_id"]}, {"$set": {"verified": True, "verified_at": utc_now()}})
    else:
        await otps.delete_one({"_id": record["_id"]})

    logger.info(f"Email OTP verified ({otp_type.value})")
    return {"success": True, "message": "OTP verified successfully", "verified": True}


async def consume_registration_otp(email: str, otp: str) -> None:
    record = await _check_otp("email", normalize_email(email), otp, OTPType.REGISTRATION)
    await get_otps_collection().delete_one({"_id": record["_id"]})


async def consume_password_reset_otp(email: str) -> None:
    """
    Requires a verified, unexpired password-reset code for the email and deletes it.
    """
    otps = get_otps_collection()
    record = await otps.find_one({
        "email": normalize_email(email),
        "type": OTPType.PASSWORD_RESET.value,
        "verified": True,
    })

    if not record:
        raise ValidationError("Please verify the OTP sent to your email first")

    if is_expired(record.get("expires_at")):
        await otps.delete_one({"_id": record["_id"]})
        raise ValidationError(EXPIRED_OTP_MESSAGE)

    await otps.delete_one({"_id": record["_id"]})


# ==============================================
# PHONE
# ==============================================

def _sms_dev_mode() -> bool:
    return settings.SKIP_SMS or settings.is_development


async def send_phone_otp(
    phone: str,
    otp_type: OTPType = OTPType.PHONE_VERIFICATION,
    user: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Issues a phone OTP.

    Dev mode (SKIP_SMS or development) returns the code instead of texting it,
    as does a Twilio trial account that cannot reach the number.
    """
    if not phone:
        raise ValidationError("Phone number is required")

    normalized = normalize_phone_e164(phone)
    if not validate_phone_e164(normalized):
        raise ValidationError("Invalid phone number format. Please use E.164 format (e.g., +919876543210)")

    if otp_type == OTPType.PHONE_VERIFICATION:
        existing = await user_service.find_phone_owner(normalized, user["_id"] if user else None)
        if existing:
            raise ConflictError("This phone number is already verified by another account")

    dev_mode = _sms_dev_mode()
    if not dev_mode and not sms_service.is_configured():
        raise ServiceNotConfiguredError("SMS service is not configured")

    record = await _store_otp("phone", normalized, otp_type)
    response: Dict[str, Any] = {
        "success": True,
        "message": "OTP sent to your phone",
        "expires_in": settings.OTP_EXPIRY_MINUTES * 60,
    }

    if dev_mode:
        logger.info(f"SMS skipped (dev mode) for {_mask_phone(normalized)}")
        response.update({"dev_mode": True, "otp": record["otp"], "message": "OTP generated (dev mode)"})
        return response

    result = await sms_service.send_sms(normalized, SMS_OTP_MESSAGE.format(otp=record["otp"]))

    if result["success"]:
        logger.info(f"Phone OTP sent to {_mask_phone(normalized)}")
        return response

    if result.get("error_code") == TWILIO_UNVERIFIED_NUMBER:
        logger.warning(f"Twilio trial cannot reach {_mask_phone(normalized)}, returning code")
        response.update({
            "dev_mode": True,
            "otp": record["otp"],
            "message": "SMS unavailable for this number on the trial account; OTP returned instead",
        })
        return response

    await get_otps_collection().delete_one({"_id": record["_id"]})
    raise ExternalServiceError("Failed to send SMS. Please try again.", details={"reason": result.get("error")})


async def verify_phone_otp(
    phone: str,
    otp: str,
    otp_type: OTPType = OTPType.PHONE_VERIFICATION,
    user: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Checks a phone OTP and consumes it.

    phone-verification additionally attaches the number to the signed-in user.
    """
    if not phone or not otp:
        raise ValidationError("Phone number and OTP are required")

    normalized = normalize_phone_e164(phone)
    record = await _check_otp("phone", normalized, otp, otp_type)

    if otp_type == OTPType.PHONE_VERIFICATION:
        if not user:
            raise AuthenticationError("Please sign in to verify your phone number")
        existing = await user_service.find_phone_owner(normalized, user["_id"])
        if existing:
            raise ConflictError("This phone number is already verified by another account")
        await user_service.mark_phone_verified(user["_id"], normalized)

    await get_otps_collection().delete_one({"_id": record["_id"]})

    return {"success": True, "message": "Phone number verified successfully", "phone": normalized, "verified": True}
