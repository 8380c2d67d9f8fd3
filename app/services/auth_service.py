"""
app/services/auth_service.py

Purpose: Account registration, login and token lifecycle

- Email/password registration (optionally OTP-verified)
- Tenant -> owner upgrades and linking a password to social-login accounts
- Login, refresh, token verification
- Password reset after OTP verification
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from app.core.exceptions import (
    ValidationError,
    AuthenticationError,
    ConflictError,
    ResourceNotFoundError,
)
from app.core.logging import get_logger, LogContext
from app.core.security import (
    hash_password,
    verify_password,
    create_token_pair,
    decode_token,
    TOKEN_TYPE_REFRESH,
)
from app.models.enums import UserRole
from app.models.user import public_user
from app.services import user_service, otp_service
from utils.constants import (
    INVALID_CREDENTIALS_MESSAGE,
    SOCIAL_LOGIN_MESSAGE,
    DUPLICATE_ACCOUNT_MESSAGE,
    MIN_PASSWORD_LENGTH,
    MAX_PASSWORD_BYTES,
    MIN_NAME_LENGTH,
)
from utils.validation_utils import validate_email, normalize_email

logger = get_logger(__name__)


def _validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def _validate_registration(name: str, email: str, password: str) -> None:
    if not name or len(name.strip()) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if not email or not validate_email(email):
        raise ValidationError("Valid email is required")
    _validate_password(password)


def _auth_payload(user: Dict[str, Any]) -> Dict[str, Any]:
    tokens = create_token_pair(str(user["_id"]), user["email"], user.get("role", UserRole.USER.value))
    tokens["user"] = public_user(user)
    return tokens


async def _lookup_for_registration(email: str):
    normalized, user, ambiguous = await user_service.find_user_by_email_loose(email)
    if ambiguous:
        raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)
    return normalized, user


async def check_email(email: str) -> Dict[str, Any]:
    """
    Raises ConflictError when an account already uses the email.
    """
    if not email or not validate_email(email):
        raise ValidationError("Valid email is required")

    _, user, ambiguous = await user_service.find_user_by_email_loose(email)
    if user or ambiguous:
        raise ConflictError("Email already registered", details={"exists": True})
    return {"exists": False}


async def _register_existing(
    user: Dict[str, Any],
    is_property_owner: bool,
    password: Optional[str],
    name: str,
    phone: Optional[str],
    allow_link: bool
) -> Dict[str, Any]:
    """
    Handles registration against an existing account.

    Returns {"status", "user"} when the account was upgraded or linked;
    raises ConflictError otherwise.
    """
    has_password = bool(user.get("password"))

    if not has_password and allow_link:
        extra = {"password": hash_password(password), "email_verified": True}
        if is_property_owner and user.get("role") == UserRole.USER.value:
            extra["role"] = UserRole.OWNER.value
        await user_service.update_user(user["_id"], extra)
        user.update(extra)
        logger.info("Password linked to social-login account", extra={"user_id": str(user["_id"])})
        return {"status": "linked", "user": user}

    if not has_password:
        raise ConflictError("An account with this email exists via Google sign-in. Please sign in with Google.")

    if is_property_owner:
        if user.get("role") in (UserRole.OWNER.value, UserRole.ADMIN.value):
            raise ConflictError("This email is already registered as a property owner")
        user = await user_service.upgrade_to_owner(user, phone=phone, name=name or None)
        return {"status": "upgraded", "user": user}

    raise ConflictError("User with this email already exists")


async def register(
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    is_property_owner: bool = False,
    return_token: bool = False
) -> Dict[str, Any]:
    """
    Registers a new account.

    Returns:
        {"status": "created" | "upgraded", "user": ..., tokens when requested}
    """
    _validate_registration(name, email, password)
    normalized, existing = await _lookup_for_registration(email)

    if existing:
        outcome = await _register_existing(existing, is_property_owner, password, name, phone, allow_link=False)
        status, user = outcome["status"], outcome["user"]
    else:
        role = UserRole.OWNER if is_property_owner else UserRole.USER
        user = await user_service.create_user(name.strip(), normalized, hash_password(password), role, phone)
        status = "created"

    result: Dict[str, Any] = {"status": status, "user": public_user(user)}
    if return_token:
        result.update(_auth_payload(user))
    return result


async def register_with_otp(
    name: str,
    email: str,
    password: str,
    otp: str,
    phone: Optional[str] = None,
    is_property_owner: bool = True
) -> Dict[str, Any]:
    """
    Registration gated by a registration OTP sent to the email.
    Always returns tokens.
    """
    _validate_registration(name, email, password)
    if not otp:
        raise ValidationError("OTP is required")

    normalized = normalize_email(email)
    await otp_service.consume_registration_otp(normalized, otp)

    normalized, existing = await _lookup_for_registration(normalized)

    if existing:
        outcome = await _register_existing(existing, is_property_owner, password, name, phone, allow_link=True)
        status, user = outcome["status"], outcome["user"]
        if not user.get("email_verified"):
            await user_service.update_user(user["_id"], {"email_verified": True})
            user["email_verified"] = True
    else:
        role = UserRole.OWNER if is_property_owner else UserRole.USER
        user = await user_service.create_user(
            name.strip(), normalized, hash_password(password), role, phone, email_verified=True
        )
        status = "created"

    result = _auth_payload(user)
    result["status"] = status
    return result


async def login(email: str, password: str) -> Dict[str, Any]:
    if not email or not password:
        raise ValidationError("Email and password are required")

    _, user, ambiguous = await user_service.find_user_by_email_loose(email)

    if ambiguous:
        raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)
    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
    if not user.get("password"):
        raise AuthenticationError(SOCIAL_LOGIN_MESSAGE)
    if not verify_password(password, user["password"]):
        with LogContext(user_id=str(user["_id"])):
            logger.info("Failed login attempt")
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    with LogContext(user_id=str(user["_id"])):
        logger.info("User logged in")

    return _auth_payload(user)


async def refresh(refresh_token: str) -> Dict[str, Any]:
    """
    Issues a new token pair for a valid refresh token.
    The account is re-read so role changes take effect.
    """
    if not refresh_token:
        raise ValidationError("Refresh token is required")

    payload = decode_token(refresh_token, expected_type=TOKEN_TYPE_REFRESH)
    user = await user_service.get_user_by_id(payload["userId"])
    if not user:
        raise AuthenticationError("Invalid or expired token")

    return _auth_payload(user)


def _timestamp(value) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


async def verify(token: Optional[str]) -> Dict[str, Any]:
    if not token:
        raise AuthenticationError("No token provided")

    payload = decode_token(token)
    user = await user_service.get_user_by_id(payload["userId"])
    if not user:
        raise AuthenticationError("User not found")

    return {
        "valid": True,
        "user": public_user(user),
        "token": {
            "user_id": payload["userId"],
            "email": payload.get("email"),
            "role": payload.get("role"),
            "issued_at": _timestamp(payload.get("iat")),
            "expires_at": _timestamp(payload.get("exp")),
        },
    }


async def reset_password(email: str, new_password: str) -> Dict[str, Any]:
    """
    Sets a new password once the password-reset OTP was verified.
    """
    if not email or not new_password:
        raise ValidationError("Email and new password are required")
    _validate_password(new_password)

    normalized, user, ambiguous = await user_service.find_user_by_email_loose(email)
    if ambiguous:
        raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)
    if not user:
        raise ResourceNotFoundError("User not found")

    await otp_service.consume_password_reset_otp(normalized)
    await user_service.update_user(user["_id"], {"password": hash_password(new_password)})

    with LogContext(user_id=str(user["_id"])):
        logger.info("Password reset")

    return {"success": True, "message": "Password reset successfully"}
