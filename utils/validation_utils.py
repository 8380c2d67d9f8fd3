"""
utils/validation_utils.py

Purpose: Input validation

- Email normalization and format checks
- Phone normalization (E.164 for SMS, 10-digit for Indian contacts)
- OTP format
- Bank details (IFSC, UPI id)
- ObjectId parsing
"""

import re
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
E164_PATTERN = re.compile(r"^\+\d{10,15}$")
IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
UPI_PATTERN = re.compile(r"^[a-zA-Z0-9.\-_]{2,256}@[a-zA-Z]{2,64}$")


def normalize_email(email: Optional[str]) -> str:
    """Lower-cases and trims an email address."""
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_phone_e164(phone: str) -> str:
    """
    Normalizes a phone number to E.164, defaulting to India (+91).

    Examples:
        "98765 43210"     -> "+919876543210"
        "919876543210"    -> "+919876543210"
        "+1 415 555 0100" -> "+14155550100"
    """
    cleaned = re.sub(r"[^\d+]", "", phone or "")

    if cleaned.startswith("+"):
        return cleaned

    if cleaned.startswith("91") and len(cleaned) == 12:
        return f"+{cleaned}"
    if len(cleaned) == 10:
        return f"+91{cleaned}"
    if len(cleaned) > 10:
        return f"+{cleaned}"

    return cleaned


def validate_phone_e164(phone: str) -> bool:
    return bool(phone) and bool(E164_PATTERN.match(phone))


def normalize_indian_phone(phone: Optional[str]) -> Optional[str]:
    """
    Reduces an Indian phone number to its 10 digits.

    Accepts "9876543210", "919876543210", "+91 98765 43210" and "09876543210".
    Returns None when the input cannot be interpreted.
    """
    digits = re.sub(r"\D", "", phone or "")

    if len(digits) == 10:
        return digits
    if len(digits) == 12 and digits.startswith("91"):
        return digits[2:]
    if len(digits) == 11 and digits.startswith("0"):
        return digits[1:]

    return None


def validate_otp_format(otp: str) -> bool:
    """
    Validates OTP format (must be 6 digits).

    Args:
        otp: OTP string

    Returns:
        True if valid 6-digit OTP
    """
    if not otp:
        return False

    return bool(re.match(r"^\d{6}$", otp.strip()))


def validate_ifsc(ifsc: str) -> bool:
    """
    Validates an IFSC code.

    Format: 4 letters (bank) + 0 + 6 alphanumerics (branch)
    Example: HDFC0001234
    """
    if not ifsc:
        return False
    return bool(IFSC_PATTERN.match(ifsc.strip().upper()))


def validate_upi_id(upi_id: str) -> bool:
    if not upi_id:
        return False
    return bool(UPI_PATTERN.match(upi_id.strip()))


def derive_upi_id(account_holder_name: str, ifsc: str) -> str:
    """
    Builds a fallback UPI handle from the holder name and the IFSC bank code.

    "Ravi Kumar Sharma", "HDFC0001234" -> "ravikumars@hdfc"
    """
    handle = re.sub(r"\s+", "", account_holder_name or "").lower()[:10]
    bank_code = (ifsc or "")[:4].lower()
    return f"{handle}@{bank_code}"


def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """
    Parses a string into an ObjectId.

    Returns:
        ObjectId, or None when the value is not a valid id
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def sanitize_input(text: str, max_length: int = 500) -> str:
    """
    Trims user supplied free text and drops control characters.
    """
    if not text:
        return ""

    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return text.strip()[:max_length]
