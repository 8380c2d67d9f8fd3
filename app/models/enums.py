"""
app/models/enums.py

Purpose: Enumerated values stored on documents

- Single source of truth for roles, types and statuses
- str-based so values serialize directly to Mongo and JSON
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    OWNER = "owner"
    ADMIN = "admin"


class OTPType(str, Enum):
    REGISTRATION = "registration"
    LOGIN = "login"
    PASSWORD_RESET = "password-reset"
    PHONE_VERIFICATION = "phone-verification"


class ListingKind(str, Enum):
    """Listing collections that go through admin moderation."""
    PROPERTY = "property"
    MESS = "mess"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ALL = "all"


class AIRecommendation(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    MANUAL_REVIEW = "MANUAL_REVIEW"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    RAZORPAY = "razorpay"
    PAYMENT_LINK = "payment_link"
    UPI = "upi"


class NotificationType(str, Enum):
    BOOKING = "booking"
    PROPERTY = "property"
    OFFER = "offer"
    REVIEW = "review"
    SYSTEM = "system"
    PAYMENT = "payment"
    MESSAGE = "message"
    PROFILE = "profile"
    ARTICLE = "article"
    LISTING = "listing"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class UploadType(str, Enum):
    PROFILE = "profile"
    PROPERTY = "property"
