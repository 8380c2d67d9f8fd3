"""
app/schemas/content.py

Purpose: Request bodies for notifications, blog, newsletter, geocoding and profile
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal

from app.models.enums import NotificationType, NotificationPriority


class NotificationCreate(BaseModel):
    """Single-user notification, addressed by id or email."""
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = None
    image: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: Optional[Dict[str, Any]] = None


class SystemNotificationCreate(BaseModel):
    target: Literal["all", "specific"] = "all"
    user_ids: Optional[List[str]] = None
    type: NotificationType = NotificationType.SYSTEM
    title: str
    message: str
    link: Optional[str] = None
    image: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: Optional[Dict[str, Any]] = None


class BlogPostPayload(BaseModel):
    title: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None
    is_trending: Optional[bool] = None


class NewsletterPreferences(BaseModel):
    instant_updates: bool = True
    weekly_digest: bool = True


class NewsletterSubscribe(BaseModel):
    email: str
    preferences: Optional[NewsletterPreferences] = None


class InstantUpdateRequest(BaseModel):
    property_data: Dict[str, Any] = Field(..., description="title, location, price, type, description, id")


class GeocodeRequest(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class BankAccountRequest(BaseModel):
    account_number: str
    ifsc_code: str
    account_holder_name: str
    bank_name: str
    upi_id: Optional[str] = None
