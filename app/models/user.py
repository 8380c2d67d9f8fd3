"""
app/models/user.py

Purpose: User document model

- Identity (name, email, phone, image)
- Role (user / owner / admin)
- Verification flags
- Optional bank account for owner payouts
"""

from typing import Any, Dict, Optional

from app.models.enums import UserRole
from utils.time_utils import utc_now


def new_user_document(
    name: str,
    email: str,
    password_hash: Optional[str],
    role: UserRole = UserRole.USER,
    phone: Optional[str] = None,
    email_verified: bool = False,
) -> Dict[str, Any]:
    now = utc_now()
    return {
        "name": name,
        "email": email,
        "password": password_hash,
        "role": role.value,
        "phone": phone,
        "phone_verified": False,
        "email_verified": email_verified,
        "image": None,
        "created_at": now,
        "updated_at": now,
    }


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Fields safe to return to the frontend."""
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role", UserRole.USER.value),
        "image": user.get("image"),
        "phone": user.get("phone"),
        "phone_verified": bool(user.get("phone_verified")),
        "email_verified": bool(user.get("email_verified")),
    }


def is_admin(user: Optional[Dict[str, Any]]) -> bool:
    return bool(user) and user.get("role") == UserRole.ADMIN.value


def is_owner_or_admin(user: Optional[Dict[str, Any]]) -> bool:
    return bool(user) and user.get("role") in (UserRole.OWNER.value, UserRole.ADMIN.value)
