"""
app/api/deps.py

Purpose: Request authentication dependencies

- Bearer access token -> current user document (password removed)
- Optional variant for public endpoints that personalise when signed in
- Role guards for owners and admins
"""

from typing import Optional, Dict, Any

from fastapi import Depends, Header

from app.core.exceptions import AuthenticationError, PermissionDeniedError, ResourceNotFoundError
from app.core.security import decode_token, extract_token_from_header, TOKEN_TYPE_ACCESS
from app.models.user import is_admin, is_owner_or_admin
from app.services.user_service import get_user_by_id


async def _load_user(token: str) -> Dict[str, Any]:
    payload = decode_token(token, expected_type=TOKEN_TYPE_ACCESS)
    user = await get_user_by_id(payload["userId"])
    if not user:
        raise ResourceNotFoundError("User not found")
    user.pop("password", None)
    return user


async def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    token = extract_token_from_header(authorization)
    if not token:
        raise AuthenticationError("Unauthorized")
    return await _load_user(token)


async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[Dict[str, Any]]:
    token = extract_token_from_header(authorization)
    if not token:
        return None
    return await _load_user(token)


async def require_owner(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_owner_or_admin(user):
        raise PermissionDeniedError("Property owner access required")
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        raise PermissionDeniedError("Admin access required")
    return user
