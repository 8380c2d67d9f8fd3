"""
app/services/user_service.py

Purpose: User data management

- Lookups by id / email (case-insensitive legacy fallback)
- Account creation and role upgrades
- Phone verification state
- Owner bank account for payouts
"""

import re
from typing import Optional, Dict, Any, Tuple

from bson import ObjectId

from app.db.mongo import get_users_collection
from app.core.config import settings
from app.core.exceptions import ValidationError, ResourceNotFoundError, PermissionDeniedError
from app.core.logging import get_logger, LogContext
from app.models.enums import UserRole
from app.models.user import new_user_document, is_owner_or_admin
from utils.format_utils import mask_account_number
from utils.time_utils import utc_now
from utils.validation_utils import (
    normalize_email,
    parse_object_id,
    validate_ifsc,
    validate_upi_id,
    derive_upi_id,
)

logger = get_logger(__name__)


async def get_user_by_id(user_id) -> Optional[Dict[str, Any]]:
    """
    Retrieves a user by ObjectId (or its string form).

    Returns:
        User document or None if not found / id malformed
    """
    oid = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
    if oid is None:
        return None
    users = get_users_collection()
    return await users.find_one({"_id": oid})


async def find_user_by_email_loose(email: str) -> Tuple[str, Optional[Dict[str, Any]], bool]:
    """
    Finds a user by email, tolerating legacy mixed-case rows.

    1) exact match on the normalized email
    2) case-insensitive exact match
    3) more than one case-insensitive match is ambiguous

    Returns:
        (normalized_email, user or None, ambiguous)
    """
    normalized = normalize_email(email)
    users = get_users_collection()

    direct = await users.find_one({"email": normalized})
    if direct:
        return normalized, direct, False

    pattern = f"^{re.escape(normalized)}$"
    matches = await users.find({"email": {"$regex": pattern, "$options": "i"}}).limit(2).to_list(length=2)

    if len(matches) == 1:
        return normalized, matches[0], False
    if len(matches) > 1:
        logger.warning(f"Multiple accounts match email {normalized}")
        return normalized, None, True

    return normalized, None, False


async def create_user(
    name: str,
    email: str,
    password_hash: Optional[str],
    role: UserRole = UserRole.USER,
    phone: Optional[str] = None,
    email_verified: bool = False
) -> Dict[str, Any]:
    users = get_users_collection()
    user = new_user_document(name, normalize_email(email), password_hash, role, phone, email_verified)

    result = await users.insert_one(user)
    user["_id"] = result.inserted_id

    with LogContext(user_id=str(result.inserted_id)):
        logger.info("New user created", extra={"role": role.value})

    return user


async def update_user(user_id: ObjectId, fields: Dict[str, Any]) -> None:
    users = get_users_collection()
    fields = dict(fields)
    fields["updated_at"] = utc_now()
    await users.update_one({"_id": user_id}, {"$set": fields})


async def upgrade_to_owner(user: Dict[str, Any], **fields) -> Dict[str, Any]:
    """
    Promotes an existing account to property owner.
    """
    updates = {"role": UserRole.OWNER.value}
    updates.update({k: v for k, v in fields.items() if v is not None})
    await update_user(user["_id"], updates)

    with LogContext(user_id=str(user["_id"])):
        logger.info("User upgraded to owner")

    user.update(updates)
    return user


async def find_phone_owner(phone: str, exclude_user_id: Optional[ObjectId] = None) -> Optional[Dict[str, Any]]:
    """
    Returns another account that has already verified this phone number.
    """
    users = get_users_collection()
    query: Dict[str, Any] = {"phone": phone, "phone_verified": True}
    if exclude_user_id is not None:
        query["_id"] = {"$ne": exclude_user_id}
    return await users.find_one(query)


async def mark_phone_verified(user_id: ObjectId, phone: str) -> None:
    with LogContext(user_id=str(user_id)):
        await update_user(user_id, {"phone": phone, "phone_verified": True})
        logger.info("Phone number verified")


# ==============================================
# BANK ACCOUNT
# ==============================================

def _merchant_account() -> Optional[Dict[str, Any]]:
    if not settings.MERCHANT_UPI_ID:
        return None
    return {
        "account_holder_name": settings.MERCHANT_ACCOUNT_NAME,
        "account_number": mask_account_number(settings.MERCHANT_ACCOUNT_NUMBER),
        "ifsc_code": settings.MERCHANT_IFSC,
        "bank_name": settings.MERCHANT_BANK_NAME,
        "upi_id": settings.MERCHANT_UPI_ID,
        "is_merchant": True,
    }


async def get_bank_account(viewer: Dict[str, Any], target_user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Returns payout details.

    - Without target_user_id the viewer's own account (account number masked)
    - Owners and admins may look up another user's account, e.g. to pay a mess owner
    - Falls back to the merchant UPI account when none is on file
    """
    if target_user_id and target_user_id != str(viewer["_id"]):
        if not is_owner_or_admin(viewer):
            raise PermissionDeniedError("You can only view your own bank account")
        target = await get_user_by_id(target_user_id)
        if not target:
            raise ResourceNotFoundError("User not found")
        own = False
    else:
        target = viewer
        own = True

    account = target.get("bank_account")
    if not account:
        merchant = _merchant_account()
        return {"bank_account": merchant, "has_bank_account": False}

    account = dict(account)
    if own:
        account["account_number"] = mask_account_number(account.get("account_number"))
    else:
        # Only the UPI handle is needed to pay someone
        account = {
            "account_holder_name": account.get("account_holder_name"),
            "upi_id": account.get("upi_id"),
            "bank_name": account.get("bank_name"),
        }
    return {"bank_account": account, "has_bank_account": True}


async def save_bank_account(user: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validates and stores the user's bank account.

    Raises:
        ValidationError: On missing fields, bad IFSC or bad UPI id
    """
    account_number = (data.get("account_number") or "").strip()
    ifsc = (data.get("ifsc_code") or "").strip().upper()
    holder = (data.get("account_holder_name") or "").strip()
    bank_name = (data.get("bank_name") or "").strip()

    if not (account_number and ifsc and holder and bank_name):
        raise ValidationError("Account number, IFSC code, account holder name and bank name are required")

    if not validate_ifsc(ifsc):
        raise ValidationError("Invalid IFSC code format")

    upi_id = (data.get("upi_id") or "").strip() or derive_upi_id(holder, ifsc)
    if not validate_upi_id(upi_id):
        raise ValidationError("Invalid UPI ID format")

    account = {
        "account_number": account_number,
        "ifsc_code": ifsc,
        "account_holder_name": holder,
        "bank_name": bank_name,
        "upi_id": upi_id,
        "updated_at": utc_now(),
    }
    await update_user(user["_id"], {"bank_account": account})

    with LogContext(user_id=str(user["_id"])):
        logger.info("Bank account saved")

    result = dict(account)
    result["account_number"] = mask_account_number(account_number)
    return result
