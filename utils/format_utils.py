"""
utils/format_utils.py

Purpose: Display formatting and document serialization

- Compact number formatting for stats (1.2K, 3.4M)
- Account number masking
- Mongo document -> JSON friendly dict
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId


def format_number(value: int) -> str:
    """
    1234 -> "1.2K", 2500000 -> "2.5M", 999 -> "999"
    """
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def mask_account_number(account_number: Optional[str]) -> Optional[str]:
    if not account_number:
        return None
    return f"****{account_number[-4:]}"


def format_inr(amount: float) -> str:
    return f"₹{amount:,.2f}"


def serialize_doc(value: Any) -> Any:
    """
    Recursively converts a Mongo document for JSON output.

    - ObjectId -> str
    - datetime -> ISO string
    - "_id" -> "id"
    - password hashes are dropped
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [serialize_doc(item) for item in value]
    if isinstance(value, dict):
        result: Dict[str, Any] = {}
        for key, item in value.items():
            if key == "password":
                continue
            if key == "_id":
                result["id"] = serialize_doc(item)
            else:
                result[key] = serialize_doc(item)
        return result
    return value
