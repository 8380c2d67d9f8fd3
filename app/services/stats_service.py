"""
app/services/stats_service.py

Purpose: Public landing-page counters
"""

from datetime import timedelta
from typing import Dict, Any

from pymongo.errors import PyMongoError

from app.db.mongo import get_users_collection, get_bookings_collection, get_properties_collection
from app.core.logging import get_logger
from app.models.enums import UserRole
from utils.format_utils import format_number
from utils.time_utils import utc_now

logger = get_logger(__name__)


def _stats_payload(owners: int, bookings: int, success_rate: int) -> Dict[str, Any]:
    return {
        "property_owners": owners,
        "property_owners_formatted": format_number(owners),
        "student_bookings": bookings,
        "student_bookings_formatted": format_number(bookings),
        "success_rate": success_rate,
        "success_rate_formatted": f"{success_rate}%",
    }


async def get_stats() -> Dict[str, Any]:
    """
    Owner count, bookings over the last year (all bookings when there are none),
    and the share of properties that were approved. Zeros when the database fails.
    """
    try:
        owners = await get_users_collection().count_documents({"role": UserRole.OWNER.value})

        bookings = get_bookings_collection()
        one_year_ago = utc_now() - timedelta(days=365)
        annual = await bookings.count_documents({"created_at": {"$gte": one_year_ago}})
        total_bookings = annual or await bookings.count_documents({})

        properties = get_properties_collection()
        total_properties = await properties.count_documents({})
        approved = await properties.count_documents({"is_approved": True, "is_rejected": {"$ne": True}})
    except PyMongoError as e:
        logger.error(f"Failed to compute stats: {e}")
        return _stats_payload(0, 0, 0)

    success_rate = round(approved / total_properties * 100) if total_properties else 0
    return _stats_payload(owners, total_bookings, success_rate)
