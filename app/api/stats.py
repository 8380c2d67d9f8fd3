"""
app/api/stats.py

Purpose: Public landing-page counters
"""

from fastapi import APIRouter

from app.services.stats_service import get_stats

router = APIRouter()


@router.get("/stats")
async def stats():
    return await get_stats()
