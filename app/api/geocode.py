"""
app/api/geocode.py

Purpose: Forward and reverse geocoding for the listing forms

GET  /geocode?address=...&city=...   forward
GET  /geocode?lat=..&lng=..          reverse
POST /geocode                        either, from a JSON body
"""

from typing import Optional

from fastapi import APIRouter, Query

from app.core.exceptions import ValidationError, ResourceNotFoundError
from app.schemas.content import GeocodeRequest
from app.services.geocode_service import geocode_service

router = APIRouter()


async def _geocode(body: GeocodeRequest):
    if body.lat is not None and body.lng is not None:
        result = await geocode_service.reverse(body.lat, body.lng)
    elif body.address and body.address.strip():
        result = await geocode_service.forward(body.address.strip(), body.city, body.state, body.pincode)
    else:
        raise ValidationError("Provide an address, or lat and lng")

    if not result:
        raise ResourceNotFoundError("Location not found")
    return {"success": True, **result}


@router.get("/geocode")
async def geocode_get(
    address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    pincode: Optional[str] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180)
):
    return await _geocode(GeocodeRequest(address=address, city=city, state=state, pincode=pincode, lat=lat, lng=lng))


@router.post("/geocode")
async def geocode_post(body: GeocodeRequest):
    return await _geocode(body)
