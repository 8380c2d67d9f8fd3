"""
app/schemas/listing.py

Purpose: Request bodies for property and mess listings and moderation

Create and update share one model per listing kind; required fields are
checked in the services so owners can send partial updates.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class NearbyCollege(BaseModel):
    name: str
    distance: float = Field(..., ge=0, description="Kilometres")


class NearbyPlace(BaseModel):
    name: str
    type: Optional[str] = None
    distance: float = Field(..., ge=0, description="Kilometres")


class NearbyPlaces(BaseModel):
    hospitals: List[NearbyPlace] = []
    transport: List[NearbyPlace] = []


class PropertyPayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = Field(None, description="PG, Hostel, Flat, Room, ...")
    gender: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    price: Optional[float] = None
    security_deposit: Optional[float] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    rules: Optional[List[str]] = None
    nearby_colleges: Optional[List[NearbyCollege]] = None
    nearby_places: Optional[NearbyPlaces] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    available: Optional[bool] = None

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Sunrise PG for Girls",
                "type": "PG",
                "gender": "female",
                "city": "Bengaluru",
                "price": 8500,
                "security_deposit": 5000,
                "latitude": 12.9352,
                "longitude": 77.6245
            }
        }


class MessPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    monthly_price: Optional[float] = None
    daily_price: Optional[float] = Field(None, ge=0)
    trial_days: Optional[int] = Field(None, ge=0)
    home_delivery_available: Optional[bool] = None
    delivery_radius: Optional[float] = Field(None, ge=0)
    delivery_charges: Optional[float] = Field(None, ge=0)
    packaging_available: Optional[bool] = None
    packaging_price: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None
    meal_types: Optional[List[str]] = None
    cuisine_types: Optional[List[str]] = None
    diet_types: Optional[List[str]] = None
    menu: Optional[List[Dict[str, Any]]] = None
    opening_hours: Optional[Dict[str, Any]] = None
    amenities: Optional[List[str]] = None
    capacity: Optional[int] = Field(None, ge=0)
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None
