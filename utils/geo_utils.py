"""
utils/geo_utils.py

Purpose: Distance helpers for listings

- Great-circle distance between coordinates
- Nearest college / hospital / bus stop / metro summary
- GeoJSON point helpers
"""

import math
from typing import Any, Dict, Iterable, List, Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in kilometres.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def round_km(value: float) -> float:
    return round(value * 10) / 10


def make_point(lat: float, lng: float) -> Dict[str, Any]:
    """GeoJSON point; note the [lng, lat] order."""
    return {"type": "Point", "coordinates": [lng, lat]}


def point_lat_lng(point: Optional[Dict[str, Any]]) -> Optional[tuple]:
    """Returns (lat, lng) from a GeoJSON point, or None."""
    if not point or not isinstance(point, dict):
        return None
    coords = point.get("coordinates") or []
    if len(coords) != 2:
        return None
    lng, lat = coords
    return lat, lng


def nearest_distance(places: Optional[Iterable[Dict[str, Any]]], place_type: Optional[str] = None) -> float:
    """
    Distance (km, 1 decimal) to the closest place, optionally filtered by type.
    Returns 0 when nothing matches.
    """
    candidates: List[float] = []
    for place in places or []:
        if place_type and place.get("type") != place_type:
            continue
        distance = place.get("distance")
        if isinstance(distance, (int, float)):
            candidates.append(float(distance))

    if not candidates:
        return 0
    return round_km(min(candidates))


def compute_distance_summary(listing: Dict[str, Any]) -> Dict[str, float]:
    """
    Builds {college, hospital, bus_stop, metro} from a listing's nearby places.
    """
    nearby_places = listing.get("nearby_places") or {}
    transport = nearby_places.get("transport") or []

    return {
        "college": nearest_distance(listing.get("nearby_colleges")),
        "hospital": nearest_distance(nearby_places.get("hospitals")),
        "bus_stop": nearest_distance(transport, "bus_stop"),
        "metro": nearest_distance(transport, "metro_station"),
    }


def needs_distance_summary(listing: Dict[str, Any]) -> bool:
    distance = listing.get("distance")
    if not distance:
        return True
    return not distance.get("college") and not distance.get("hospital")
