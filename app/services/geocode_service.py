"""
app/services/geocode_service.py

Purpose: Address <-> coordinates lookups

- Google Geocoding first when an API key is configured
- OpenStreetMap Nominatim, then Photon, when Google is off or finds nothing
- Several query variants per address, results scored against city/state/PIN
"""

import re
import httpx
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)

NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
PHOTON_URL = "https://photon.komoot.io/api/"
GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

MAX_QUERY_CANDIDATES = 6


def _is_india_pin(pincode: Optional[str]) -> bool:
    return bool(pincode) and bool(re.match(r"^\d{6}$", pincode.strip()))


def _join(parts: List[Optional[str]]) -> str:
    return ", ".join(p.strip() for p in parts if p and p.strip())


def build_query_candidates(
    address: str,
    city: Optional[str] = None,
    state: Optional[str] = None,
    pincode: Optional[str] = None,
    country: str = "India"
) -> List[str]:
    """
    Query variants to try in order, de-duplicated case-insensitively.

    The raw address goes first; short POI-like inputs also get a city/state
    qualified variant since Nominatim rarely resolves bare names.
    """
    address = (address or "").strip()
    city = (city or "").strip()
    state = (state or "").strip()
    pin = pincode.strip() if _is_india_pin(pincode) else None

    mentions_country = bool(re.search(r"\bindia\b", address, re.IGNORECASE))

    candidates = [
        address,
        _join([address, city, state, pin, None if mentions_country else country]),
    ]

    context_only = _join([city, state, pin, country])
    if city or state or pin:
        candidates.append(context_only)

    if address and city and state and len(address) < 25:
        candidates.append(f"{address}, {city}, {state}, {country}")

    if address and not mentions_country:
        candidates.append(f"{address}, {country}")

    seen = set()
    result = []
    for query in candidates:
        query = re.sub(r"\s+", " ", query).strip()
        if len(query) < 3:
            continue
        key = query.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(query)

    return result[:MAX_QUERY_CANDIDATES]


def pick_best_nominatim_result(
    results: List[Dict[str, Any]],
    city: Optional[str] = None,
    state: Optional[str] = None,
    pincode: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Scores results: city match +3, state match +2, exact PIN +3.
    Ties go to the higher Nominatim importance.
    """
    city = (city or "").strip().lower()
    state = (state or "").strip().lower()
    pincode = (pincode or "").strip()

    scored = []
    for result in results or []:
        addr = result.get("address") or {}
        res_city = str(addr.get("city") or addr.get("town") or addr.get("village") or addr.get("county") or "").lower()
        res_state = str(addr.get("state") or "").lower()
        res_post = str(addr.get("postcode") or "")

        score = 0
        if city and city in res_city:
            score += 3
        if state and state in res_state:
            score += 2
        if pincode and res_post == pincode:
            score += 3

        importance = result.get("importance")
        if not isinstance(importance, (int, float)):
            importance = 0
        scored.append((score, importance, result))

    if not scored:
        return None

    scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
    best = scored[0][2]

    try:
        lat = float(best["lat"])
        lng = float(best["lon"])
    except (KeyError, TypeError, ValueError):
        return None

    return {"lat": lat, "lng": lng, "display": best.get("display_name", "")}


def pick_best_photon_feature(features: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not features:
        return None
    best = features[0]
    coords = (best.get("geometry") or {}).get("coordinates") or []
    if len(coords) < 2:
        return None
    try:
        lng, lat = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return None

    props = best.get("properties") or {}
    if props.get("name"):
        label = _join([props.get("name"), props.get("city"), props.get("state")])
    else:
        label = props.get("label") or ""
    return {"lat": lat, "lng": lng, "display": label}


class GeocodeService:

    def __init__(self):
        self.google_api_key = settings.GOOGLE_MAPS_API_KEY
        self._timeout = float(settings.GEOCODE_TIMEOUT)

    def _osm_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.GEOCODE_USER_AGENT,
            "Accept-Language": "en",
            "Referer": settings.SITE_URL,
        }

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: Dict[str, Any], headers=None) -> Any:
        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalServiceError("Geocoding provider unavailable", details={"reason": str(e)}) from e

    async def forward(
        self,
        address: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
        pincode: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Address -> {lat, lng, address, formatted_address, provider, query}.
        Returns None when no provider finds the address.
        """
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            if self.google_api_key:
                found = await self._try_google(self._google_forward(client, (address or "").strip()))
                if found:
                    return found

            candidates = build_query_candidates(address, city, state, pincode)

            for query in candidates:
                try:
                    results = await self._get_json(
                        client,
                        NOMINATIM_SEARCH_URL,
                        {"format": "json", "addressdetails": 1, "limit": 5, "q": query},
                        headers=self._osm_headers()
                    )
                except ExternalServiceError as e:
                    logger.warning(f"Nominatim search failed for '{query}': {e}")
                    continue

                picked = pick_best_nominatim_result(results, city, state, pincode)
                if picked:
                    return self._forward_result(picked, "nominatim", query)

            for query in candidates:
                try:
                    data = await self._get_json(client, PHOTON_URL, {"limit": 5, "lang": "en", "q": query})
                except ExternalServiceError as e:
                    logger.warning(f"Photon search failed for '{query}': {e}")
                    continue

                picked = pick_best_photon_feature((data or {}).get("features") or [])
                if picked:
                    return self._forward_result(picked, "photon", query)

        logger.info(f"No geocoding result for '{address}'")
        return None

    @staticmethod
    async def _try_google(lookup) -> Optional[Dict[str, Any]]:
        """Google misses and outages fall through to OpenStreetMap."""
        try:
            return await lookup
        except ExternalServiceError as e:
            logger.warning(f"Google geocoding failed, using OpenStreetMap: {e.message}")
            return None

    @staticmethod
    def _forward_result(picked: Dict[str, Any], provider: str, query: str) -> Dict[str, Any]:
        return {
            "lat": picked["lat"],
            "lng": picked["lng"],
            "address": picked["display"],
            "formatted_address": picked["display"],
            "provider": provider,
            "query": query,
        }

    async def _google_forward(self, client: httpx.AsyncClient, query: str) -> Optional[Dict[str, Any]]:
        data = await self._get_json(client, GOOGLE_GEOCODE_URL, {"address": query, "key": self.google_api_key})
        if data.get("status") != "OK" or not data.get("results"):
            logger.info(f"Google geocoding returned {data.get('status')} for '{query}'")
            return None
        result = data["results"][0]
        location = result["geometry"]["location"]
        return {
            "lat": location["lat"],
            "lng": location["lng"],
            "address": result.get("formatted_address"),
            "formatted_address": result.get("formatted_address"),
            "place_id": result.get("place_id"),
            "provider": "google",
            "query": query,
        }

    async def reverse(self, lat: float, lng: float) -> Optional[Dict[str, Any]]:
        """
        Coordinates -> address details (city, state, pincode, locality).
        """
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            if self.google_api_key:
                found = await self._try_google(self._google_reverse(client, lat, lng))
                if found:
                    return found

            data = await self._get_json(
                client,
                NOMINATIM_REVERSE_URL,
                {"format": "json", "addressdetails": 1, "lat": lat, "lon": lng},
                headers=self._osm_headers()
            )

        addr = (data or {}).get("address")
        if not addr:
            return None

        city = addr.get("city") or addr.get("town") or ""
        formatted = _join([
            addr.get("house_number"),
            addr.get("road"),
            addr.get("suburb"),
            city,
            addr.get("state"),
            addr.get("postcode"),
        ])
        return {
            "lat": lat,
            "lng": lng,
            "address": data.get("display_name"),
            "formatted_address": formatted or data.get("display_name"),
            "city": city,
            "state": addr.get("state", ""),
            "pincode": addr.get("postcode", ""),
            "locality": addr.get("suburb") or addr.get("neighbourhood") or "",
            "provider": "nominatim",
        }

    async def _google_reverse(self, client: httpx.AsyncClient, lat: float, lng: float) -> Optional[Dict[str, Any]]:
        data = await self._get_json(client, GOOGLE_GEOCODE_URL, {"latlng": f"{lat},{lng}", "key": self.google_api_key})
        if data.get("status") != "OK" or not data.get("results"):
            logger.info(f"Google reverse geocoding returned {data.get('status')}")
            return None

        result = data["results"][0]
        parts: Dict[str, str] = {}
        for component in result.get("address_components", []):
            types = component.get("types", [])
            if "locality" in types:
                parts["city"] = component["long_name"]
            if "administrative_area_level_1" in types:
                parts["state"] = component["long_name"]
            if "postal_code" in types:
                parts["pincode"] = component["long_name"]
            if "sublocality" in types or "neighborhood" in types:
                parts["locality"] = component["long_name"]

        return {
            "lat": lat,
            "lng": lng,
            "address": result.get("formatted_address"),
            "formatted_address": result.get("formatted_address"),
            "city": parts.get("city", ""),
            "state": parts.get("state", ""),
            "pincode": parts.get("pincode", ""),
            "locality": parts.get("locality", ""),
            "place_id": result.get("place_id"),
            "provider": "google",
        }


# Singleton instance
geocode_service = GeocodeService()
