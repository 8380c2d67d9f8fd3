"""
Geocoding helpers and the /geocode and /upload endpoints.
"""

from app.core.exceptions import ExternalServiceError
from app.services.geocode_service import (
    GeocodeService,
    geocode_service,
    GOOGLE_GEOCODE_URL,
    NOMINATIM_REVERSE_URL,
    NOMINATIM_SEARCH_URL,
    build_query_candidates,
    pick_best_nominatim_result,
    pick_best_photon_feature,
)
from app.services.storage_service import storage_service
from factories import auth_header


def test_query_candidates_order_and_dedup():
    candidates = build_query_candidates("Koramangala", "Bengaluru", "Karnataka", "560034")

    assert candidates == [
        "Koramangala",
        "Koramangala, Bengaluru, Karnataka, 560034, India",
        "Bengaluru, Karnataka, 560034, India",
        "Koramangala, Bengaluru, Karnataka, India",
        "Koramangala, India",
    ]


def test_query_candidates_skip_invalid_pin_and_india_suffix():
    candidates = build_query_candidates("MG Road, Pune, India", city="Pune", pincode="12")

    assert candidates == [
        "MG Road, Pune, India",
        "MG Road, Pune, India, Pune",
        "Pune, India",
    ]


def test_query_candidates_empty_address():
    assert build_query_candidates("", "Pune") == ["Pune, India"]


def test_pick_best_nominatim_prefers_matching_city_and_pin():
    results = [
        {"lat": "19.0", "lon": "72.8", "importance": 0.9, "display_name": "Mumbai",
         "address": {"city": "Mumbai", "state": "Maharashtra"}},
        {"lat": "18.5", "lon": "73.8", "importance": 0.2, "display_name": "Pune",
         "address": {"city": "Pune", "state": "Maharashtra", "postcode": "411001"}},
    ]

    best = pick_best_nominatim_result(results, city="Pune", state="Maharashtra", pincode="411001")

    assert best == {"lat": 18.5, "lng": 73.8, "display": "Pune"}


def test_pick_best_nominatim_uses_importance_for_ties():
    results = [
        {"lat": "1", "lon": "2", "importance": 0.1, "display_name": "low"},
        {"lat": "3", "lon": "4", "importance": 0.7, "display_name": "high"},
    ]
    assert pick_best_nominatim_result(results)["display"] == "high"


def test_pick_best_nominatim_empty_or_broken():
    assert pick_best_nominatim_result([]) is None
    assert pick_best_nominatim_result([{"lat": "x", "lon": "1"}]) is None


def test_pick_best_photon_feature():
    feature = {
        "geometry": {"coordinates": [77.59, 12.97]},
        "properties": {"name": "Cubbon Park", "city": "Bengaluru", "state": "Karnataka"},
    }
    assert pick_best_photon_feature([feature]) == {
        "lat": 12.97,
        "lng": 77.59,
        "display": "Cubbon Park, Bengaluru, Karnataka",
    }
    assert pick_best_photon_feature([]) is None
    assert pick_best_photon_feature([{"geometry": {"coordinates": []}}]) is None


# ==============================================
# GOOGLE FALLBACK
# ==============================================

def _service_with_google(monkeypatch, answers):
    """A keyed service whose HTTP calls are answered per URL from `answers`."""
    service = GeocodeService()
    service.google_api_key = "k"
    calls = []

    async def fake_get_json(client, url, params, headers=None):
        calls.append((url, params))
        answer = answers[url]
        if isinstance(answer, Exception):
            raise answer
        return answer

    monkeypatch.setattr(service, "_get_json", fake_get_json)
    return service, calls


NOMINATIM_HIT = [{"lat": "12.93", "lon": "77.62", "display_name": "Koramangala, Bengaluru", "address": {"city": "Bengaluru"}}]


async def test_google_zero_results_falls_through_to_nominatim(monkeypatch):
    service, calls = _service_with_google(monkeypatch, {
        GOOGLE_GEOCODE_URL: {"status": "ZERO_RESULTS", "results": []},
        NOMINATIM_SEARCH_URL: NOMINATIM_HIT,
    })

    found = await service.forward("Koramangala", city="Bengaluru", state="Karnataka")

    assert found["provider"] == "nominatim"
    assert found["lat"] == 12.93
    assert calls[0] == (GOOGLE_GEOCODE_URL, {"address": "Koramangala", "key": "k"})


async def test_google_outage_falls_through_to_nominatim(monkeypatch):
    service, _ = _service_with_google(monkeypatch, {
        GOOGLE_GEOCODE_URL: ExternalServiceError("Geocoding provider unavailable"),
        NOMINATIM_SEARCH_URL: NOMINATIM_HIT,
    })

    found = await service.forward("Koramangala")
    assert found["provider"] == "nominatim"


async def test_google_hit_skips_openstreetmap(monkeypatch):
    service, calls = _service_with_google(monkeypatch, {
        GOOGLE_GEOCODE_URL: {"status": "OK", "results": [{
            "formatted_address": "Koramangala, Bengaluru, Karnataka",
            "geometry": {"location": {"lat": 12.9, "lng": 77.6}},
            "place_id": "abc",
        }]},
    })

    found = await service.forward("Koramangala", city="Bengaluru")

    assert found["provider"] == "google"
    assert found["place_id"] == "abc"
    assert [url for url, _ in calls] == [GOOGLE_GEOCODE_URL]


async def test_google_denied_reverse_falls_through_to_nominatim(monkeypatch):
    service, _ = _service_with_google(monkeypatch, {
        GOOGLE_GEOCODE_URL: {"status": "REQUEST_DENIED"},
        NOMINATIM_REVERSE_URL: {
            "display_name": "Koramangala, Bengaluru",
            "address": {"city": "Bengaluru", "state": "Karnataka", "postcode": "560034", "suburb": "Koramangala"},
        },
    })

    found = await service.reverse(12.93, 77.62)

    assert found["provider"] == "nominatim"
    assert found["pincode"] == "560034"
    assert found["locality"] == "Koramangala"


# ==============================================
# ROUTER
# ==============================================

def test_geocode_requires_address_or_coordinates(client):
    response = client.get("/api/geocode")
    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


def test_geocode_forward(client, monkeypatch):
    calls = []

    async def fake_forward(address, city=None, state=None, pincode=None):
        calls.append((address, city, state, pincode))
        return {"lat": 18.5, "lng": 73.8, "address": "Pune", "formatted_address": "Pune", "provider": "nominatim"}

    monkeypatch.setattr(geocode_service, "forward", fake_forward)

    response = client.get("/api/geocode", params={"address": "  FC Road ", "city": "Pune"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["lat"] == 18.5
    assert calls == [("FC Road", "Pune", None, None)]


def test_geocode_reverse_from_body(client, monkeypatch):
    async def fake_reverse(lat, lng):
        return {"lat": lat, "lng": lng, "city": "Pune", "provider": "nominatim"}

    monkeypatch.setattr(geocode_service, "reverse", fake_reverse)

    response = client.post("/api/geocode", json={"lat": 18.5, "lng": 73.8})
    assert response.json()["city"] == "Pune"


def test_geocode_not_found(client, monkeypatch):
    async def nothing(*args, **kwargs):
        return None

    monkeypatch.setattr(geocode_service, "forward", nothing)

    response = client.get("/api/geocode", params={"address": "Nowhere"})
    assert response.status_code == 404
    assert response.json()["error"] == "Location not found"


def test_geocode_rejects_out_of_range_coordinates(client):
    assert client.get("/api/geocode", params={"lat": 91, "lng": 10}).status_code == 422


# ==============================================
# UPLOADS
# ==============================================

def test_upload_not_configured(client, student):
    response = client.post(
        "/api/upload",
        files={"file": ("a.jpg", b"\xff\xd8", "image/jpeg")},
        headers=auth_header(student),
    )
    assert response.status_code == 503
    assert response.json()["error"] == "Image upload not configured"


def test_upload_single_and_multiple(client, student, monkeypatch):
    uploaded = []

    async def fake_upload(content, filename, folder):
        uploaded.append((filename, folder))
        return {"url": f"https://cdn.example.com/{filename}"}

    monkeypatch.setattr(storage_service, "is_configured", lambda: True)
    monkeypatch.setattr(storage_service, "upload_image", fake_upload)
    headers = auth_header(student)

    single = client.post("/api/upload", files={"file": ("me.png", b"png", "image/png")}, headers=headers)
    assert single.json()["url"] == "https://cdn.example.com/me.png"

    many = client.post(
        "/api/upload",
        files=[("images", ("1.jpg", b"a", "image/jpeg")), ("images", ("2.jpg", b"b", "image/jpeg"))],
        headers=headers,
    )
    assert many.json()["image_urls"] == ["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg"]
    assert uploaded[0][1] == "property"


def test_upload_rejects_non_images(client, student, monkeypatch):
    monkeypatch.setattr(storage_service, "is_configured", lambda: True)
    response = client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_header(student),
    )
    assert response.status_code == 400
