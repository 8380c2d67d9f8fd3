from datetime import datetime, timedelta

from bson import ObjectId

from utils.format_utils import format_number, mask_account_number, format_inr, serialize_doc
from utils.geo_utils import haversine_km, round_km, make_point, point_lat_lng, compute_distance_summary, needs_distance_summary
from utils.time_utils import add_months, parse_iso_date, is_expired, utc_now
from utils.validation_utils import (
    normalize_email,
    validate_email,
    normalize_phone_e164,
    validate_phone_e164,
    normalize_indian_phone,
    validate_otp_format,
    validate_ifsc,
    validate_upi_id,
    derive_upi_id,
    parse_object_id,
    sanitize_input,
)


def test_email_helpers():
    assert normalize_email("  Someone@Example.COM ") == "someone@example.com"
    assert normalize_email(None) == ""
    assert validate_email("a@b.co")
    assert not validate_email("not-an-email")
    assert not validate_email("a b@c.com")


def test_phone_e164():
    assert normalize_phone_e164("98765 43210") == "+919876543210"
    assert normalize_phone_e164("919876543210") == "+919876543210"
    assert normalize_phone_e164("+1 415 555 0100") == "+14155550100"
    assert validate_phone_e164("+919876543210")
    assert not validate_phone_e164("9876543210")


def test_indian_phone():
    assert normalize_indian_phone("9876543210") == "9876543210"
    assert normalize_indian_phone("+91 98765-43210") == "9876543210"
    assert normalize_indian_phone("09876543210") == "9876543210"
    assert normalize_indian_phone("12345") is None
    assert normalize_indian_phone(None) is None


def test_otp_format():
    assert validate_otp_format("123456")
    assert validate_otp_format(" 123456 ")
    assert not validate_otp_format("12345")
    assert not validate_otp_format("12a456")


def test_bank_helpers():
    assert validate_ifsc("hdfc0001234")
    assert not validate_ifsc("HDFC1001234")
    assert validate_upi_id("ravi.k@okaxis")
    assert not validate_upi_id("ravi@")
    assert derive_upi_id("Ravi Kumar Sharma", "HDFC0001234") == "ravikumars@hdfc"


def test_parse_object_id():
    oid = ObjectId()
    assert parse_object_id(str(oid)) == oid
    assert parse_object_id("zzz") is None
    assert parse_object_id(None) is None


def test_sanitize_input():
    assert sanitize_input("  hi\x00 there  ") == "hi there"
    assert sanitize_input("x" * 600) == "x" * 500


def test_add_months_clamps_day():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
    assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)
    assert add_months(datetime(2024, 3, 31), 13) == datetime(2025, 4, 30)


def test_parse_iso_date():
    assert parse_iso_date("2026-07-01") == datetime(2026, 7, 1)
    assert parse_iso_date("2026-07-01T15:30:00Z") == datetime(2026, 7, 1)
    assert parse_iso_date("07/01/2026") is None
    assert parse_iso_date("") is None


def test_is_expired():
    assert is_expired(None)
    assert is_expired(utc_now() - timedelta(seconds=1))
    assert not is_expired(utc_now() + timedelta(minutes=5))


def test_haversine():
    # Bengaluru to Mysuru is roughly 128 km in a straight line
    distance = haversine_km(12.9716, 77.5946, 12.2958, 76.6394)
    assert 120 < distance < 135
    assert haversine_km(10, 10, 10, 10) == 0
    assert round_km(1.26) == 1.3


def test_geojson_points():
    point = make_point(12.97, 77.59)
    assert point == {"type": "Point", "coordinates": [77.59, 12.97]}
    assert point_lat_lng(point) == (12.97, 77.59)
    assert point_lat_lng(None) is None
    assert point_lat_lng({"coordinates": [1]}) is None


def test_distance_summary():
    listing = {
        "nearby_colleges": [{"name": "A", "distance": 2.44}, {"name": "B", "distance": 0.86}],
        "nearby_places": {
            "hospitals": [{"name": "H", "distance": 3}],
            "transport": [
                {"name": "Stop", "type": "bus_stop", "distance": 0.2},
                {"name": "Metro", "type": "metro_station", "distance": 1.55},
            ],
        },
    }
    assert compute_distance_summary(listing) == {"college": 0.9, "hospital": 3.0, "bus_stop": 0.2, "metro": 1.6}
    assert compute_distance_summary({}) == {"college": 0, "hospital": 0, "bus_stop": 0, "metro": 0}
    assert needs_distance_summary({"distance": {"college": 0, "hospital": 0}})
    assert not needs_distance_summary({"distance": {"college": 1.2}})


def test_format_helpers():
    assert format_number(999) == "999"
    assert format_number(1234) == "1.2K"
    assert format_number(2_500_000) == "2.5M"
    assert mask_account_number("123456789012") == "****9012"
    assert mask_account_number(None) is None
    assert format_inr(29000) == "₹29,000.00"


def test_serialize_doc():
    oid = ObjectId()
    doc = {
        "_id": oid,
        "password": "hash",
        "created_at": datetime(2026, 1, 2, 3, 4, 5),
        "owner": {"_id": oid, "tags": [oid]},
    }
    assert serialize_doc(doc) == {
        "id": str(oid),
        "created_at": "2026-01-02T03:04:05",
        "owner": {"id": str(oid), "tags": [str(oid)]},
    }
