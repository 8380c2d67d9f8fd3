"""
Property and mess listings: search, visibility, owner management, view tracking.
"""

from app.models.enums import UserRole
from factories import make_user, make_property, make_mess, auth_header


NEW_PROPERTY = {
    "title": "Green Nest PG",
    "type": "PG",
    "gender": "female",
    "city": "Pune",
    "price": 7000,
    "security_deposit": 3000,
    "latitude": 18.52,
    "longitude": 73.85,
    "nearby_colleges": [{"name": "COEP", "distance": 1.26}, {"name": "FC", "distance": 2.4}],
    "nearby_places": {"hospitals": [{"name": "Ruby Hall", "distance": 3.04}]},
}


def test_public_search_hides_unapproved_and_rejected(client, db, owner):
    make_property(db, owner, title="Live")
    make_property(db, owner, title="Pending", approved=False)
    make_property(db, owner, title="Rejected", approved=True, is_rejected=True)

    body = client.get("/api/properties").json()

    assert body["total"] == 1
    assert [item["title"] for item in body["items"]] == ["Live"]
    assert "id" in body["items"][0]
    assert isinstance(body["items"][0]["owner"], str)


def test_search_filters(client, db, owner):
    make_property(db, owner, title="Cheap Room", city="Pune", price=4000, type="Room")
    make_property(db, owner, title="Costly Flat", city="pune", price=20000, type="Flat")
    make_property(db, owner, title="Far PG", city="Delhi", price=6000)

    by_city = client.get("/api/properties", params={"city": "PUNE"}).json()
    assert by_city["total"] == 2

    by_price = client.get("/api/properties", params={"min_price": 5000, "max_price": 10000}).json()
    assert [item["title"] for item in by_price["items"]] == ["Far PG"]

    by_type = client.get("/api/properties", params={"type": "Flat"}).json()
    assert by_type["items"][0]["title"] == "Costly Flat"

    by_search = client.get("/api/properties", params={"search": "room"}).json()
    assert by_search["total"] == 1


def test_pagination(client, db, owner):
    for i in range(5):
        make_property(db, owner, title=f"P{i}")

    body = client.get("/api/properties", params={"page": 2, "page_size": 2}).json()
    assert body["total"] == 5
    assert body["page"] == 2
    assert body["page_size"] == 2
    assert len(body["items"]) == 2

    assert client.get("/api/properties", params={"page_size": 500}).status_code == 422


def test_unapproved_detail_visible_to_owner_and_admin_only(client, db, owner, admin, student):
    pending = make_property(db, owner, approved=False)
    url = f"/api/properties/{pending['_id']}"

    assert client.get(url).status_code == 403
    assert client.get(url, headers=auth_header(student)).status_code == 403
    assert client.get(url, headers=auth_header(owner)).status_code == 200
    assert client.get(url, headers=auth_header(admin)).status_code == 200


def test_detail_errors(client):
    assert client.get("/api/properties/not-an-id").status_code == 400
    assert client.get("/api/properties/65f1c0ffee0123456789abcd").status_code == 404


def test_detail_fills_distance_summary(client, db, owner):
    listing = make_property(db, owner, nearby_colleges=[{"name": "IISc", "distance": 2.36}])
    body = client.get(f"/api/properties/{listing['_id']}").json()
    assert body["property"]["distance"]["college"] == 2.4


def test_owner_creates_pending_listing(client, db, owner):
    response = client.post("/api/properties", json=NEW_PROPERTY, headers=auth_header(owner))

    assert response.status_code == 201
    created = response.json()["property"]
    assert created["is_approved"] is False
    assert created["is_rejected"] is False
    assert created["owner"] == str(owner["_id"])
    assert created["coordinates"] == {"type": "Point", "coordinates": [73.85, 18.52]}
    assert created["distance"] == {"college": 1.3, "hospital": 3.0, "bus_stop": 0, "metro": 0}

    assert client.get("/api/properties").json()["total"] == 0


def test_tenant_cannot_create_listing(client, student):
    response = client.post("/api/properties", json=NEW_PROPERTY, headers=auth_header(student))
    assert response.status_code == 403


def test_create_requires_title_and_positive_price(client, owner):
    headers = auth_header(owner)
    missing = {k: v for k, v in NEW_PROPERTY.items() if k != "title"}
    assert client.post("/api/properties", json=missing, headers=headers).status_code == 400
    assert client.post("/api/properties", json={**NEW_PROPERTY, "price": 0}, headers=headers).status_code == 400


def test_new_listing_alerts_admin_inbox(client, owner, sent_emails, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "ADMIN_EMAIL", "ops@example.com")
    client.post("/api/properties", json=NEW_PROPERTY, headers=auth_header(owner))

    alert = sent_emails[-1]
    assert alert["to"] == "ops@example.com"
    assert "Green Nest PG" in alert["subject"]


def test_new_listing_alert_escapes_owner_supplied_text(client, db, sent_emails, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "ADMIN_EMAIL", "ops@example.com")
    owner = make_user(db, name="<i>Sly</i>", email="sly@example.com", role=UserRole.OWNER)
    client.post("/api/properties", json={**NEW_PROPERTY, "title": "<b>X</b>"}, headers=auth_header(owner))

    html = sent_emails[-1]["html"]
    assert "&lt;b&gt;X&lt;/b&gt;" in html
    assert "<b>X</b>" not in html
    assert "&lt;i&gt;Sly&lt;/i&gt;" in html


def test_update_only_by_owner_and_resubmits_rejected(client, db, owner, student):
    listing = make_property(db, owner, approved=False, is_rejected=True, rejection_reason="Blurry photos")
    url = f"/api/properties/{listing['_id']}"

    assert client.put(url, json={"price": 9000}, headers=auth_header(student)).status_code == 403

    response = client.put(url, json={"price": 9000, "images": ["https://img/2.jpg"]}, headers=auth_header(owner))
    assert response.status_code == 200
    updated = response.json()["property"]
    assert updated["price"] == 9000
    assert updated["is_rejected"] is False
    assert updated["rejection_reason"] is None


def test_update_with_no_fields(client, db, owner):
    listing = make_property(db, owner)
    response = client.put(f"/api/properties/{listing['_id']}", json={}, headers=auth_header(owner))
    assert response.status_code == 400


def test_delete(client, db, owner, student):
    listing = make_property(db, owner)
    url = f"/api/properties/{listing['_id']}"

    assert client.delete(url, headers=auth_header(student)).status_code == 403
    assert client.delete(url, headers=auth_header(owner)).status_code == 204
    assert db.properties.docs == []


def test_my_properties(client, db, owner):
    make_property(db, owner, approved=False)
    make_property(db, owner)
    other = make_user(db, email="other-owner@example.com")
    make_property(db, other)

    body = client.get("/api/properties/mine", headers=auth_header(owner)).json()
    assert len(body["items"]) == 2


def test_view_notification_deduplicated_per_hour(client, db, owner, student):
    listing = make_property(db, owner)
    url = f"/api/properties/{listing['_id']}/view"
    headers = auth_header(student)

    first = client.post(url, headers=headers).json()
    second = client.post(url, headers=headers).json()
    anonymous = client.post(url).json()

    assert first["notified"] is True
    assert second["notified"] is False
    assert anonymous["notified"] is False
    assert db.properties.get(listing["_id"])["views"] == 3
    assert len(db.notifications.docs) == 1
    assert db.notifications.docs[0]["title"] == "Property Viewed"


def test_nearby_adds_distance(client, db, owner):
    make_property(db, owner)
    body = client.get("/api/properties/nearby", params={"lat": 12.97, "lng": 77.61}).json()
    assert body["items"][0]["distance_km"] == 1.1


def test_nearby_query_limits_radius_around_point(client, db, owner, monkeypatch):
    captured = []
    real_find = db.properties.find

    def spy_find(query, *args, **kwargs):
        captured.append(query)
        return real_find(query, *args, **kwargs)

    monkeypatch.setattr(db.properties, "find", spy_find)
    client.get("/api/properties/nearby", params={"lat": 18.52, "lng": 73.85, "radius_km": 2.5})

    query = captured[0]
    assert query["is_approved"] is True
    assert query["coordinates"] == {
        "$nearSphere": {
            "$geometry": {"type": "Point", "coordinates": [73.85, 18.52]},
            "$maxDistance": 2500,
        }
    }


def test_nearby_radius_is_bounded(client):
    assert client.get("/api/properties/nearby", params={"lat": 18.52, "lng": 73.85, "radius_km": 51}).status_code == 422


# ==============================================
# MESSES
# ==============================================

NEW_MESS = {
    "name": "Maa Ki Rasoi",
    "city": "Pune",
    "monthly_price": 2800,
    "contact_phone": "+91 98765 43210",
    "contact_email": "Rasoi@Example.com",
    "home_delivery_available": False,
    "delivery_charges": 30,
    "diet_types": ["veg"],
}


def test_create_mess_normalizes_contact(client, owner):
    response = client.post("/api/messes", json=NEW_MESS, headers=auth_header(owner))

    assert response.status_code == 201
    mess = response.json()["mess"]
    assert mess["contact_phone"] == "9876543210"
    assert mess["contact_email"] == "rasoi@example.com"
    assert mess["delivery_charges"] == 0
    assert mess["is_approved"] is False


def test_create_mess_rejects_bad_phone(client, owner):
    response = client.post("/api/messes", json={**NEW_MESS, "contact_phone": "12345"}, headers=auth_header(owner))
    assert response.status_code == 400


def test_mess_search_filters(client, db, owner):
    make_mess(db, owner, name="Veg Delight", diet_types=["veg"], home_delivery_available=True)
    make_mess(db, owner, name="Non Veg Hub", diet_types=["non-veg"], home_delivery_available=False)
    make_mess(db, owner, name="Hidden", approved=False)

    assert client.get("/api/messes").json()["total"] == 2
    veg = client.get("/api/messes", params={"diet_type": "veg"}).json()
    assert [m["name"] for m in veg["items"]] == ["Veg Delight"]
    no_delivery = client.get("/api/messes", params={"home_delivery": "false"}).json()
    assert [m["name"] for m in no_delivery["items"]] == ["Non Veg Hub"]


def test_pending_mess_hidden_from_public(client, db, owner):
    mess = make_mess(db, owner, approved=False)
    assert client.get(f"/api/messes/{mess['_id']}").status_code == 403
    assert client.get(f"/api/messes/{mess['_id']}", headers=auth_header(owner)).status_code == 200
