"""
Admin moderation: review queues, approve / reject, AI review, admin bootstrap.
"""

import json

import pytest

from app.core.config import settings
from app.core.security import verify_password
from app.models.enums import ListingKind
from app.services.ai_service import ai_service
from app.services.moderation_service import parse_ai_review, build_review_prompt
from factories import make_property, make_mess, auth_header


# ==============================================
# parse_ai_review
# ==============================================

def test_parse_ai_review_strict_json():
    reply = json.dumps({
        "confidence": 87.6,
        "score": 140,
        "recommendation": "approve",
        "summary": "Looks genuine",
        "analysis": {"pricing": "fair"},
        "red_flags": [],
        "reason": "Complete listing",
    })

    review = parse_ai_review(reply, ListingKind.PROPERTY)

    assert review["confidence"] == 88
    assert review["score"] == 100
    assert review["recommendation"] == "APPROVE"
    assert review["analysis"] == {"pricing": "fair"}


def test_parse_ai_review_extracts_json_from_prose():
    reply = 'Sure! Here is my review:\n```json\n{"score": 40, "recommendation": "REJECT", "redFlags": "no photos"}\n```'

    review = parse_ai_review(reply)

    assert review["score"] == 40
    assert review["recommendation"] == "REJECT"
    assert review["red_flags"] == ["no photos"]
    assert review["confidence"] == 0


def test_parse_ai_review_unknown_recommendation_needs_manual_review():
    review = parse_ai_review('{"recommendation": "MAYBE", "score": "n/a"}')
    assert review["recommendation"] == "MANUAL_REVIEW"
    assert review["score"] == 0


def test_parse_ai_review_garbage_falls_back():
    review = parse_ai_review("I cannot help with that", ListingKind.MESS)

    assert review["recommendation"] == "MANUAL_REVIEW"
    assert review["score"] == 0
    assert review["confidence"] == 0
    assert set(review["analysis"]) == {"legitimacy", "pricing", "completeness", "safety", "delivery_packaging"}
    assert review["red_flags"] == ["AI returned invalid JSON"]


def test_review_prompt_mentions_listing_details():
    prompt = build_review_prompt(ListingKind.PROPERTY, {"title": "Sunrise PG", "price": 8000, "images": ["a", "b"]})
    assert "Sunrise PG" in prompt
    assert '"images_count": 2' in prompt
    assert '"location": "..."' in prompt


# ==============================================
# QUEUES / APPROVE / REJECT
# ==============================================

def test_admin_routes_require_admin(client, db, owner):
    listing = make_property(db, owner, approved=False)
    assert client.get("/api/admin/properties").status_code == 401
    assert client.get("/api/admin/properties", headers=auth_header(owner)).status_code == 403
    response = client.post(f"/api/admin/properties/{listing['_id']}/approve", headers=auth_header(owner))
    assert response.status_code == 403


def test_review_queue_by_status(client, db, owner, admin):
    make_property(db, owner, title="Waiting", approved=False)
    make_property(db, owner, title="Live")
    make_property(db, owner, title="Nope", approved=False, is_rejected=True)
    headers = auth_header(admin)

    pending = client.get("/api/admin/properties", headers=headers).json()
    assert [item["title"] for item in pending["items"]] == ["Waiting"]

    rejected = client.get("/api/admin/properties", params={"status": "rejected"}, headers=headers).json()
    assert [item["title"] for item in rejected["items"]] == ["Nope"]

    everything = client.get("/api/admin/properties", params={"status": "all"}, headers=headers).json()
    assert everything["total"] == 3


def test_approve_publishes_and_notifies_owner(client, db, owner, admin):
    listing = make_property(db, owner, approved=False)

    response = client.post(f"/api/admin/properties/{listing['_id']}/approve", headers=auth_header(admin))

    assert response.status_code == 200
    approved = response.json()["listing"]
    assert approved["is_approved"] is True
    assert approved["approved_by"] == str(admin["_id"])
    assert client.get("/api/properties").json()["total"] == 1

    notification = db.notifications.docs[0]
    assert notification["user"] == owner["_id"]
    assert notification["title"] == "Property Approved"


def test_reject_with_default_reason(client, db, owner, admin):
    mess = make_mess(db, owner)

    response = client.post(f"/api/admin/messes/{mess['_id']}/reject", headers=auth_header(admin))

    assert response.status_code == 200
    rejected = response.json()["listing"]
    assert rejected["is_approved"] is False
    assert rejected["is_rejected"] is True
    assert rejected["rejection_reason"] == "Listing does not meet our guidelines"
    assert client.get("/api/messes").json()["total"] == 0
    assert db.notifications.docs[0]["title"] == "Mess Rejected"


def test_reject_with_reason(client, db, owner, admin):
    listing = make_property(db, owner, approved=False)
    response = client.post(
        f"/api/admin/properties/{listing['_id']}/reject",
        json={"reason": "Photos are stock images"},
        headers=auth_header(admin),
    )
    assert response.json()["listing"]["rejection_reason"] == "Photos are stock images"


def test_unknown_collection_is_422(client, admin):
    assert client.get("/api/admin/bookings", headers=auth_header(admin)).status_code == 422


# ==============================================
# AI REVIEW
# ==============================================

def test_ai_review_not_configured(client, db, owner, admin):
    listing = make_property(db, owner, approved=False)
    response = client.post(f"/api/admin/properties/{listing['_id']}/ai-review", headers=auth_header(admin))
    assert response.status_code == 503


def test_ai_review_stores_suggestion_without_approving(client, db, owner, admin, monkeypatch):
    listing = make_property(db, owner, approved=False)
    prompts = []

    async def fake_complete(prompt, temperature=0.7, **kwargs):
        prompts.append((prompt, temperature))
        return '{"confidence": 90, "score": 82, "recommendation": "APPROVE", "summary": "Fine"}'

    monkeypatch.setattr(ai_service, "is_configured", lambda: True)
    monkeypatch.setattr(ai_service, "complete", fake_complete)

    response = client.post(f"/api/admin/properties/{listing['_id']}/ai-review", headers=auth_header(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["ai_review"]["recommendation"] == "APPROVE"
    assert body["listing"]["ai_review"]["reviewed"] is True
    assert body["listing"]["is_approved"] is False
    assert prompts[0][1] == 0.3


# ==============================================
# BOOTSTRAP
# ==============================================

@pytest.fixture
def admin_env(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "Root@Example.com")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "super-secret-pass")
    monkeypatch.setattr(settings, "ADMIN_SEED_TOKEN", "seed-123")


def test_bootstrap_requires_seed_token(client, admin_env):
    assert client.post("/api/admin/bootstrap").status_code == 401
    assert client.post("/api/admin/bootstrap", headers={"X-Admin-Seed-Token": "wrong"}).status_code == 401


def test_bootstrap_creates_then_refreshes_admin(client, db, admin_env):
    headers = {"X-Admin-Seed-Token": "seed-123"}

    first = client.post("/api/admin/bootstrap", headers=headers)
    assert first.status_code == 200
    assert first.json() == {"success": True, "email": "root@example.com", "role": "admin"}

    client.post("/api/admin/bootstrap", headers=headers)
    assert len(db.users.docs) == 1
    stored = db.users.docs[0]
    assert stored["role"] == "admin"
    assert verify_password("super-secret-pass", stored["password"])

    login = client.post("/api/auth/login", json={"email": "root@example.com", "password": "super-secret-pass"})
    assert login.json()["user"]["role"] == "admin"


def test_bootstrap_not_configured(client):
    assert client.post("/api/admin/bootstrap").status_code == 503


def test_bootstrap_rejects_password_over_bcrypt_limit(client, db, admin_env, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "p" * 73)

    response = client.post("/api/admin/bootstrap", headers={"X-Admin-Seed-Token": "seed-123"})

    assert response.status_code == 400
    assert db.users.docs == []
