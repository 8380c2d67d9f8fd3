"""
Mess subscriptions, blog, newsletter and the public stats counters.
"""

from datetime import timedelta

import pytest
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.models.enums import UserRole
from app.services import stats_service
from app.services.ai_service import ai_service
from factories import make_user, make_property, make_mess, auth_header
from utils.time_utils import utc_now


# ==============================================
# MESS SUBSCRIPTIONS
# ==============================================

def _subscribe(client, user, mess, **overrides):
    payload = {"mess_id": str(mess["_id"]), "start_date": "2024-01-31"}
    payload.update(overrides)
    return client.post("/api/mess-subscriptions", json=payload, headers=auth_header(user))


def test_subscription_runs_one_calendar_month(client, db, student, owner):
    mess = make_mess(db, owner)

    response = _subscribe(client, student, mess, phone="+91 98765 43210")

    assert response.status_code == 201
    body = response.json()
    assert body["start_date"] == "2024-01-31T00:00:00"
    assert body["end_date"] == "2024-02-29T00:00:00"
    assert body["monthly_price"] == 3000
    assert body["status"] == "pending"

    stored = db.mess_subscriptions.docs[0]
    assert stored["subscriber_phone"] == "9876543210"
    assert stored["subscriber_email"] == "riya@example.com"
    assert stored["owner"] == owner["_id"]


def test_subscription_notifies_and_emails(client, db, student, owner, sent_emails, monkeypatch):
    monkeypatch.setattr(settings, "OFFICIAL_EMAIL", "ops@secondhome.example")
    mess = make_mess(db, owner)

    _subscribe(client, student, mess)

    titles = {(n["user"], n["title"]) for n in db.notifications.docs}
    assert titles == {
        (student["_id"], "Mess subscription created"),
        (owner["_id"], "New mess subscription request"),
    }
    assert {mail["to"] for mail in sent_emails} == {"riya@example.com", "mess@example.com", "ops@secondhome.example"}
    user_mail = next(mail for mail in sent_emails if mail["to"] == "riya@example.com")
    assert "Annapurna Mess" in user_mail["subject"]
    assert "2024-02-29" in user_mail["text"]


def test_subscription_falls_back_to_owner_email(client, db, student, owner, sent_emails):
    mess = make_mess(db, owner, contact_email=None)
    _subscribe(client, student, mess)
    assert {mail["to"] for mail in sent_emails} == {"riya@example.com", "owner@example.com"}


def test_subscription_errors(client, db, student, owner):
    live = make_mess(db, owner)
    pending = make_mess(db, owner, approved=False)
    free = make_mess(db, owner, monthly_price=0)

    invalid_id = client.post(
        "/api/mess-subscriptions", json={"mess_id": "nope", "start_date": "2024-01-31"}, headers=auth_header(student)
    )
    assert invalid_id.status_code == 400
    assert invalid_id.json()["error"] == "Invalid mess_id"

    assert _subscribe(client, student, live, start_date="31/01/2024").status_code == 400
    assert _subscribe(client, student, {"_id": "65f1c0ffee0123456789abcd"}).status_code == 404
    assert _subscribe(client, student, pending).status_code == 403
    assert _subscribe(client, student, free).status_code == 400
    assert db.mess_subscriptions.docs == []


def test_list_my_subscriptions(client, db, student, owner):
    mess = make_mess(db, owner)
    _subscribe(client, student, mess)

    items = client.get("/api/mess-subscriptions", headers=auth_header(student)).json()["items"]
    assert len(items) == 1
    assert items[0]["mess"] == str(mess["_id"])

    assert client.get("/api/mess-subscriptions", headers=auth_header(owner)).json()["items"] == []


# ==============================================
# BLOG
# ==============================================

def _post(db, title, **extra):
    doc = {
        "title": title,
        "excerpt": None,
        "content": "x" * 300,
        "author": "SecondHome",
        "category": "General",
        "tags": [],
        "is_published": True,
        "is_trending": False,
        "views": 0,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    doc.update(extra)
    return db.blog_posts.seed(doc)


def test_blog_list_published_trending_first(client, db):
    _post(db, "Old", created_at=utc_now() - timedelta(days=3))
    _post(db, "Hot", is_trending=True, created_at=utc_now() - timedelta(days=5))
    _post(db, "New")
    _post(db, "Draft", is_published=False)

    body = client.get("/api/blog-posts").json()

    assert [post["title"] for post in body["items"]] == ["Hot", "New", "Old"]
    assert body["total"] == 3
    assert body["items"][0]["excerpt"] == "x" * 200


def test_blog_filter_by_category(client, db):
    _post(db, "Budget", category="Budget Tips")
    _post(db, "Other")
    body = client.get("/api/blog-posts", params={"category": "Budget Tips"}).json()
    assert [post["title"] for post in body["items"]] == ["Budget"]


def test_blog_detail_counts_views(client, db):
    post = _post(db, "Guide", views=4)

    response = client.get(f"/api/blog-posts/{post['_id']}")

    assert response.json()["post"]["views"] == 5
    assert db.blog_posts.get(post["_id"])["views"] == 5


def test_blog_detail_hides_drafts(client, db):
    draft = _post(db, "Draft", is_published=False)
    assert client.get(f"/api/blog-posts/{draft['_id']}").status_code == 404
    response = client.get("/api/blog-posts/not-an-id")
    assert response.status_code == 404
    assert response.json()["error"] == "Blog post not found"


def test_admin_creates_draft_with_defaults(client, db, admin, student):
    response = client.post(
        "/api/blog-posts", json={"title": " Moving tips ", "content": "Pack light"}, headers=auth_header(admin)
    )

    assert response.status_code == 201
    post = response.json()["post"]
    assert post["title"] == "Moving tips"
    assert post["author"] == "SecondHome"
    assert post["category"] == "General"
    assert post["is_published"] is False
    assert db.notifications.docs == []


def test_blog_writes_require_admin(client, student):
    response = client.post("/api/blog-posts", json={"title": "t", "content": "c"}, headers=auth_header(student))
    assert response.status_code == 403


def test_blog_create_validation(client, admin):
    headers = auth_header(admin)
    assert client.post("/api/blog-posts", json={"title": "Only title"}, headers=headers).status_code == 400

    bad_category = client.post(
        "/api/blog-posts", json={"title": "t", "content": "c", "category": "Gossip"}, headers=headers
    )
    assert bad_category.status_code == 400
    assert "Student Life" in bad_category.json()["details"]["allowed"]


def test_publishing_announces_once(client, db, admin, student, owner):
    headers = auth_header(admin)
    post_id = client.post(
        "/api/blog-posts", json={"title": "Draft", "content": "Body"}, headers=headers
    ).json()["post"]["id"]
    url = f"/api/blog-posts/{post_id}"

    client.put(url, json={"is_published": True}, headers=headers)
    assert len(db.notifications.docs) == 3
    assert {n["type"] for n in db.notifications.docs} == {"article"}
    assert db.notifications.docs[0]["title"] == "New Article Published"

    client.put(url, json={"title": "Edited"}, headers=headers)
    assert len(db.notifications.docs) == 3


def test_create_published_post_announces(client, db, admin, student):
    client.post(
        "/api/blog-posts", json={"title": "Live", "content": "Body", "is_published": True}, headers=auth_header(admin)
    )
    assert {n["user"] for n in db.notifications.docs} == {admin["_id"], student["_id"]}


def test_blog_update_and_delete_errors(client, db, admin):
    headers = auth_header(admin)
    post = _post(db, "Guide")
    url = f"/api/blog-posts/{post['_id']}"

    assert client.put(url, json={}, headers=headers).status_code == 400
    assert client.put("/api/blog-posts/junk", json={"title": "t"}, headers=headers).status_code == 400

    assert client.delete(url, headers=headers).status_code == 204
    assert client.delete(url, headers=headers).status_code == 404
    assert client.delete("/api/blog-posts/junk", headers=headers).status_code == 400


# ==============================================
# NEWSLETTER
# ==============================================

def test_subscribe_then_reactivate(client, db):
    first = client.post("/api/newsletter/subscribe", json={"email": "Fan@Example.com"})
    assert first.status_code == 201
    assert first.json()["message"] == "Subscribed successfully"

    token = db.newsletters.docs[0]["unsubscribe_token"]
    assert client.get("/api/newsletter/unsubscribe", params={"token": token}).json()["success"] is True
    assert db.newsletters.docs[0]["is_active"] is False

    again = client.post("/api/newsletter/subscribe", json={"email": "fan@example.com"})
    assert again.status_code == 200
    assert again.json()["message"] == "Subscription re-activated"
    assert len(db.newsletters.docs) == 1
    assert db.newsletters.docs[0]["is_active"] is True
    assert db.newsletters.docs[0]["unsubscribe_token"] == token


def test_subscribe_rejects_invalid_email(client):
    assert client.post("/api/newsletter/subscribe", json={"email": "nope"}).status_code == 400


def test_unsubscribe_unknown_token(client):
    assert client.get("/api/newsletter/unsubscribe", params={"token": "missing"}).status_code == 404


@pytest.fixture
def subscribers(client, db):
    client.post("/api/newsletter/subscribe", json={"email": "instant@example.com"})
    client.post(
        "/api/newsletter/subscribe",
        json={"email": "digest@example.com", "preferences": {"instant_updates": False, "weekly_digest": True}},
    )
    client.post("/api/newsletter/subscribe", json={"email": "gone@example.com"})
    gone = next(doc for doc in db.newsletters.docs if doc["email"] == "gone@example.com")
    client.get("/api/newsletter/unsubscribe", params={"token": gone["unsubscribe_token"]})
    return db.newsletters.docs


LISTING = {"id": "abc123", "title": "<Cosy> PG", "location": "Pune", "price": 7500, "type": "PG"}


def test_instant_alert_uses_template_without_ai(client, admin, subscribers, sent_emails):
    response = client.post(
        "/api/newsletter/send-instant", json={"property_data": LISTING}, headers=auth_header(admin)
    )

    assert response.status_code == 200
    assert response.json()["stats"] == {"total": 1, "success": 1, "failed": 0}

    mail = sent_emails[0]
    assert mail["to"] == "instant@example.com"
    assert mail["subject"] == "🔥 NEW! <Cosy> PG - Pune"
    assert "&lt;Cosy&gt; PG" in mail["html"]
    assert "₹7,500.00" in mail["html"]
    assert "/listings/abc123" in mail["html"]
    token = subscribers[0]["unsubscribe_token"]
    assert f"{settings.SITE_URL.rstrip('/')}/api/newsletter/unsubscribe?token={token}" in mail["html"]


def test_instant_alert_uses_ai_copy(client, admin, subscribers, sent_emails, monkeypatch):
    async def fake_complete(prompt, temperature=0.7, **kwargs):
        assert "<Cosy> PG" in prompt
        return "  <h1>Fresh listing!</h1>  "

    monkeypatch.setattr(ai_service, "is_configured", lambda: True)
    monkeypatch.setattr(ai_service, "complete", fake_complete)

    client.post("/api/newsletter/send-instant", json={"property_data": LISTING}, headers=auth_header(admin))

    assert sent_emails[0]["html"].startswith("<h1>Fresh listing!</h1>")


def test_instant_alert_survives_ai_failure(client, admin, subscribers, sent_emails, monkeypatch):
    async def broken(*args, **kwargs):
        raise ExternalServiceError("AI provider unavailable")

    monkeypatch.setattr(ai_service, "is_configured", lambda: True)
    monkeypatch.setattr(ai_service, "complete", broken)

    response = client.post("/api/newsletter/send-instant", json={"property_data": LISTING}, headers=auth_header(admin))

    assert response.json()["stats"]["success"] == 1
    assert "A new listing just went live" in sent_emails[0]["html"]


def test_instant_alert_requires_title(client, admin):
    response = client.post(
        "/api/newsletter/send-instant", json={"property_data": {"location": "Pune"}}, headers=auth_header(admin)
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Property data required"


def test_instant_alert_with_no_subscribers(client, admin):
    response = client.post("/api/newsletter/send-instant", json={"property_data": LISTING}, headers=auth_header(admin))
    assert response.json()["stats"] == {"total": 0, "success": 0, "failed": 0}


# ==============================================
# STATS
# ==============================================

def test_stats_counts(client, db, owner):
    make_user(db, email="second-owner@example.com", role=UserRole.OWNER)
    for _ in range(3):
        make_property(db, owner)
    make_property(db, owner, approved=False)
    db.bookings.seed({"created_at": utc_now() - timedelta(days=10)})
    db.bookings.seed({"created_at": utc_now() - timedelta(days=500)})

    body = client.get("/api/stats").json()

    assert body["property_owners"] == 2
    assert body["student_bookings"] == 1
    assert body["success_rate"] == 75
    assert body["success_rate_formatted"] == "75%"
    assert body["property_owners_formatted"] == "2"


def test_stats_fall_back_to_all_bookings(client, db):
    db.bookings.seed({"created_at": utc_now() - timedelta(days=400)})
    db.bookings.seed({"created_at": utc_now() - timedelta(days=800)})
    body = client.get("/api/stats").json()
    assert body["student_bookings"] == 2
    assert body["success_rate"] == 0


def test_stats_zero_on_database_error(client, monkeypatch):
    class Broken:
        async def count_documents(self, query):
            raise PyMongoError("down")

    monkeypatch.setattr(stats_service, "get_users_collection", lambda: Broken())

    body = client.get("/api/stats").json()
    assert body["property_owners"] == 0
    assert body["success_rate_formatted"] == "0%"
