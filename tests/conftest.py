"""
Shared fixtures.

An in-memory stand-in for the Motor database replaces app.db.mongo._database,
so routes and services run unchanged without a MongoDB server. External
integrations (email, SMS, Razorpay, Groq, Cloudinary) are monkeypatched per test.
"""

import copy
import os
import re
from types import SimpleNamespace

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "secondhome_test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")
for _key in (
    "SMTP_USER", "SMTP_PASSWORD", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN",
    "RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET", "RAZORPAY_WEBHOOK_SECRET",
    "GROQ_API_KEY", "GOOGLE_MAPS_API_KEY", "CLOUDINARY_CLOUD_NAME",
    "ADMIN_EMAIL", "ADMIN_PASSWORD", "ADMIN_SEED_TOKEN", "MERCHANT_UPI_ID", "OFFICIAL_EMAIL",
):
    os.environ[_key] = ""

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app.db import mongo
from app.main import app
from app.models.enums import UserRole
from factories import make_user


# =============================================================================
# IN-MEMORY MOTOR STAND-IN
# =============================================================================

_MISSING = object()


def _get_path(doc, path):
    value = doc
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _set_path(doc, path, value):
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _compare(value, op, arg, options=""):
    present = value is not _MISSING and value is not None

    if op == "$ne":
        if isinstance(value, list):
            return arg not in value
        return (None if value is _MISSING else value) != arg
    if op == "$in":
        if isinstance(value, list):
            return any(item in arg for item in value)
        return (None if value is _MISSING else value) in arg
    if op == "$nin":
        return not _compare(value, "$in", arg)
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op == "$regex":
        flags = re.IGNORECASE if "i" in options else 0
        return isinstance(value, str) and re.search(arg, value, flags) is not None
    # Geo filtering is not emulated: radius and ordering are covered by the
    # query shape test in test_properties.py
    if op == "$nearSphere":
        return present
    if not present:
        return False
    if op == "$gt":
        return value > arg
    if op == "$gte":
        return value >= arg
    if op == "$lt":
        return value < arg
    if op == "$lte":
        return value <= arg
    raise NotImplementedError(op)


def _match_value(value, condition):
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        options = condition.get("$options", "")
        return all(
            _compare(value, op, arg, options)
            for op, arg in condition.items()
            if op not in ("$options", "$maxDistance")
        )
    if value is _MISSING:
        return condition is None
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def matches(doc, query):
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif not _match_value(_get_path(doc, key), condition):
            return False
    return True


def _apply_update(doc, update, inserting=False):
    for op, fields in update.items():
        for path, value in fields.items():
            if op == "$set" or (op == "$setOnInsert" and inserting):
                _set_path(doc, path, copy.deepcopy(value))
            elif op == "$inc":
                current = _get_path(doc, path)
                _set_path(doc, path, (0 if current is _MISSING else current) + value)
            elif op == "$push":
                current = _get_path(doc, path)
                _set_path(doc, path, ([] if current is _MISSING else current) + [value])
            elif op == "$unset":
                parts = path.split(".")
                parent = _get_path(doc, ".".join(parts[:-1])) if len(parts) > 1 else doc
                if isinstance(parent, dict):
                    parent.pop(parts[-1], None)


def _sort_key(doc, field):
    value = _get_path(doc, field)
    present = value is not _MISSING and value is not None
    return (present, value if present else 0)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = None

    def sort(self, key_or_list, direction=None):
        keys = [(key_or_list, direction or 1)] if isinstance(key_or_list, str) else list(key_or_list)
        for field, order in reversed(keys):
            self._docs.sort(key=lambda d: _sort_key(d, field), reverse=order == -1)
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count or None
        return self

    async def to_list(self, length=None):
        docs = self._docs[self._skip:]
        if self._limit is not None:
            docs = docs[:self._limit]
        if length is not None:
            docs = docs[:length]
        return [copy.deepcopy(doc) for doc in docs]


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = []

    # Sync helpers for test setup
    def seed(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return doc

    def get(self, _id):
        for doc in self.docs:
            if doc["_id"] == _id:
                return doc
        return None

    def _find_raw(self, query):
        return [doc for doc in self.docs if matches(doc, query)]

    async def find_one(self, query=None, projection=None):
        found = self._find_raw(query)
        return copy.deepcopy(found[0]) if found else None

    def find(self, query=None, projection=None):
        return FakeCursor(self._find_raw(query))

    async def count_documents(self, query):
        return len(self._find_raw(query))

    async def insert_one(self, doc):
        if "_id" not in doc:
            doc["_id"] = ObjectId()
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update, upsert=False):
        found = self._find_raw(query)
        if found:
            _apply_update(found[0], update)
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
            doc["_id"] = ObjectId()
            _apply_update(doc, update, inserting=True)
            self.docs.append(doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def update_many(self, query, update):
        found = self._find_raw(query)
        for doc in found:
            _apply_update(doc, update)
        return SimpleNamespace(matched_count=len(found), modified_count=len(found))

    async def find_one_and_update(self, query, update, return_document=False, upsert=False):
        found = self._find_raw(query)
        if not found:
            return None
        before = copy.deepcopy(found[0])
        _apply_update(found[0], update)
        return copy.deepcopy(found[0]) if return_document else before

    async def delete_one(self, query):
        found = self._find_raw(query)
        if found:
            self.docs.remove(found[0])
        return SimpleNamespace(deleted_count=len(found[:1]))

    async def delete_many(self, query):
        found = self._find_raw(query)
        for doc in found:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(found))


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def db(monkeypatch):
    fake = FakeDatabase()
    monkeypatch.setattr(mongo, "_database", fake)
    return fake


@pytest.fixture
def client():
    # No context manager: the lifespan (real MongoDB connection) is not run
    return TestClient(app)


@pytest.fixture
def student(db):
    return make_user(db, name="Riya Student", email="riya@example.com")


@pytest.fixture
def owner(db):
    return make_user(db, name="Omkar Owner", email="owner@example.com", role=UserRole.OWNER)


@pytest.fixture
def admin(db):
    return make_user(db, name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Captures outgoing mail instead of talking to SMTP."""
    from app.services.email_service import email_service

    outbox = []

    async def fake_send(to, subject, html=None, text=None):
        outbox.append({"to": to, "subject": subject, "html": html, "text": text})
        return {"success": True}

    monkeypatch.setattr(email_service, "send", fake_send)
    return outbox
