"""
Shared pytest fixtures.

The app reaches MongoDB through ``database.get_db()``; tests swap its cached handle for an
in-memory database exposing the slice of the motor collection API the app uses.
"""

import copy
import os
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

# Must be set before the app modules read their configuration
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_NAME"] = "course_marketplace_test"

from fastapi.testclient import TestClient  # noqa: E402

import database  # noqa: E402
import main  # noqa: E402


def _matches(doc, filter_dict):
    for key, cond in filter_dict.items():
        value = doc.get(key)
        if isinstance(cond, dict) and cond and all(op.startswith("$") for op in cond):
            for op, operand in cond.items():
                if op == "$in":
                    if isinstance(value, list):
                        if not any(item in operand for item in value):
                            return False
                    elif value not in operand:
                        return False
                elif op == "$ne":
                    if isinstance(value, list):
                        if operand in value:
                            return False
                    elif value == operand:
                        return False
                else:
                    raise NotImplementedError(op)
        elif isinstance(value, list) and not isinstance(cond, list):
            if cond not in value:
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    async def __aiter__(self):
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[: self._limit]
        for doc in docs:
            yield doc


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.unique_fields = set()

    async def create_index(self, keys, unique=False):
        if isinstance(keys, str) and unique:
            self.unique_fields.add(keys)
        return str(keys)

    async def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        for field in self.unique_fields:
            if any(existing.get(field) == doc.get(field) for existing in self.docs):
                raise DuplicateKeyError(f"duplicate key on {field}")
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, filter_dict):
        for doc in self.docs:
            if _matches(doc, filter_dict):
                return copy.deepcopy(doc)
        return None

    def find(self, filter_dict=None):
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs if _matches(doc, filter_dict or {})])

    async def update_one(self, filter_dict, update):
        for doc in self.docs:
            if _matches(doc, filter_dict):
                for key, value in update.get("$set", {}).items():
                    doc[key] = value
                for key, value in update.get("$addToSet", {}).items():
                    items = doc.setdefault(key, [])
                    if value not in items:
                        items.append(value)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, filter_dict):
        for index, doc in enumerate(self.docs):
            if _matches(doc, filter_dict):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name):
        return {"ok": 1.0}


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeDatabase()
    monkeypatch.setattr(database, "_db", fake)
    return fake


@pytest.fixture
def client(fake_db):
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Sign a user up and return ``(headers, user)`` for authenticated calls."""
    counter = {"n": 0}

    def _make_user(email=None, password="secret123", is_course_maker=False):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        response = client.post(
            "/user/signup",
            json={
                "email": email,
                "password": password,
                "firstName": "Test",
                "lastName": f"User{counter['n']}",
                "isCourseMaker": is_course_maker,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]

    return _make_user


@pytest.fixture
def make_course(client):
    def _make_course(headers, title="Intro to Python", price=19.99, **extra):
        response = client.post(
            "/course/create",
            headers=headers,
            json={"title": title, "description": "A course", "price": price, **extra},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_course
