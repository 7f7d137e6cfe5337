"""
Pytest configuration shared by all tests.

Settings are read from the environment, so the required variables are set
before the application is imported. MongoDB is replaced by an in-memory
collection supporting the subset of the motor API the services use.
"""
import copy
import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import jwt
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB_NAME", "travel_backoffice_test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("ENVIRONMENT", "test")
# Outbound calls stay disabled unless a test configures them explicitly.
os.environ["INQUIRY_WEBHOOK_URL"] = ""
os.environ["INQUIRY_WEBHOOK_SECRET"] = ""

from app.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

AGENT_A = "65a1f0c2e4b0a1b2c3d4e5f6"
AGENT_B = "65a1f0c2e4b0a1b2c3d4e5f7"


def _compare(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$ne" and value == operand:
                return False
            if op == "$in" and value not in operand:
                return False
            if op == "$gte" and (value is None or value < operand):
                return False
            if op == "$lte" and (value is None or value > operand):
                return False
        return True
    return value == condition


def matches(doc: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    return all(_compare(doc.get(key), condition) for key, condition in (query or {}).items())


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self.docs.sort(
            key=lambda d: (d.get(key) is not None, d.get(key)),
            reverse=direction < 0,
        )
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """In-memory stand-in for an AsyncIOMotorCollection."""

    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.fail: Optional[Exception] = None
        self.unique: List[str] = []

    def _check(self) -> None:
        if self.fail:
            raise self.fail

    def seed(self, *docs: Dict[str, Any]) -> List[Dict[str, Any]]:
        for doc in docs:
            doc.setdefault("_id", ObjectId())
            self.docs.append(copy.deepcopy(doc))
        return list(docs)

    def find(self, query: Optional[Dict[str, Any]] = None, projection: Any = None) -> FakeCursor:
        self._check()
        return FakeCursor([copy.deepcopy(d) for d in self.docs if matches(d, query)])

    async def find_one(self, query: Optional[Dict[str, Any]] = None, projection: Any = None):
        self._check()
        for doc in self.docs:
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def create_index(self, key: str, unique: bool = False, sparse: bool = False) -> str:
        self._check()
        if unique:
            self.unique.append(key)
        return f"{key}_1"

    async def insert_one(self, doc: Dict[str, Any]):
        self._check()
        for key in self.unique:
            if doc.get(key) is not None and any(d.get(key) == doc[key] for d in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {key}_1")
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        self._check()
        for doc in self.docs:
            if matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                for field, value in update.get("$push", {}).items():
                    doc.setdefault(field, []).append(copy.deepcopy(value))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: Dict[str, Any]):
        self._check()
        for i, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakeExternalClient:
    """Replaces ExternalInquiryClient; serves fixed views or raises."""

    def __init__(self, views=None, error: Optional[Exception] = None):
        self.views = views or []
        self.error = error
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.views)


def make_token(user_id: str, role: str = "agent") -> str:
    settings = get_settings()
    return jwt.encode({"id": user_id, "role": role}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def auth_header(user_id: str, role: str = "agent") -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def db() -> FakeDatabase:
    """Database with Agent A in users and Agent B in agents."""
    database = FakeDatabase()
    database["users"].seed(
        {"_id": ObjectId(AGENT_A), "name": "Agent A", "email": "a@agency.test", "role": "agent"},
    )
    database["agents"].seed(
        {"_id": ObjectId(AGENT_B), "name": "Agent B", "email": "b@agency.test", "password": "hashed"},
    )
    return database
