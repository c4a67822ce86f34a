"""
pytest configuration for the AgriSense API.

The app talks to an in-memory mongomock database; every test gets a fresh
one. Helpers register users per role through the real endpoints and hand
back ready-to-use auth headers.
"""

from __future__ import annotations

import os

# must be set before the app modules read settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "testing")

from typing import Any, Callable, Dict

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Swap the module-level Mongo database for an in-memory one."""
    mock_db = mongomock.MongoClient()["agrisense_test"]
    monkeypatch.setattr(database, "db", mock_db)
    database.ensure_indexes()
    return mock_db


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def user_payload(role: str = "farmer", email: str | None = None, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "name": f"Test {role.title()}",
        "email": email or f"{role}@example.com",
        "password": "secret123",
        "role": role,
        "location": {"country": "Kenya", "region": "Rift Valley"},
        "phoneNumber": "0700000000",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def register_user(client) -> Callable[..., Dict[str, Any]]:
    """Register a user and return the response body plus auth headers."""

    def _register(role: str = "farmer", email: str | None = None, **overrides: Any) -> Dict[str, Any]:
        resp = client.post("/api/users/register", json=user_payload(role, email, **overrides))
        assert resp.status_code == 201, resp.text
        body = resp.json()
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body

    return _register


@pytest.fixture
def farmer(register_user):
    return register_user("farmer")


@pytest.fixture
def vendor(register_user):
    return register_user("vendor")


@pytest.fixture
def ngo(register_user):
    return register_user("ngo")


FARM = {
    "name": "Green Acres",
    "location": {"country": "Kenya", "region": "Rift Valley", "coordinates": {"latitude": -0.3, "longitude": 36.1}},
    "size": 12.5,
    "waterSource": ["borehole"],
}


@pytest.fixture
def farm(client, farmer):
    resp = client.put("/api/farmers/farm", json=FARM, headers=farmer["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()
