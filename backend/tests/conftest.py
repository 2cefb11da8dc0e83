"""
Pytest configuration: a fake clinic backend behind httpx.MockTransport and
helpers for issuing tokens.
"""
import copy
import json

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from clinic_panel.dependencies import get_backend_client, get_current_user
from clinic_panel.main import app, limiter
from clinic_panel.schemas.resources import Item, Payment, Personnel, Service, Visit
from clinic_panel.schemas.user import CurrentUser
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.store import DashboardStore, store_registry
from clinic_panel.services.visit_draft_service import draft_registry
from clinic_panel.utils.security import create_access_token

BACKEND_URL = "http://backend.test/api/"


BACKEND_DATA = {
    "personel": [
        {"id": 1, "name": "Dr. Ayla", "description": "Dentist", "doctorExpense": 1200},
        {"id": 2, "name": "Mert", "description": "Hygienist", "doctorExpense": 300},
        {"id": 3, "name": "Selin", "description": "Assistant", "doctorExpense": None},
    ],
    "services": [
        {"id": 10, "name": "Cleaning", "price": 100, "personel": [{"id": 1, "name": "Dr. Ayla"}]},
        {"id": 11, "name": "Whitening", "price": 250, "personel": [1, 2]},
        {"id": 12, "name": "Consultation", "price": 50, "personel": []},
    ],
    "items": [
        {"id": 100, "name": "Gloves", "price": 1, "count": 40, "used": 60},
        {"id": 101, "name": "Bleach gel", "price": 30, "count": 3, "used": 7},
        {"id": 102, "name": "Floss", "price": 2, "count": 5, "used": 0},
    ],
    "visit": [
        {
            "id": 1000,
            "client": {"id": 1, "name": "Aylin Kaya", "nationalCo": "111"},
            "service": [10],
            "items": [{"id": 1, "item": 100, "count": 2}],
            "datetime": "2024-03-05T10:00:00",
            "payments": [{"id": 1, "personel_id": 1, "price": 100, "paid": True}],
        },
        {
            "id": 1001,
            "client": {"id": 2, "name": "Burak Demir"},
            "service": [11],
            "items": [{"id": 2, "item": 101, "count": 1}],
            "datetime": "2024-03-20T15:30:00+03:00",
            "payments": [
                {"id": 2, "personel_id": 2, "price": 150, "paid": True},
                {"id": 3, "personel_id": 2, "price": 100, "paid": False},
            ],
        },
        {
            "id": 1002,
            "client": {"id": 1, "name": "Aylin Kaya", "nationalCo": "111"},
            "service": [12],
            "items": [],
            "datetime": "2024-04-01T09:00:00",
            "payments": [],
        },
    ],
    "payments": [
        {"id": 1, "personel_id": 1, "price": 100, "paid": True},
        {"id": 2, "personel_id": 2, "price": 150, "paid": True},
        {"id": 3, "personel_id": 2, "price": 100, "paid": False},
        {"id": 4, "personel_id": 1, "price": 80, "paid": True},
    ],
    "clients": [
        {"id": 1, "name": "Aylin Kaya", "nationalCo": "111", "gender": 1},
        {"id": 2, "name": "Burak Demir", "nationalCo": "222", "gender": 0},
    ],
}

PATH_KEYS = {
    "/api/personel/": "personel",
    "/api/services/": "services",
    "/api/items/": "items",
    "/api/visit/": "visit",
    "/api/payments/": "payments",
    "/api/clients/": "clients",
}


class FakeBackend:
    """Answers like the clinic backend and records every request"""

    def __init__(self):
        self.data = copy.deepcopy(BACKEND_DATA)
        self.calls = []
        self.fail = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, dict(request.url.params), body))

        key = PATH_KEYS.get(request.url.path)
        if key is None:
            return httpx.Response(404, json={"detail": "not found"})
        if (request.method, key) in self.fail:
            return httpx.Response(self.fail[(request.method, key)], json={"detail": "boom"})

        if request.method == "GET":
            return httpx.Response(200, json={key: self.data[key]})
        if request.method == "POST":
            record = dict(body, id=max((r["id"] for r in self.data[key]), default=0) + 1)
            if key == "visit":
                # Backend stores selected items as visit items
                record["items"] = [{"item": i["id"], "count": i["quantity"]} for i in body.get("items", [])]
            self.data[key].append(record)
            return httpx.Response(201, json={key: record})
        if request.method == "PUT":
            self.data[key] = [dict(r, **body) if r["id"] == body.get("id") else r for r in self.data[key]]
            return httpx.Response(200, json={key: body})
        if request.method == "DELETE":
            record_id = int(next(iter(request.url.params.values())))
            self.data[key] = [r for r in self.data[key] if r["id"] != record_id]
            return httpx.Response(200, json={key: None})
        return httpx.Response(405)

    def calls_for(self, method: str):
        return [call for call in self.calls if call[0] == method]


def make_token(sub="1", is_admin=False, permissions=None, name="Test User"):
    return create_access_token({
        "sub": sub,
        "name": name,
        "is_admin": is_admin,
        "permissions": permissions or [],
    })


def auth_headers(**claims):
    return {"Authorization": f"Bearer {make_token(**claims)}"}


def make_user(is_admin=False, permissions=None, user_id="1"):
    return CurrentUser(id=user_id, is_admin=is_admin, permissions=permissions or [], token="test-token")


@pytest.fixture(autouse=True)
def reset_state():
    limiter.reset()
    yield
    store_registry.clear()
    draft_registry.clear()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend):
    return BackendClient("test-token", base_url=BACKEND_URL, transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def client(fake_backend):
    async def _backend_client(current_user: CurrentUser = Depends(get_current_user)):
        return BackendClient(
            current_user.token,
            base_url=BACKEND_URL,
            transport=httpx.MockTransport(fake_backend.handler),
        )

    app.dependency_overrides[get_backend_client] = _backend_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return auth_headers(is_admin=True)


@pytest.fixture
def loaded_store():
    """Store filled with the fake backend's records"""
    store = DashboardStore()
    store.set("personnel", [Personnel.model_validate(r) for r in BACKEND_DATA["personel"]])
    store.set("services", [Service.model_validate(r) for r in BACKEND_DATA["services"]])
    store.set("items", [Item.model_validate(r) for r in BACKEND_DATA["items"]])
    store.set("visits", [Visit.model_validate(r) for r in BACKEND_DATA["visit"]])
    store.set("payments", [Payment.model_validate(r) for r in BACKEND_DATA["payments"]])
    return store
