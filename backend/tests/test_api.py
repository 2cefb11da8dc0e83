"""
API tests through the FastAPI app with a fake clinic backend
"""
from fastapi.testclient import TestClient

from clinic_panel.config import permissions, settings
from clinic_panel.config.permissions import ALL_PERMISSIONS

from conftest import auth_headers


class TestAuth:

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_title_comes_from_settings(self, client: TestClient):
        assert client.app.title == settings.APP_NAME

    def test_missing_token(self, client: TestClient):
        response = client.get("/api/v1/permissions/me")
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client: TestClient):
        response = client.get("/api/v1/permissions/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_admin_gets_every_permission(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/permissions/me", headers=admin_headers)

        assert response.status_code == 200
        assert set(response.json()["permissions"]) == set(ALL_PERMISSIONS)

    def test_unknown_permission_keys_are_dropped(self, client: TestClient):
        headers = auth_headers(permissions=[permissions.VISITS, "legacy:thing"])
        response = client.get("/api/v1/permissions/me", headers=headers)

        assert response.json()["permissions"] == [permissions.VISITS]


class TestResourceRoutes:

    def test_list_requires_permission(self, client: TestClient, fake_backend):
        headers = auth_headers(permissions=[permissions.ITEMS])
        response = client.get("/api/v1/visits/", headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == f"Permission required: {permissions.VISITS}"
        assert fake_backend.calls == []

    def test_list_clients(self, client: TestClient):
        headers = auth_headers(permissions=[permissions.CLIENTS])
        response = client.get("/api/v1/clients/", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["clients"][1]["nationalCo"] == "222"

    def test_create_personnel(self, client: TestClient, fake_backend, admin_headers):
        response = client.post(
            "/api/v1/personnel/",
            json={"name": "Deniz", "doctorExpense": 400},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["total"] == 4
        assert fake_backend.calls_for("POST")[0][1] == "/api/personel/"

    def test_delete_visit(self, client: TestClient, fake_backend, admin_headers):
        response = client.delete("/api/v1/visits/1000", headers=admin_headers)

        assert response.status_code == 200
        assert [v["id"] for v in response.json()["visits"]] == [1001, 1002]

    def test_backend_error_becomes_bad_gateway(self, client: TestClient, fake_backend, admin_headers):
        fake_backend.fail[("GET", "services")] = 500
        response = client.get("/api/v1/services/", headers=admin_headers)

        assert response.status_code == 502

    def test_visit_detail(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/visits/1001", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["client_name"] == "Burak Demir"
        assert data["services"] == ["Whitening"]
        assert data["total_paid"] == 150

    def test_unknown_visit(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/visits/4242", headers=admin_headers)
        assert response.status_code == 404


class TestAnalyticsRoutes:

    def test_requires_analytics_permission(self, client: TestClient):
        headers = auth_headers(permissions=[permissions.VISITS])
        response = client.get("/api/v1/analytics/summary", headers=headers)
        assert response.status_code == 403

    def test_summary(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/analytics/summary", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "total_visits": 3,
            "total_items": 67,
            "total_revenue": 430,
            "total_personnel_payments": 1500,
        }

    def test_summary_only_counts_permitted_lists(self, client: TestClient, fake_backend):
        headers = auth_headers(permissions=[permissions.ANALYTICS, permissions.ITEMS])
        response = client.get("/api/v1/analytics/summary", headers=headers)

        assert response.json()["total_visits"] == 0
        assert response.json()["total_items"] == 67
        assert [call[1] for call in fake_backend.calls] == ["/api/items/"]

    def test_personnel(self, client: TestClient, admin_headers):
        response = client.get(
            "/api/v1/analytics/personnel",
            params={"selected_service": "11", "search_query": "e"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["active_filters"] == 2
        assert [p["name"] for p in data["personnel"]] == ["Mert"]
        assert data["personnel"][0]["revenue"] == 250
        assert data["chart"][0]["visits"] == 1
        assert data["is_loading"] is False
        assert data["updated_at"] is not None

    def test_personnel_date_range(self, client: TestClient, admin_headers):
        response = client.get(
            "/api/v1/analytics/personnel",
            params={"date_from": "2024-03-15T00:00:00", "date_to": "2024-03-31T23:59:59"},
            headers=admin_headers,
        )

        assert [p["name"] for p in response.json()["personnel"]] == ["Mert", "Dr. Ayla"]

    def test_inventory_low_stock(self, client: TestClient, admin_headers):
        response = client.get(
            "/api/v1/analytics/inventory",
            params={"show_low_stock": "true", "sort_by": "count", "sort_order": "asc"},
            headers=admin_headers,
        )

        data = response.json()
        assert [i["name"] for i in data["items"]] == ["Bleach gel", "Floss"]
        assert data["low_stock_count"] == 2
        assert data["active_filters"] == 2

    def test_inventory_rejects_unknown_sort(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/analytics/inventory", params={"sort_by": "colour"}, headers=admin_headers)
        assert response.status_code == 422

    def test_visits(self, client: TestClient, admin_headers):
        response = client.get(
            "/api/v1/analytics/visits",
            params={"payment_type": "unpaid", "sort_by": "revenue"},
            headers=admin_headers,
        )

        data = response.json()
        assert [v["id"] for v in data["visits"]] == [1001, 1002]
        assert data["visits"][0]["services"] == ["Whitening"]
        assert data["chart"]["by_service"][0]["service"] == "Consultation"

    def test_visit_items(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/analytics/visit-items", headers=admin_headers)
        assert response.json()["total"] == 2

    def test_filter_defaults(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/analytics/filters/visits", headers=admin_headers)

        data = response.json()
        assert data["active_filters"] == 0
        assert data["filters"]["sort_by"] == "date"
        assert data["filters"]["sort_order"] == "desc"
        assert data["filters"]["payment_type"] == "all"


class TestVisitDrafts:

    def _headers(self):
        return auth_headers(permissions=[permissions.VISITS, permissions.SERVICES, permissions.CLIENTS])

    def test_full_draft_flow(self, client: TestClient, fake_backend):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]
        base = f"/api/v1/visits/drafts/{draft_id}"

        client.put(f"{base}/client", json={"client_id": 2}, headers=headers)
        client.put(f"{base}/datetime", json={"datetime": "2024-06-01T14:00:00"}, headers=headers)
        client.post(f"{base}/services/11/toggle", headers=headers)
        client.post(f"{base}/items/101/toggle", headers=headers)
        client.patch(f"{base}/items/101", json={"change": 2}, headers=headers)
        client.post(f"{base}/payments", json={"description": "Deposit", "price": 100, "date": "2024-06-01"}, headers=headers)
        state = client.post(f"{base}/payments/1/toggle", headers=headers).json()

        assert state["selected_services"] == [11]
        assert state["selected_items"] == [{"id": 101, "quantity": 3}]
        assert state["payments"][0]["paid"] is True
        assert state["total_payment"] == 100

        response = client.post(f"{base}/submit", headers=headers)

        assert response.status_code == 201
        posted = fake_backend.calls_for("POST")[0]
        assert posted[1] == "/api/visit/"
        assert posted[3]["services"] == [11]
        assert posted[3]["items"] == [{"id": 101, "quantity": 3}]
        assert posted[3]["client"]["name"] == "Burak Demir"
        assert posted[3]["client"]["nationalCo"] == "222"
        assert response.json()["total"] == 4

        assert client.get(base, headers=headers).status_code == 404

    def test_invalid_payment(self, client: TestClient):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.post(
            f"/api/v1/visits/drafts/{draft_id}/payments",
            json={"description": "", "price": 10},
            headers=headers,
        )
        assert response.status_code == 422

    def test_submit_incomplete_draft(self, client: TestClient, fake_backend):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.post(f"/api/v1/visits/drafts/{draft_id}/submit", headers=headers)

        assert response.status_code == 422
        assert fake_backend.calls_for("POST") == []

    def test_drafts_are_private(self, client: TestClient):
        draft_id = client.post("/api/v1/visits/drafts", headers=self._headers()).json()["id"]
        other = auth_headers(sub="2", permissions=[permissions.VISITS])

        assert client.get(f"/api/v1/visits/drafts/{draft_id}", headers=other).status_code == 404

    def test_service_search(self, client: TestClient):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.get(
            f"/api/v1/visits/drafts/{draft_id}/services/search", params={"q": "WHITE"}, headers=headers
        )

        assert [s["name"] for s in response.json()["services"]] == ["Whitening"]

    def test_unknown_payment_on_draft(self, client: TestClient):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.delete(f"/api/v1/visits/drafts/{draft_id}/payments/9", headers=headers)
        assert response.status_code == 404

    def test_non_finite_payment_price(self, client: TestClient):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        for price in ("NaN", "Infinity"):
            response = client.post(
                f"/api/v1/visits/drafts/{draft_id}/payments",
                content=f'{{"description": "Deposit", "price": {price}}}',
                headers={**headers, "Content-Type": "application/json"},
            )
            assert response.status_code == 422

        assert client.get(f"/api/v1/visits/drafts/{draft_id}", headers=headers).json()["payments"] == []

    def test_client_search(self, client: TestClient, fake_backend):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]
        base = f"/api/v1/visits/drafts/{draft_id}"

        by_code = client.get(f"{base}/clients/search", params={"q": "222"}, headers=headers)
        by_name = client.get(f"{base}/clients/search", params={"q": "aylin"}, headers=headers)

        assert [c["id"] for c in by_code.json()["clients"]] == [2]
        assert [c["name"] for c in by_name.json()["clients"]] == ["Aylin Kaya"]
        assert [call[1] for call in fake_backend.calls] == ["/api/clients/"]

    def test_unknown_client(self, client: TestClient):
        headers = self._headers()
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.put(f"/api/v1/visits/drafts/{draft_id}/client", json={"client_id": 99}, headers=headers)

        assert response.status_code == 404
        assert client.get(f"/api/v1/visits/drafts/{draft_id}", headers=headers).json()["client"] is None

    def test_client_needs_clients_permission(self, client: TestClient, fake_backend):
        headers = auth_headers(permissions=[permissions.VISITS])
        draft_id = client.post("/api/v1/visits/drafts", headers=headers).json()["id"]

        response = client.put(f"/api/v1/visits/drafts/{draft_id}/client", json={"client_id": 2}, headers=headers)

        assert response.status_code == 404
        assert fake_backend.calls == []


class TestRateLimit:

    def test_requests_beyond_limit_are_rejected(self, client: TestClient):
        for _ in range(settings.RATE_LIMIT_PER_MINUTE):
            assert client.get("/health").status_code == 200

        response = client.get("/health")
        assert response.status_code == 429
