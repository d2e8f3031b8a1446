"""Application-level tests: health, metrics, error envelopes, headers."""

from app.models.cart import Cart
from app.services.menu_service import MenuService

API = "/api/v1"


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness(self, client):
        data = client.get("/health/ready").json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] == "healthy"
        assert data["checks"]["realtime"].startswith("healthy")

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/health"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_request_id_echoed(self, client):
        response = client.get(f"{API}/menu/public", params={"tenantCode": "ghost"}, headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"
        assert client.get(f"{API}/menu/public", params={"tenantCode": "ghost"}).headers["X-Request-ID"]


class TestMetrics:
    def test_manager_can_scrape(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        client.post(f"{API}/orders/{order.id}/emit-status", json={"to_status": "preparing"}, headers=auth_headers)

        response = client.get("/metrics", headers=auth_headers)

        assert response.status_code == 200
        assert "order_status_events_total" in response.text
        assert "realtime_changes_published_total" in response.text
        assert 'path="/api/v1/orders/:id/emit-status"' in response.text

    def test_staff_cannot_scrape(self, client, staff_headers):
        assert client.get("/metrics", headers=staff_headers).status_code == 403

    def test_anonymous_cannot_scrape(self, client):
        assert client.get("/metrics").status_code == 401


class TestErrorEnvelope:
    def test_validation_error_is_400(self, client):
        response = client.post(f"{API}/cart", json={"order_type": "dine_in"})
        assert response.status_code == 400
        assert set(response.json()) == {"error"}

    def test_malformed_json_is_400(self, client):
        response = client.post(
            f"{API}/checkout/cancel",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_unknown_route(self, client):
        response = client.get(f"{API}/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_missing_table_is_503(self, client, db_engine):
        Cart.__table__.drop(db_engine)

        response = client.get(f"{API}/cart/anything")

        assert response.status_code == 503
        assert response.json() == {"error": "Service not available", "reason": "missing_table"}

    def test_unexpected_error_is_500(self, client, monkeypatch):
        def broken(self, tenant_code):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(MenuService, "public_menu", broken)
        response = client.get(f"{API}/menu/public", params={"tenantCode": "harbor"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "on fire" not in response.text
