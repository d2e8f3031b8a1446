"""Kitchen display tests: lane projection, restricted advance, feature switch."""

from app.core.config import settings
from app.services.kitchen_display_service import KitchenDisplayService, lane_for

API = "/api/v1"


def _advance(client, headers, order_id, to_status):
    return client.post(
        f"{API}/kds/orders/{order_id}/advance",
        json={"to_status": to_status},
        headers=headers,
    )


class TestLanes:
    """GET /kds/lanes."""

    def test_empty(self, client, auth_headers):
        response = client.get(f"{API}/kds/lanes", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"queued": [], "preparing": [], "ready": []}

    def test_orders_land_in_exactly_one_lane(self, client, auth_headers, tenant, make_order, menu):
        queued = make_order(tenant.id, menu_item=menu["Burger"], quantity=2)
        cooking = make_order(tenant.id)
        plated = make_order(tenant.id)
        served = make_order(tenant.id)
        _advance(client, auth_headers, cooking.id, "preparing")
        _advance(client, auth_headers, plated.id, "ready")
        _advance(client, auth_headers, served.id, "served")

        lanes = client.get(f"{API}/kds/lanes", headers=auth_headers).json()

        assert [o["id"] for o in lanes["queued"]] == [queued.id]
        assert [o["id"] for o in lanes["preparing"]] == [cooking.id]
        assert [o["id"] for o in lanes["ready"]] == [plated.id]
        all_ids = [o["id"] for lane in lanes.values() for o in lane]
        assert served.id not in all_ids

        card = lanes["queued"][0]
        assert card["current_status"] == "new"
        assert card["status_updated_at"] is None
        assert card["items"][0]["name"] == "Burger"
        assert card["items"][0]["quantity"] == 2
        assert lanes["ready"][0]["status_updated_at"] is not None

    def test_cancelled_and_paid_are_hidden(self, client, auth_headers, tenant, make_order):
        cancelled = make_order(tenant.id)
        paid = make_order(tenant.id)
        client.post(f"{API}/orders/{cancelled.id}/emit-status", json={"to_status": "cancelled"}, headers=auth_headers)
        client.post(f"{API}/orders/{paid.id}/emit-status", json={"to_status": "paid"}, headers=auth_headers)

        lanes = client.get(f"{API}/kds/lanes", headers=auth_headers).json()

        assert lanes == {"queued": [], "preparing": [], "ready": []}

    def test_oldest_first(self, client, auth_headers, tenant, make_order):
        first = make_order(tenant.id)
        second = make_order(tenant.id)
        lanes = client.get(f"{API}/kds/lanes", headers=auth_headers).json()
        assert [o["id"] for o in lanes["queued"]] == [first.id, second.id]

    def test_tenant_isolation(self, client, other_tenant_headers, tenant, make_order):
        make_order(tenant.id)
        lanes = client.get(f"{API}/kds/lanes", headers=other_tenant_headers).json()
        assert lanes["queued"] == []

    def test_lane_counts(self, db_session, tenant, make_order):
        make_order(tenant.id)
        make_order(tenant.id, current_status="confirmed")
        make_order(tenant.id, current_status="ready")
        make_order(tenant.id, current_status="served")

        counts = KitchenDisplayService(db_session).lane_counts(tenant.id)

        assert counts == {"queued": 2, "preparing": 0, "ready": 1}

    def test_lane_mapping(self):
        assert lane_for("pending") == "queued"
        assert lane_for("confirmed") == "queued"
        assert lane_for("served") is None
        assert lane_for("cancelled") is None


class TestAdvance:
    """POST /kds/orders/{id}/advance."""

    def test_advance_to_kitchen_status(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        response = _advance(client, auth_headers, order.id, "preparing")
        assert response.status_code == 200
        assert response.json()["event"]["to_status"] == "preparing"

    def test_non_kitchen_status_rejected(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        for status in ("confirmed", "paid", "cancelled", "nope"):
            response = _advance(client, auth_headers, order.id, status)
            assert response.status_code == 400
            assert response.json()["error"] == "Invalid status for kitchen"

    def test_other_tenant(self, client, other_tenant_headers, tenant, make_order):
        order = make_order(tenant.id)
        assert _advance(client, other_tenant_headers, order.id, "ready").status_code == 404


class TestFeatureSwitch:
    def test_lanes_disabled(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "enable_kds_rt", False)
        response = client.get(f"{API}/kds/lanes", headers=auth_headers)
        assert response.status_code == 503
        assert response.json() == {"error": "KDS features disabled", "reason": "feature_flag_off"}

    def test_disabled_before_auth(self, client, monkeypatch):
        monkeypatch.setattr(settings, "enable_kds_rt", False)
        response = _advance(client, {}, "any", "ready")
        assert response.status_code == 503
