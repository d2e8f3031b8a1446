"""Guest QR flow tests: carts, totals and checkout."""

from decimal import Decimal

import pytest

from app.models.order import Order, OrderItem
from app.models.payment import PaymentIntent
from app.services.cart_service import compute_totals, to_money

API = "/api/v1"


@pytest.fixture
def cart_id(client, tenant, menu, dining_table):
    response = client.post(
        f"{API}/cart",
        json={
            "tenant_code": tenant.code,
            "order_type": "dine_in",
            "table_id": dining_table.id,
            "items": [
                {"menu_item_id": menu["Burger"].id, "qty": 2, "note": "no pickles"},
                {"menu_item_id": menu["Fries"].id, "qty": 1},
            ],
        },
    )
    assert response.status_code == 200
    return response.json()["cart_id"]


class TestTotals:
    def test_total_is_subtotal_plus_tax(self):
        totals = compute_totals([(Decimal("12.50"), 2), (Decimal("4.00"), 1)])
        assert totals == {
            "subtotal": Decimal("29.00"),
            "tax": Decimal("2.90"),
            "total": Decimal("31.90"),
        }

    def test_tax_rounds_half_up_to_cents(self):
        totals = compute_totals([(Decimal("0.05"), 1)])
        assert totals["tax"] == Decimal("0.01")
        assert totals["total"] == totals["subtotal"] + totals["tax"]

    def test_empty(self):
        totals = compute_totals([])
        assert totals["total"] == Decimal("0.00")

    def test_custom_rate(self):
        assert compute_totals([(Decimal("10"), 1)], tax_rate=Decimal("0.2"))["total"] == Decimal("12.00")

    def test_to_money_accepts_floats(self):
        assert to_money(1.005) == Decimal("1.01")


class TestCart:
    def test_create_and_read(self, client, cart_id, dining_table):
        response = client.get(f"{API}/cart/{cart_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["cart"]["table_id"] == dining_table.id
        assert data["cart"]["order_type"] == "dine_in"
        assert len(data["items"]) == 2
        assert data["totals"] == {"subtotal": 29.0, "tax": 2.9, "total": 31.9}

    def test_totals_follow_menu_price(self, client, cart_id, menu, db_session):
        menu["Burger"].price = Decimal("15.00")
        db_session.commit()

        totals = client.get(f"{API}/cart/{cart_id}").json()["totals"]

        assert totals["subtotal"] == pytest.approx(34.00)
        assert totals["total"] == pytest.approx(37.40)

    def test_unknown_cart(self, client):
        response = client.get(f"{API}/cart/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Cart not found"}

    def test_unknown_tenant(self, client, menu):
        response = client.post(
            f"{API}/cart",
            json={"tenant_code": "nowhere", "order_type": "takeaway", "items": [{"menu_item_id": menu["Fries"].id, "qty": 1}]},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Tenant not found"}

    def test_inactive_tenant(self, client, tenant, menu, db_session):
        tenant.is_active = False
        db_session.commit()
        response = client.post(
            f"{API}/cart",
            json={"tenant_code": tenant.code, "order_type": "takeaway", "items": [{"menu_item_id": menu["Fries"].id, "qty": 1}]},
        )
        assert response.status_code == 404

    def test_menu_item_of_other_tenant(self, client, other_tenant, menu):
        response = client.post(
            f"{API}/cart",
            json={"tenant_code": other_tenant.code, "order_type": "takeaway", "items": [{"menu_item_id": menu["Fries"].id, "qty": 1}]},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("qty", [0, 100])
    def test_quantity_bounds(self, client, tenant, menu, qty):
        response = client.post(
            f"{API}/cart",
            json={"tenant_code": tenant.code, "order_type": "takeaway", "items": [{"menu_item_id": menu["Fries"].id, "qty": qty}]},
        )
        assert response.status_code == 400

    def test_empty_items(self, client, tenant):
        response = client.post(f"{API}/cart", json={"tenant_code": tenant.code, "order_type": "takeaway", "items": []})
        assert response.status_code == 400


class TestCheckout:
    def _intent(self, client, cart_id, provider="mock"):
        return client.post(f"{API}/checkout/create-intent", json={"cart_id": cart_id, "provider": provider})

    def test_create_intent(self, client, cart_id):
        response = self._intent(client, cart_id)

        assert response.status_code == 200
        data = response.json()
        assert data["intent"]["amount"] == pytest.approx(31.90)
        assert data["intent"]["status"] == "requires_payment_method"
        assert data["intent"]["currency"] == "USD"
        assert data["client_secret"] == f"mock_{data['intent']['id']}"
        assert data["provider_params"] == {"mock": True}

    def test_create_intent_unknown_cart(self, client):
        assert self._intent(client, "missing").status_code == 404

    def test_confirm_creates_one_order(self, client, cart_id, menu, db_session):
        intent_id = self._intent(client, cart_id).json()["intent"]["id"]

        # Price changes between intent and confirm are snapshotted at confirm time
        menu["Fries"].price = Decimal("5.00")
        db_session.commit()

        response = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "succeeded"

        order = db_session.query(Order).filter(Order.id == data["order_id"]).one()
        assert order.total_amount == Decimal("31.90")
        assert order.payment_intent_id == intent_id
        assert order.payment_status == "paid"
        items = db_session.query(OrderItem).filter(OrderItem.order_id == order.id).all()
        assert len(items) == 2
        fries = next(i for i in items if i.menu_item_id == menu["Fries"].id)
        assert fries.unit_price == Decimal("5.00")

        intent = db_session.get(PaymentIntent, intent_id)
        assert intent.status == "succeeded"
        assert intent.order_id == order.id

    def test_confirm_twice_returns_same_order(self, client, cart_id, db_session):
        intent_id = self._intent(client, cart_id).json()["intent"]["id"]

        first = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id}).json()
        second = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id}).json()

        assert first["order_id"] == second["order_id"]
        assert db_session.query(Order).count() == 1

    def test_confirm_losing_race_returns_winning_order(self, client, cart_id, tenant, db_session):
        intent_id = self._intent(client, cart_id).json()["intent"]["id"]
        # Another confirm has inserted its order but not yet linked the intent
        winner = Order(tenant_id=tenant.id, total_amount=Decimal("31.90"), payment_intent_id=intent_id)
        db_session.add(winner)
        db_session.commit()

        response = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id})

        assert response.status_code == 200
        assert response.json()["order_id"] == winner.id
        assert db_session.query(Order).count() == 1
        assert db_session.query(OrderItem).count() == 0

    def test_confirm_non_mock_not_implemented(self, client, cart_id):
        intent_id = self._intent(client, cart_id, provider="stripe").json()["intent"]["id"]

        response = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id})

        assert response.status_code == 501
        assert response.json() == {"error": "Provider not implemented", "reason": "not_implemented"}

    def test_non_mock_intent_has_no_client_secret(self, client, cart_id):
        data = self._intent(client, cart_id, provider="razorpay").json()
        assert data["client_secret"] is None
        assert data["provider_params"] == {}

    def test_confirm_unknown_intent(self, client):
        response = client.post(f"{API}/checkout/confirm", json={"intent_id": "nope"})
        assert response.status_code == 404

    def test_confirm_canceled_intent(self, client, cart_id, db_session):
        intent_id = self._intent(client, cart_id).json()["intent"]["id"]
        client.post(f"{API}/checkout/cancel", json={"intent_id": intent_id})

        response = client.post(f"{API}/checkout/confirm", json={"intent_id": intent_id})

        assert response.status_code == 400
        assert db_session.query(Order).count() == 0

    def test_cancel_is_repeatable(self, client, cart_id, db_session):
        intent_id = self._intent(client, cart_id).json()["intent"]["id"]

        for _ in range(2):
            response = client.post(f"{API}/checkout/cancel", json={"intent_id": intent_id})
            assert response.status_code == 200
            assert response.json() == {"status": "canceled"}

        assert db_session.get(PaymentIntent, intent_id).status == "canceled"

    def test_cancel_unknown_intent_succeeds(self, client):
        response = client.post(f"{API}/checkout/cancel", json={"intent_id": "ghost"})
        assert response.status_code == 200
        assert response.json() == {"status": "canceled"}
