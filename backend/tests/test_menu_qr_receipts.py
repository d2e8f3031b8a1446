"""Public menu, QR table context and receipt request tests."""

import logging
from decimal import Decimal

from app.models.menu import MenuCategory, MenuItem

API = "/api/v1"


class TestPublicMenu:
    def test_menu_ordering(self, client, tenant, menu):
        response = client.get(f"{API}/menu/public", params={"tenantCode": tenant.code})

        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data["categories"]] == ["Mains", "Sides"]
        assert [i["name"] for i in data["items"]] == ["Burger", "Salmon", "Fries"]
        burger = data["items"][0]
        assert burger["price"] == 12.5
        assert burger["category_name"] == "Mains"

    def test_inactive_rows_hidden(self, client, tenant, menu, db_session):
        menu["Salmon"].is_active = False
        db_session.add(MenuCategory(tenant_id=tenant.id, name="Secret", is_active=False, sort_order=0))
        db_session.commit()

        data = client.get(f"{API}/menu/public", params={"tenantCode": tenant.code}).json()

        assert "Salmon" not in [i["name"] for i in data["items"]]
        assert "Secret" not in [c["name"] for c in data["categories"]]

    def test_unavailable_items_listed_as_unavailable(self, client, tenant, menu, db_session):
        menu["Fries"].is_available = False
        db_session.commit()
        items = client.get(f"{API}/menu/public", params={"tenantCode": tenant.code}).json()["items"]
        assert next(i for i in items if i["name"] == "Fries")["is_available"] is False

    def test_uncategorized_items_not_listed(self, client, tenant, menu, db_session):
        db_session.add(MenuItem(tenant_id=tenant.id, name="Loose", price=Decimal("1.00")))
        db_session.commit()
        items = client.get(f"{API}/menu/public", params={"tenantCode": tenant.code}).json()["items"]
        assert "Loose" not in [i["name"] for i in items]

    def test_unknown_tenant(self, client):
        response = client.get(f"{API}/menu/public", params={"tenantCode": "ghost"})
        assert response.status_code == 404
        assert response.json() == {"error": "Tenant not found"}

    def test_tenant_code_required(self, client):
        assert client.get(f"{API}/menu/public").status_code == 400


class TestQrContext:
    def test_context(self, client, tenant, dining_table):
        response = client.get(f"{API}/qr/{tenant.code}/{dining_table.table_number}")

        assert response.status_code == 200
        assert response.json() == {
            "tenant": {"id": tenant.id, "name": "Harbor Grill", "code": "harbor", "branding": {"color": "#0a3d62"}},
            "table": {"id": dining_table.id, "number": "12", "section": "Patio", "capacity": 4},
        }

    def test_unknown_table(self, client, tenant, dining_table):
        response = client.get(f"{API}/qr/{tenant.code}/99")
        assert response.status_code == 404
        assert response.json() == {"error": "Table not found"}

    def test_table_of_other_tenant(self, client, other_tenant, dining_table):
        assert client.get(f"{API}/qr/{other_tenant.code}/12").status_code == 404


class TestReceipts:
    def test_send(self, client, auth_headers, tenant, make_order, caplog):
        order = make_order(tenant.id)

        with caplog.at_level(logging.DEBUG):
            response = client.post(
                f"{API}/receipts/send",
                json={"order_id": order.id, "email": "guest@harborgrill.com", "phone": "+15550100"},
                headers=auth_headers,
            )

        assert response.status_code == 202
        assert response.json() == {
            "accepted": True,
            "message": "Receipt send request accepted",
            "order_id": order.id,
            "delivery_methods": {"email": True, "sms": True},
        }
        assert "guest@harborgrill.com" not in caplog.text
        assert "+15550100" not in caplog.text

    def test_send_email_only(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        data = client.post(
            f"{API}/receipts/send",
            json={"order_id": order.id, "email": "guest@harborgrill.com"},
            headers=auth_headers,
        ).json()
        assert data["delivery_methods"] == {"email": True, "sms": False}

    def test_send_bad_email(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        response = client.post(
            f"{API}/receipts/send",
            json={"order_id": order.id, "email": "not-an-email"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_invoice(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        response = client.post(f"{API}/receipts/invoice/{order.id}", headers=auth_headers)
        assert response.status_code == 202
        assert response.json()["message"] == "Invoice generation request accepted"
        assert "delivery_methods" not in response.json()

    def test_print_default_printer(self, client, auth_headers, tenant, make_order):
        order = make_order(tenant.id)
        response = client.post(f"{API}/receipts/print", json={"order_id": order.id}, headers=auth_headers)
        assert response.status_code == 202
        assert response.json()["printer_id"] == "default"

    def test_other_tenant_order(self, client, other_tenant_headers, tenant, make_order):
        order = make_order(tenant.id)
        for response in (
            client.post(f"{API}/receipts/send", json={"order_id": order.id}, headers=other_tenant_headers),
            client.post(f"{API}/receipts/invoice/{order.id}", headers=other_tenant_headers),
            client.post(f"{API}/receipts/print", json={"order_id": order.id}, headers=other_tenant_headers),
        ):
            assert response.status_code == 404
            assert response.json() == {"error": "Order not found"}
