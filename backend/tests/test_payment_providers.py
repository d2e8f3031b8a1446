"""Multi-provider admin and webhook acknowledgement tests."""

import asyncio

import pytest

from app.models.payment import PaymentProviderConfig
from app.services.payment_service import PaymentService

API = "/api/v1"


def _create(client, headers, **overrides):
    body = {"provider": "mock", "display_name": "Mock"}
    body.update(overrides)
    return client.post(f"{API}/payments/providers", json=body, headers=headers)


class TestProviderAdmin:
    def test_create_hides_secret(self, client, auth_headers, db_session):
        response = _create(client, auth_headers, provider="stripe", display_name="Stripe", secret_key="sk_hidden")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "stripe"
        assert data["is_enabled"] is True
        assert data["is_default"] is False
        assert "secret_key" not in data
        assert "sk_hidden" not in response.text
        assert db_session.query(PaymentProviderConfig).one().secret_key == "sk_hidden"

    def test_list_default_first(self, client, auth_headers):
        _create(client, auth_headers, display_name="First")
        second = _create(client, auth_headers, provider="stripe", display_name="Second", is_default=True).json()

        providers = client.get(f"{API}/payments/providers", headers=auth_headers).json()["providers"]

        assert [p["display_name"] for p in providers] == ["Second", "First"]
        assert providers[0]["id"] == second["id"]

    def test_only_one_default(self, client, auth_headers, db_session):
        first = _create(client, auth_headers, display_name="A", is_default=True).json()
        _create(client, auth_headers, display_name="B", is_default=True)

        defaults = db_session.query(PaymentProviderConfig).filter(PaymentProviderConfig.is_default == True).all()
        assert len(defaults) == 1
        assert defaults[0].display_name == "B"

        response = client.post(f"{API}/payments/providers/{first['id']}/make-default", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["is_default"] is True
        db_session.expire_all()
        defaults = db_session.query(PaymentProviderConfig).filter(PaymentProviderConfig.is_default == True).all()
        assert [d.id for d in defaults] == [first["id"]]

    def test_patch(self, client, auth_headers):
        created = _create(client, auth_headers).json()

        response = client.patch(
            f"{API}/payments/providers/{created['id']}",
            json={"display_name": "Renamed", "is_enabled": False},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["display_name"] == "Renamed"
        assert response.json()["is_enabled"] is False

    def test_patch_clears_optional_fields(self, client, auth_headers, db_session):
        created = _create(client, auth_headers, provider="stripe", publishable_key="pk_old").json()

        response = client.patch(
            f"{API}/payments/providers/{created['id']}",
            json={"publishable_key": None, "display_name": None},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["display_name"] is None
        row = db_session.query(PaymentProviderConfig).one()
        db_session.refresh(row)
        assert row.publishable_key is None
        assert row.provider == "stripe"

    def test_patch_rejects_null_for_required_field(self, client, auth_headers):
        created = _create(client, auth_headers).json()
        response = client.patch(
            f"{API}/payments/providers/{created['id']}",
            json={"is_enabled": None},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "is_enabled cannot be null"

    def test_patch_without_fields(self, client, auth_headers):
        created = _create(client, auth_headers).json()
        response = client.patch(f"{API}/payments/providers/{created['id']}", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "No updates provided"

    def test_patch_other_tenant(self, client, auth_headers, other_tenant_headers):
        created = _create(client, auth_headers).json()
        response = client.patch(
            f"{API}/payments/providers/{created['id']}",
            json={"display_name": "Hijack"},
            headers=other_tenant_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Payment provider not found"

    def test_make_default_unknown(self, client, auth_headers):
        response = client.post(f"{API}/payments/providers/missing/make-default", headers=auth_headers)
        assert response.status_code == 404

    def test_admin_requires_manager(self, client, staff_headers):
        assert _create(client, staff_headers).status_code == 403
        assert client.get(f"{API}/payments/providers", headers=staff_headers).status_code == 200

    def test_disabled_provider_not_active(self, client, auth_headers, db_session, tenant):
        created = _create(client, auth_headers, is_default=True).json()
        client.patch(f"{API}/payments/providers/{created['id']}", json={"is_enabled": False}, headers=auth_headers)

        assert PaymentService(db_session).get_config(tenant.id) == {"configured": False}


class TestWebhooks:
    def test_unconfigured(self, client, auth_headers):
        response = client.post(f"{API}/payments/webhook/stripe", content=b"{}", headers=auth_headers)
        assert response.status_code == 202
        assert response.json() == {"message": "Webhook received but provider not configured"}

    def test_mock_processed(self, client, auth_headers):
        client.put(f"{API}/payments/config", json={"provider": "mock"}, headers=auth_headers)
        response = client.post(f"{API}/payments/webhook/mock", content=b"{}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Mock webhook processed"}

    def test_other_provider_only_acknowledged(self, client, auth_headers):
        client.put(f"{API}/payments/config", json={"provider": "mock"}, headers=auth_headers)
        response = client.post(f"{API}/payments/webhook/stripe", content=b"{}", headers=auth_headers)
        assert response.status_code == 202
        assert response.json() == {"message": "Webhook received"}

    def test_internal_failure_acknowledged(self, client, auth_headers, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("provider exploded")

        monkeypatch.setattr(PaymentService, "handle_webhook", boom)
        response = client.post(f"{API}/payments/webhook/mock", content=b"{}", headers=auth_headers)
        assert response.status_code == 202
        assert response.json() == {"message": "Webhook received but could not process"}

    def test_processing_runs_in_worker_thread(self, client, auth_headers, monkeypatch):
        seen = {}

        def record(self, tenant_id, provider, body, signature=None):
            try:
                asyncio.get_running_loop()
                seen["on_event_loop"] = True
            except RuntimeError:
                seen["on_event_loop"] = False
            return 200, "Mock webhook processed"

        monkeypatch.setattr(PaymentService, "handle_webhook", record)
        response = client.post(f"{API}/payments/webhook/mock", content=b"{}", headers=auth_headers)

        assert response.status_code == 200
        assert seen == {"on_event_loop": False}

    @pytest.mark.parametrize("provider", ["stripe", "razorpay"])
    def test_requires_tenant_token(self, client, provider):
        response = client.post(f"{API}/payments/webhook/{provider}", content=b"{}")
        assert response.status_code == 401
