"""Analytics tests: windows, funnel, peak hours, revenue and fulfillment."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.errors import ValidationFailed
from app.models.order import OrderStatusEvent
from app.models.payment import PaymentEvent, PaymentIntent
from app.services.analytics_service import bucket_key, granularity_for, window_start

API = "/api/v1"

NOW = datetime(2026, 5, 17, 15, 30, tzinfo=timezone.utc)


def _yesterday(hour: int, minute: int = 0) -> datetime:
    moment = datetime.now(timezone.utc) - timedelta(days=1)
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


@pytest.fixture
def add_intent(db_session, tenant):
    def _add(status: str, amount: str = "10.00", **fields) -> PaymentIntent:
        intent = PaymentIntent(
            tenant_id=tenant.id,
            provider="mock",
            amount=Decimal(amount),
            currency="USD",
            status=status,
            **fields,
        )
        db_session.add(intent)
        db_session.commit()
        return intent

    return _add


class TestWindows:
    def test_rolling(self):
        assert window_start("30d", now=NOW) == NOW - timedelta(days=30)

    def test_month_to_date(self):
        assert window_start("mtd", now=NOW) == datetime(2026, 5, 1, tzinfo=timezone.utc)

    def test_quarter_to_date(self):
        assert window_start("qtd", now=NOW) == datetime(2026, 4, 1, tzinfo=timezone.utc)

    def test_year_to_date(self):
        assert window_start("ytd", now=NOW) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_invalid(self):
        with pytest.raises(ValidationFailed) as excinfo:
            window_start("1y")
        assert excinfo.value.reason == "invalid_window"

    def test_weekly_buckets_start_monday(self):
        assert granularity_for("90d") == "week"
        assert granularity_for("30d") == "day"
        # 2026-05-17 is a Sunday
        assert bucket_key(NOW, "week") == date(2026, 5, 11)
        assert bucket_key(NOW, "day") == date(2026, 5, 17)

    def test_invalid_window_over_http(self, client, auth_headers):
        response = client.get(f"{API}/analytics/peak-hours", params={"window": "forever"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid window parameter", "reason": "invalid_window"}

    def test_requires_tenant(self, client, no_tenant_headers):
        response = client.get(f"{API}/analytics/payment-funnel", headers=no_tenant_headers)
        assert response.status_code == 401


class TestPaymentFunnel:
    def test_seven_stages_in_order(self, client, auth_headers):
        data = client.get(f"{API}/analytics/payment-funnel", headers=auth_headers).json()

        assert data["window"] == "7d"
        assert [row["stage"] for row in data["rows"]] == [
            "created", "requires_action", "confirmed", "processing", "succeeded", "failed", "canceled",
        ]
        assert [row["stage_order"] for row in data["rows"]] == list(range(1, 8))
        assert all(row["intents"] == 0 and row["conversion_rate"] == 0 for row in data["rows"])

    def test_counts_and_rates(self, client, auth_headers, add_intent):
        add_intent("requires_capture", "5.00")
        add_intent("succeeded", "10.00")
        add_intent("succeeded", "15.50")
        add_intent("failed", "7.00")

        rows = {
            row["stage"]: row
            for row in client.get(f"{API}/analytics/payment-funnel", headers=auth_headers).json()["rows"]
        }

        assert rows["created"]["intents"] == 4
        assert rows["created"]["conversion_rate"] == pytest.approx(1.0)
        assert rows["succeeded"]["intents"] == 2
        assert rows["succeeded"]["amount"] == pytest.approx(25.50)
        assert rows["succeeded"]["conversion_rate"] == pytest.approx(0.5)
        assert rows["failed"]["conversion_rate"] == pytest.approx(0.25)

    def test_intent_counted_in_every_stage_it_reached(self, client, auth_headers, add_intent):
        intent = add_intent("requires_capture", "20.00")
        add_intent("requires_capture", "5.00")
        for event_type in ("payment_started", "payment_succeeded"):
            response = client.post(
                f"{API}/payments/intents/{intent.id}/emit-event",
                json={"event_type": event_type},
                headers=auth_headers,
            )
            assert response.status_code == 200

        rows = {
            row["stage"]: row
            for row in client.get(f"{API}/analytics/payment-funnel", headers=auth_headers).json()["rows"]
        }

        assert rows["created"]["intents"] == 2
        assert rows["processing"]["intents"] == 1
        assert rows["processing"]["amount"] == pytest.approx(20.00)
        assert rows["succeeded"]["intents"] == 1
        assert rows["succeeded"]["conversion_rate"] == pytest.approx(0.5)
        assert rows["failed"]["intents"] == 0

    def test_missing_event_table_falls_back_to_status(self, client, auth_headers, add_intent, db_engine):
        add_intent("succeeded")
        PaymentEvent.__table__.drop(db_engine)

        rows = {
            row["stage"]: row
            for row in client.get(f"{API}/analytics/payment-funnel", headers=auth_headers).json()["rows"]
        }

        assert rows["created"]["intents"] == 1
        assert rows["succeeded"]["intents"] == 1

    def test_old_intents_outside_window(self, client, auth_headers, add_intent):
        add_intent("succeeded", created_at=datetime.now(timezone.utc) - timedelta(days=20))
        rows = client.get(f"{API}/analytics/payment-funnel", headers=auth_headers).json()["rows"]
        assert sum(row["intents"] for row in rows) == 0


class TestPeakHours:
    def test_twenty_four_hours(self, client, auth_headers, tenant, make_order):
        make_order(tenant.id, total="12.00", created_at=_yesterday(9, 15))
        make_order(tenant.id, total="8.00", created_at=_yesterday(9, 45))
        make_order(tenant.id, total="30.00", created_at=_yesterday(19))
        make_order(tenant.id, total="99.00", created_at=_yesterday(19), current_status="cancelled")

        rows = client.get(f"{API}/analytics/peak-hours", headers=auth_headers).json()["rows"]

        assert [row["hour"] for row in rows] == list(range(24))
        assert rows[9]["orders"] == 2
        assert rows[9]["revenue"] == pytest.approx(20.00)
        assert rows[19]["orders"] == 1
        assert rows[19]["revenue"] == pytest.approx(30.00)
        assert rows[3]["orders"] == 0


class TestRevenue:
    def test_series_is_zero_filled(self, client, auth_headers, tenant, make_order):
        make_order(tenant.id, total="25.00", created_at=_yesterday(12))

        data = client.get(f"{API}/analytics/revenue-series", headers=auth_headers).json()

        assert data["granularity"] == "day"
        # Start day through today inclusive
        assert len(data["series"]) == 8
        yesterday = _yesterday(12).date().isoformat()
        points = {p["period"]: p for p in data["series"]}
        assert points[yesterday]["orders"] == 1
        assert points[yesterday]["revenue"] == pytest.approx(25.00)
        assert sum(p["orders"] for p in data["series"]) == 1

    def test_series_weekly(self, client, auth_headers):
        data = client.get(f"{API}/analytics/revenue-series", params={"window": "90d"}, headers=auth_headers).json()
        assert data["granularity"] == "week"
        assert all(date.fromisoformat(p["period"]).weekday() == 0 for p in data["series"])

    def test_breakdown(self, client, auth_headers, tenant, make_order, add_intent):
        intent = add_intent("succeeded", "40.00")
        make_order(tenant.id, total="40.00", order_type="dine_in", payment_intent_id=intent.id)
        make_order(tenant.id, total="15.00", order_type="takeaway")
        make_order(tenant.id, total="5.00", order_type="takeaway", current_status="cancelled")

        data = client.get(f"{API}/analytics/revenue-breakdown", headers=auth_headers).json()

        by_type = {row["key"]: row for row in data["by_order_type"]}
        assert by_type["dine_in"]["revenue"] == pytest.approx(40.00)
        assert by_type["takeaway"]["orders"] == 1
        assert [row["key"] for row in data["by_provider"]] == ["mock", "direct"]


class TestFulfillment:
    def test_stage_averages(self, client, auth_headers, tenant, make_order, db_session):
        start = _yesterday(10)
        order = make_order(tenant.id, created_at=start)
        make_order(tenant.id, created_at=start)  # never advanced
        for seq, (status, minutes) in enumerate((("preparing", 5), ("ready", 20), ("served", 25)), start=1):
            db_session.add(OrderStatusEvent(
                tenant_id=tenant.id,
                order_id=order.id,
                seq=seq,
                from_status="new",
                to_status=status,
                created_at=start + timedelta(minutes=minutes),
            ))
        db_session.commit()

        rows = client.get(f"{API}/analytics/fulfillment-timeline", headers=auth_headers).json()["rows"]

        assert rows == [{
            "day": start.date().isoformat(),
            "orders": 1,
            "avg_queue_minutes": 5.0,
            "avg_prep_minutes": 15.0,
            "avg_serve_minutes": 5.0,
        }]

    def test_empty(self, client, auth_headers):
        data = client.get(f"{API}/analytics/fulfillment-timeline", params={"window": "ytd"}, headers=auth_headers).json()
        assert data == {"window": "ytd", "rows": []}
