"""Pytest configuration and fixtures."""

import os

# The app engine is only used by the lifespan hook and live views; keep it off disk.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from typing import Callable, Generator, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.models.menu import MenuCategory, MenuItem
from app.models.order import Order, OrderItem
from app.models.tenant import DiningTable, Tenant
from app.services.payment_config_store import PaymentConfigStore
from app.services.realtime import hub

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Process-wide state (config fallback, hub subscribers) must not leak between tests."""
    PaymentConfigStore.reset_fallback()
    hub.reset()
    yield
    PaymentConfigStore.reset_fallback()
    hub.reset()


@pytest.fixture(scope="function")
def client(db_session: Session, session_factory, monkeypatch) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Live views open their own sessions
    monkeypatch.setattr("app.main.SessionLocal", session_factory)
    # Disable rate limiting during tests to avoid flaky failures
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Tenants, tables and menu
# ---------------------------------------------------------------------------

@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    tenant = Tenant(code="harbor", name="Harbor Grill", is_active=True, branding={"color": "#0a3d62"})
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    tenant = Tenant(code="uptown", name="Uptown Diner", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def dining_table(db_session: Session, tenant: Tenant) -> DiningTable:
    table = DiningTable(tenant_id=tenant.id, table_number="12", section="Patio", capacity=4)
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def menu(db_session: Session, tenant: Tenant) -> dict:
    """Two categories and three items; returns them by name."""
    mains = MenuCategory(tenant_id=tenant.id, name="Mains", sort_order=1)
    sides = MenuCategory(tenant_id=tenant.id, name="Sides", sort_order=2)
    db_session.add_all([mains, sides])
    db_session.flush()

    burger = MenuItem(tenant_id=tenant.id, category_id=mains.id, name="Burger", price=Decimal("12.50"), sort_order=1)
    salmon = MenuItem(tenant_id=tenant.id, category_id=mains.id, name="Salmon", price=Decimal("18.00"), sort_order=2)
    fries = MenuItem(tenant_id=tenant.id, category_id=sides.id, name="Fries", price=Decimal("4.00"), sort_order=1)
    db_session.add_all([burger, salmon, fries])
    db_session.commit()
    return {"Mains": mains, "Sides": sides, "Burger": burger, "Salmon": salmon, "Fries": fries}


@pytest.fixture
def make_order(db_session: Session) -> Callable[..., Order]:
    """Insert an order directly, bypassing the API."""
    def _make(
        tenant_id: str,
        total: str = "20.00",
        menu_item: Optional[MenuItem] = None,
        quantity: int = 1,
        **fields,
    ) -> Order:
        order = Order(tenant_id=tenant_id, total_amount=Decimal(total), **fields)
        if menu_item is not None:
            order.items = [OrderItem(menu_item_id=menu_item.id, quantity=quantity, unit_price=menu_item.price)]
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def _bearer(**claims) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data=claims)}"}


@pytest.fixture
def auth_headers(tenant: Tenant) -> dict:
    """Manager token scoped to the main test tenant."""
    return _bearer(sub="staff-1", tenant_id=tenant.id, role="manager")


@pytest.fixture
def staff_headers(tenant: Tenant) -> dict:
    return _bearer(sub="staff-2", tenant_id=tenant.id, role="staff")


@pytest.fixture
def other_tenant_headers(other_tenant: Tenant) -> dict:
    return _bearer(sub="staff-9", tenant_id=other_tenant.id, role="owner")


@pytest.fixture
def no_tenant_headers() -> dict:
    return _bearer(sub="staff-3", role="manager")


@pytest.fixture
def ws_token(tenant: Tenant) -> str:
    return create_access_token(data={"sub": "staff-1", "tenant_id": tenant.id, "role": "staff"})
