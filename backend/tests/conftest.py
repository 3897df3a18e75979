"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Point the application engine at SQLite before any app module is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Select, Update, create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kds_api.main import app
from kds_api.models import Base, Category, MenuItem, Order, OrderItem
from kds_shared.infrastructure.db import get_db
from kds_shared.infrastructure.events import get_event_circuit_breaker
from kds_shared.security.auth import sign_jwt
from kds_shared.security.rate_limit import limiter


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def executed_sql():
    """
    SELECT and UPDATE statements run during the test, rendered as
    PostgreSQL SQL (SQLite drops FOR UPDATE when compiling).
    """
    seen: list[str] = []

    def capture(conn, clauseelement, multiparams, params, execution_options):
        if isinstance(clauseelement, (Select, Update)):
            seen.append(str(clauseelement.compile(dialect=postgresql.dialect())))

    event.listen(engine, "before_execute", capture)
    yield seen
    event.remove(engine, "before_execute", capture)


@pytest.fixture(autouse=True)
def published_events():
    """
    Replace Redis with a recorder. Yields the publish mock; each call is
    (redis_client, channel, event).
    """
    get_event_circuit_breaker().reset()
    publish = AsyncMock(return_value=1)
    with patch(
        "kds_shared.infrastructure.events.routing.get_redis_pool",
        new=AsyncMock(return_value=object()),
    ), patch("kds_shared.infrastructure.events.routing.publish_event", new=publish):
        yield publish


@pytest.fixture(autouse=True)
def no_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_headers(user_id: int, *roles: str) -> dict[str, str]:
    token = sign_jwt({"sub": str(user_id), "roles": list(roles)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def chef_headers():
    return make_headers(3, "CHEF")


@pytest.fixture
def bartender_headers():
    return make_headers(4, "BARTENDER")


@pytest.fixture
def manager_headers():
    return make_headers(2, "MANAGER")


@pytest.fixture
def waiter_headers():
    return make_headers(5, "WAITER")


@pytest.fixture
def admin_headers():
    return make_headers(1, "ADMIN")


@pytest.fixture
def menu(db_session):
    """
    Two categories per station and one item each.
    Returns a dict of menu item ids by short name.
    """
    mains = Category(name="Mains", station="KITCHEN")
    desserts = Category(name="Desserts", station="KITCHEN")
    cocktails = Category(name="Cocktails", station="BAR")
    db_session.add_all([mains, desserts, cocktails])
    db_session.flush()

    items = {
        "steak": MenuItem(category_id=mains.id, title="Steak Frites", price_cents=2900),
        "salmon": MenuItem(category_id=mains.id, title="Grilled Salmon", price_cents=2400),
        "cake": MenuItem(category_id=desserts.id, title="Cheesecake", price_cents=900),
        "negroni": MenuItem(category_id=cocktails.id, title="Negroni", price_cents=1400),
        "sold_out": MenuItem(
            category_id=cocktails.id, title="Mojito", price_cents=1200, is_available=False
        ),
    }
    db_session.add_all(items.values())
    db_session.commit()
    return {name: item.id for name, item in items.items()}


def make_order(db_session, menu_ids, order_number="A-100", table_number=4, **fields):
    """Insert an order with one line per menu item id (no fan-out)."""
    order = Order(order_number=order_number, table_number=table_number, **fields)
    db_session.add(order)
    db_session.flush()
    for menu_item_id in menu_ids:
        menu_item = db_session.get(MenuItem, menu_item_id)
        db_session.add(
            OrderItem(
                order_id=order.id,
                menu_item_id=menu_item.id,
                menu_title=menu_item.title,
                category=menu_item.category.name,
                quantity=1,
                unit_price_cents=menu_item.price_cents,
            )
        )
    db_session.commit()
    return order.id


@pytest.fixture
def mixed_order(db_session, menu):
    """An order with kitchen and bar items, not yet fanned out."""
    return make_order(db_session, [menu["steak"], menu["cake"], menu["negroni"]])


@pytest.fixture
def fanned_out(db_session, mixed_order):
    """The mixed order after fan-out: (order_id, {station: ticket_id})."""
    from kds_api.services.domain import FanoutService

    result = FanoutService(db_session).fan_out(mixed_order)
    return mixed_order, {station: ticket_id for ticket_id, station in result.created_ticket_ids}
