# tests/conftest.py
"""
Shared fixtures.

The database URL and admin token are read once when ``storefront.config`` is
imported, so they are set here before anything from the package is loaded.
"""

import os
import sys
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'storefront_test.db')}"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["STRUCTURED_LOGS_ENABLED"] = "false"
os.environ["OBSERVABILITY_ENABLED"] = "true"
os.environ["CHECKOUT_DISCOUNT_SERVER_MODE"] = "reapply"
os.environ["CART_STORE_PATH"] = os.path.join(_TEST_DB_DIR, "cart.json")

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from storefront.config import Config
from storefront.database import Base, engine, SessionLocal
from storefront.models import DeliveryAddress, Product
from storefront.observability import reset_metrics
from storefront.services.notification_service import OrderNotificationService


@pytest.fixture(autouse=True)
def reset_observability():
    reset_metrics()
    OrderNotificationService().reset()
    yield
    OrderNotificationService().reset()


@pytest.fixture
def fresh_database():
    """Drop and recreate every table so each test starts empty."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine


@pytest.fixture
def db_session(fresh_database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory(fresh_database):
    return SessionLocal


@pytest.fixture
def client(fresh_database):
    from storefront.main import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {Config.ADMIN_TOKEN_HEADER: Config.ADMIN_TOKEN}


@pytest.fixture
def sample_products(db_session):
    products = [
        Product(product_code="MB-01", title="Snack Mystery Box", label="Bestseller", price="₹150", display_order=1),
        Product(product_code="MB-02", title="Dessert Mystery Box", label="New", price="₹249", display_order=2),
        Product(product_code="MB-03", title="Party Mystery Box", label="", price="₹1,299", display_order=3,
                is_in_stock=False),
    ]
    db_session.add_all(products)
    db_session.commit()
    return products


@pytest.fixture
def sample_addresses(db_session):
    addresses = [
        DeliveryAddress(name="Hostel Block A", display_order=1),
        DeliveryAddress(name="Library Gate", display_order=2),
    ]
    db_session.add_all(addresses)
    db_session.commit()
    return addresses


@pytest.fixture
def order_payload():
    return {
        "customerName": "Asha Verma",
        "address": "Hostel Block A",
        "mobile": "9876543210",
        "instagram": "asha.eats",
        "items": [
            {"productId": 1, "title": "Snack Mystery Box", "price": "₹150", "quantity": 2, "image": ""},
        ],
        "total": "₹339",
        "isFlashOffer": False,
        "flashOfferDiscount": 0,
        "isTryNowChallenge": False,
    }


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()
