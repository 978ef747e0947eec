"""
Pytest fixtures for the bazaar backend tests.

Provides a per-test application on an in-memory database, a seeded
in-memory marketplace gateway, a controllable clock and a test client.
"""

from datetime import datetime, timedelta

import pytest

from bazaar import create_app
from bazaar.config import TestConfig
from bazaar.gateway import InMemoryGateway
from bazaar.services.registry import get_services


SELLER = "seller-0001"
BUYER = "buyer-0042"
OTHER_BUYER = "buyer-0077"
OPERATOR = "operator-0009"
ADMIN = "admin-0003"
UNVERIFIED = "buyer-0099"

TOKENS = {
    SELLER: "seller-token",
    BUYER: "buyer-token",
    OTHER_BUYER: "other-buyer-token",
    OPERATOR: "operator-token",
    ADMIN: "admin-token",
    UNVERIFIED: "unverified-token",
}

LAMP = "listing-lamp"
CHAIR = "listing-chair"
ORPHAN = "listing-orphan"

NOW = datetime(2026, 3, 1, 12, 0, 0)


class FakeClock:
    """Callable clock the services read instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def gateway():
    """Marketplace stand-in: one seller, two buyers, operators and three listings."""
    gw = InMemoryGateway()
    gw.add_user(SELLER, token=TOKENS[SELLER])
    gw.add_user(BUYER, token=TOKENS[BUYER])
    gw.add_user(OTHER_BUYER, token=TOKENS[OTHER_BUYER])
    gw.add_user(OPERATOR, scopes=["operator"], token=TOKENS[OPERATOR])
    gw.add_user(ADMIN, scopes=["admin"], token=TOKENS[ADMIN])
    gw.add_user(UNVERIFIED, email_verified=False, token=TOKENS[UNVERIFIED])

    # Seller only referenced through relationships, ids wrapped in uuid objects
    gw.add_listing({
        "id": {"uuid": LAMP},
        "type": "listing",
        "attributes": {"title": "Brass Desk Lamp", "price": {"amount": 10000, "currency": "GBP"}},
        "relationships": {"author": {"data": {"id": {"uuid": SELLER}, "type": "user"}}},
    })
    # Author included inline
    gw.add_listing({
        "id": CHAIR,
        "author": {"id": {"uuid": SELLER}},
        "attributes": {"title": "Oak Chair", "price": {"amount": 4500, "currency": "GBP"}},
    })
    # No author anywhere
    gw.add_listing({
        "id": ORPHAN,
        "attributes": {"title": "Mystery Box", "price": {"amount": 100, "currency": "GBP"}},
    })
    return gw


@pytest.fixture
def app(gateway, clock):
    """Create application for testing."""
    return create_app(TestConfig, gateway=gateway, clock=clock)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def services(app_ctx):
    """The app's service registry, inside an application context."""
    return get_services()


@pytest.fixture
def actor(gateway):
    """Resolve a seeded user id to the Actor the gateway would produce."""
    def _actor(user_id: str):
        return gateway.resolve_current_actor(TOKENS[user_id])
    return _actor


@pytest.fixture
def headers():
    """Authorization headers for a seeded user id."""
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {TOKENS[user_id]}"}
    return _headers
