"""
Pytest fixtures for stockledger tests.

Provides an in-memory database, two isolated accounts, default locations,
catalog fixtures and an authenticated test client.
"""

from datetime import datetime

import pytest
from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import (
    Counterparty,
    Location,
    ProductModel,
    ProductVariant,
    PromoCode,
    LOCATION_TYPE_SALES,
    LOCATION_TYPE_PROMO,
    LOCATION_TYPE_SOLD,
    LOCATION_TYPE_SCRAP,
    LOCATION_TYPE_BLOGGER,
)
from stockledger.services import account_service, directory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_ATTEMPTS': 2,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_account(db_session, name):
    account, token = account_service.create_account(name)
    directory_service.ensure_default_locations(account.id)
    db_session.commit()
    account.api_token = token
    return account


@pytest.fixture(scope='function')
def account_a(db_session):
    """Account A with its default locations. Plaintext token on .api_token."""
    return _make_account(db_session, "Account A")


@pytest.fixture(scope='function')
def account_b(db_session):
    """Account B (second, isolated account)."""
    return _make_account(db_session, "Account B")


@pytest.fixture(scope='function')
def auth_headers(account_a):
    return {"Authorization": f"Bearer {account_a.api_token}"}


class Locations:
    """Default locations of one account, by kind."""

    def __init__(self, db_session, account_id):
        def by_type(location_type):
            return db_session.query(Location).filter_by(
                account_id=account_id, type=location_type
            ).order_by(Location.id.asc()).first()

        self.sales = by_type(LOCATION_TYPE_SALES)
        self.promo = by_type(LOCATION_TYPE_PROMO)
        self.sold = by_type(LOCATION_TYPE_SOLD)
        self.scrap = by_type(LOCATION_TYPE_SCRAP)
        self.blogger = by_type(LOCATION_TYPE_BLOGGER)


@pytest.fixture(scope='function')
def locations_a(db_session, account_a):
    return Locations(db_session, account_a.id)


@pytest.fixture(scope='function')
def locations_b(db_session, account_b):
    return Locations(db_session, account_b.id)


@pytest.fixture(scope='function')
def model_a(db_session, account_a):
    model = ProductModel(account_id=account_a.id, name="Hoodie", brand="House")
    db_session.add(model)
    db_session.commit()
    return model


@pytest.fixture(scope='function')
def variant_a(db_session, account_a, model_a):
    """Plain (unmarked) variant priced 1000, cost 400."""
    variant = ProductVariant(
        account_id=account_a.id,
        model_id=model_a.id,
        sku="HOODIE-M-BLK",
        size="M",
        color="black",
        unit_price=1000,
        unit_cost=400,
    )
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def marked_variant_a(db_session, account_a, model_a):
    """Variant whose units each carry a mark code."""
    variant = ProductVariant(
        account_id=account_a.id,
        model_id=model_a.id,
        sku="HOODIE-L-BLK",
        size="L",
        color="black",
        unit_price=1200,
        unit_cost=500,
        is_marked=True,
    )
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def variant_b(db_session, account_b):
    model = ProductModel(account_id=account_b.id, name="Cap")
    db_session.add(model)
    db_session.flush()
    variant = ProductVariant(
        account_id=account_b.id,
        model_id=model.id,
        sku="CAP-1",
        unit_price=300,
        unit_cost=100,
    )
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def blogger_a(db_session, account_a):
    """Blogger counterparty with no location of its own yet."""
    counterparty = Counterparty(account_id=account_a.id, type="blogger", name="Anna Reviews")
    db_session.add(counterparty)
    db_session.commit()
    return counterparty


@pytest.fixture(scope='function')
def promo_a(db_session, account_a, blogger_a):
    promo = PromoCode(
        account_id=account_a.id,
        code="ANNA10",
        discount_type="percent",
        discount_value=10,
        blogger_id=blogger_a.id,
        starts_at=datetime(2026, 1, 1),
    )
    db_session.add(promo)
    db_session.commit()
    return promo
