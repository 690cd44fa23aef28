"""
Pytest fixtures for storekeeper backend tests.

Provides test database setup, two tenants, catalog/customer factories,
and an authenticated test client.
"""

import pytest

from storekeeper import create_app
from storekeeper.extensions import db
from storekeeper.models import Customer, Product, StoreOwner
from storekeeper.services.auth_service import hash_password
from storekeeper.services.session_service import create_session

PASSWORD = "Password123!"
# bcrypt is slow; hash once per run
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'DB_RETRY_BACKOFF_SECONDS': 0,
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

        db.session.rollback()


@pytest.fixture(scope='function')
def owner_a(db_session):
    """First tenant."""
    owner = StoreOwner(name="Acme Supplies", email="owner@acme.test", password_hash=PASSWORD_HASH)
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Second tenant."""
    owner = StoreOwner(name="Beta Traders", email="owner@beta.test", password_hash=PASSWORD_HASH)
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(owner, "A1", quantity=10, price_cents=500)."""
    def _make(owner, code, quantity=10, price_cents=500, cost_cents=300, name=None):
        product = Product(
            owner_id=owner.id,
            code=code,
            name=name or f"PRODUCT {code}",
            category="GENERAL",
            price_cents=price_cents,
            cost_cents=cost_cents,
            quantity=quantity,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: make_customer(owner, blacklisted=False)."""
    counter = {"n": 0}

    def _make(owner, blacklisted=False):
        counter["n"] += 1
        customer = Customer(
            owner_id=owner.id,
            customer_no=f"CRM202601-{counter['n']:04d}",
            first_name="Juan",
            last_name="Dela Cruz",
            email=f"customer{counter['n']}@example.test",
            phone="09170000000",
            is_blacklisted=blacklisted,
        )
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def customer_a(make_customer, owner_a):
    return make_customer(owner_a)


@pytest.fixture(scope='function')
def product_a(make_product, owner_a):
    """Code A1, stock 10, price 5.00."""
    return make_product(owner_a, "A1", quantity=10, price_cents=500)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(owner_a):
    _, token = create_session(owner_a.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def headers_b(owner_b):
    _, token = create_session(owner_b.id)
    return auth_headers(token)


def order_payload(customer, lines, status="SUBMIT", credit_cents=0, **extra):
    """Build an order body; lines are (code, quantity, price_cents) tuples."""
    body = {
        "customer_id": customer.id,
        "status": status,
        "credit_cents": credit_cents,
        "products": [
            {"code": code, "name": f"product {code}", "quantity": qty, "price_cents": price, "cost_cents": 100}
            for code, qty, price in lines
        ],
    }
    body.update(extra)
    return body


def return_payload(po_no, lines, reason=""):
    """Build a purchase return body; lines are (code, quantity, price_cents) tuples."""
    return {
        "order": po_no,
        "returned_products": [
            {"code": code, "name": f"product {code}", "quantity": qty, "price_cents": price}
            for code, qty, price in lines
        ],
        "reason": reason,
    }
