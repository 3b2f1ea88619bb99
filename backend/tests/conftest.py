"""
Pytest fixtures for Kasir backend tests.

Provides test database setup, two tenants with users and products, and a
test client.
"""

from datetime import date, timedelta

import pytest

from kasir import create_app
from kasir.config import TestConfig
from kasir.extensions import db
from kasir.models import Customer, Product, Promotion, User, Vendor, VendorCategory
from kasir.models.auth import ROLE_CASHIER, ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from kasir.services.tenant_service import ActorContext
from kasir.services.user_service import hash_password

PASSWORD = "rahasia123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


def _make_vendor(db_session, name, categories):
    vendor = Vendor(
        name=name,
        status="active",
        commission_rate_bps=500,
        subscription_start=date.today() - timedelta(days=30),
        subscription_end=date.today() + timedelta(days=60),
    )
    db_session.add(vendor)
    db_session.flush()
    for category in categories:
        db_session.add(VendorCategory(vendor_id=vendor.id, name=category))
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def vendor_a(db_session):
    """Vendor A (first tenant): a coffee shop."""
    return _make_vendor(db_session, "Kopi Senja", ["Kopi", "Non-Kopi", "Cemilan"])


@pytest.fixture(scope='function')
def vendor_b(db_session):
    """Vendor B (second tenant): a burger stall."""
    return _make_vendor(db_session, "Burger Blenger", ["Makanan Berat", "Minuman"])


def _make_user(db_session, username, role, vendor_id=None):
    user = User(
        username=username,
        name=username.title(),
        role=role,
        vendor_id=vendor_id,
        password_hash=hash_password(PASSWORD, rounds=4),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def super_admin(db_session):
    return _make_user(db_session, "superadmin", ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def admin_a(db_session, vendor_a):
    return _make_user(db_session, "owner_a", ROLE_VENDOR_ADMIN, vendor_a.id)


@pytest.fixture(scope='function')
def cashier_a(db_session, vendor_a):
    return _make_user(db_session, "kasir_a", ROLE_CASHIER, vendor_a.id)


@pytest.fixture(scope='function')
def admin_b(db_session, vendor_b):
    return _make_user(db_session, "owner_b", ROLE_VENDOR_ADMIN, vendor_b.id)


@pytest.fixture(scope='function')
def actor_a(admin_a):
    """Vendor admin actor bound to vendor A."""
    return ActorContext(
        user_id=admin_a.id, role=ROLE_VENDOR_ADMIN, vendor_id=admin_a.vendor_id, username=admin_a.username
    )


@pytest.fixture(scope='function')
def cashier_actor_a(cashier_a):
    return ActorContext(
        user_id=cashier_a.id, role=ROLE_CASHIER, vendor_id=cashier_a.vendor_id, username=cashier_a.username
    )


@pytest.fixture(scope='function')
def actor_b(admin_b):
    """Vendor admin actor bound to vendor B."""
    return ActorContext(
        user_id=admin_b.id, role=ROLE_VENDOR_ADMIN, vendor_id=admin_b.vendor_id, username=admin_b.username
    )


@pytest.fixture(scope='function')
def super_actor(super_admin):
    """Super admin in the global view (no vendor entered)."""
    return ActorContext(user_id=super_admin.id, role=ROLE_SUPER_ADMIN, username=super_admin.username)


def _make_product(db_session, vendor, name, category, price, stock):
    product = Product(vendor_id=vendor.id, name=name, category=category, price=price, stock=stock)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def kopi_susu(db_session, vendor_a):
    return _make_product(db_session, vendor_a, "Kopi Susu Gula Aren", "Kopi", 28000, 50)


@pytest.fixture(scope='function')
def matcha(db_session, vendor_a):
    return _make_product(db_session, vendor_a, "Matcha Latte Premium", "Non-Kopi", 32000, 30)


@pytest.fixture(scope='function')
def last_croissant(db_session, vendor_a):
    """Exactly one unit left."""
    return _make_product(db_session, vendor_a, "Croissant", "Cemilan", 18000, 1)


@pytest.fixture(scope='function')
def sold_out(db_session, vendor_a):
    return _make_product(db_session, vendor_a, "Pisang Goreng", "Cemilan", 12000, 0)


@pytest.fixture(scope='function')
def burger(db_session, vendor_b):
    return _make_product(db_session, vendor_b, "Cheeseburger Deluxe", "Makanan Berat", 45000, 20)


@pytest.fixture(scope='function')
def customer_a(db_session, vendor_a):
    customer = Customer(vendor_id=vendor_a.id, name="Budi Santoso", phone="081234567890", total_visits=0)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def hemat10(db_session, vendor_a):
    """10% off from a 50.000 spend."""
    promo = Promotion(
        vendor_id=vendor_a.id, code="HEMAT10", name="Diskon 10%",
        promo_type="PERCENTAGE", value=10, min_spend=50000, is_active=True,
    )
    db_session.add(promo)
    db_session.commit()
    return promo


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    return auth_headers(get_auth_token(client, admin_a.username))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_a):
    return auth_headers(get_auth_token(client, cashier_a.username))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(get_auth_token(client, admin_b.username))


@pytest.fixture(scope='function')
def super_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.username))
