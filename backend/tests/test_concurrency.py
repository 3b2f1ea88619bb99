# Overview: Threaded tests for the per-vendor write lock on a file-backed SQLite database.

"""
Concurrency Tests

Two workers race on the same vendor, each in its own thread and app
context. The per-vendor lock must let exactly one check-then-act sequence
win: the last unit is sold once, and a category is never removed while a
product is being assigned to it.
"""

import threading

import pytest

from kasir import create_app
from kasir.config import TestConfig
from kasir.extensions import db
from kasir.models import Product, Transaction, Vendor, VendorCategory
from kasir.models.auth import ROLE_CASHIER, ROLE_VENDOR_ADMIN
from kasir.services import cart_service, catalog_service, checkout_service
from kasir.services.cart_service import InsufficientStockError
from kasir.services.catalog_service import CategoryInUseError
from kasir.services.checkout_service import QrPayment
from kasir.services.tenant_service import ActorContext
from kasir.validation import ValidationError


@pytest.fixture
def file_app(tmp_path):
    """App on a temp-file SQLite database so threads share committed state."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'concurrency.db'}"

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def seeded(file_app):
    """One vendor with a single croissant left in stock."""
    with file_app.app_context():
        vendor = Vendor(name="Kopi Senja", status="active", commission_rate_bps=0)
        db.session.add(vendor)
        db.session.flush()
        for name in ("Kopi", "Cemilan"):
            db.session.add(VendorCategory(vendor_id=vendor.id, name=name))
        product = Product(vendor_id=vendor.id, name="Croissant", category="Kopi", price=18000, stock=1)
        db.session.add(product)
        db.session.commit()
        ids = {"vendor_id": vendor.id, "product_id": product.id}
        db.session.remove()
    return ids


def _race(file_app, *workers):
    """Run each worker in its own thread and app context; collect outcomes."""
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(workers))

    def run(worker):
        with file_app.app_context():
            try:
                barrier.wait()
                worker()
                outcome = "ok"
            except Exception as exc:
                outcome = exc
            finally:
                db.session.remove()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=run, args=(w,)) for w in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


# =============================================================================
# CHECKOUT RACE
# =============================================================================


class TestConcurrentCheckout:

    def test_last_unit_sold_once(self, file_app, seeded):
        cashier = ActorContext(user_id=None, role=ROLE_CASHIER, vendor_id=seeded["vendor_id"])

        with file_app.app_context():
            carts = [
                cart_service.cart_from_payload(
                    cashier, {"items": [{"product_id": seeded["product_id"], "quantity": 1}]}
                )
                for _ in range(2)
            ]
            db.session.remove()

        results = _race(
            file_app,
            *[lambda cart=cart: checkout_service.checkout(cashier, cart, QrPayment()) for cart in carts],
        )

        assert results.count("ok") == 1
        failures = [r for r in results if r != "ok"]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)

        with file_app.app_context():
            assert db.session.get(Product, seeded["product_id"]).stock == 0
            assert db.session.query(Transaction).count() == 1
            db.session.remove()


# =============================================================================
# CATEGORY REMOVAL VS ASSIGNMENT
# =============================================================================


class TestCategoryRace:

    def test_category_never_removed_under_a_new_product(self, file_app, seeded):
        admin = ActorContext(user_id=None, role=ROLE_VENDOR_ADMIN, vendor_id=seeded["vendor_id"])

        results = _race(
            file_app,
            lambda: catalog_service.remove_category(admin, "Cemilan"),
            lambda: catalog_service.create_product(
                admin, {"name": "Donat", "category": "Cemilan", "price": 10000, "stock": 5}
            ),
        )

        assert results.count("ok") == 1
        failure = next(r for r in results if r != "ok")
        assert isinstance(failure, (CategoryInUseError, ValidationError))

        with file_app.app_context():
            categories = {
                c.name for c in db.session.query(VendorCategory).filter_by(vendor_id=seeded["vendor_id"])
            }
            product_categories = {
                p.category for p in db.session.query(Product).filter_by(vendor_id=seeded["vendor_id"])
            }
            assert product_categories <= categories
            db.session.remove()
