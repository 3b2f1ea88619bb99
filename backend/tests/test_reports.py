# Overview: Pytest coverage for the vendor sales dashboard and history reset.

from datetime import date, datetime, timedelta

import pytest

from kasir.extensions import db
from kasir.models import Product, Transaction, TransactionLine
from kasir.services import cart_service, checkout_service, reporting_service
from kasir.services.checkout_service import QrPayment
from kasir.services.tenant_service import PermissionDeniedError
from kasir.validation import ValidationError


def _sell(actor, *products_and_qty):
    items = [{"product_id": p.id, "quantity": q} for p, q in products_and_qty]
    cart = cart_service.cart_from_payload(actor, {"items": items})
    return checkout_service.checkout(actor, cart, QrPayment())


def _backdate(txn_id, when):
    """Insert-only history: move a row through the table, not the ORM."""
    db.session.execute(
        Transaction.__table__.update().where(Transaction.id == txn_id).values(created_at=when)
    )
    db.session.commit()


class TestSalesSummary:

    def test_empty_vendor(self, db_session, actor_a):
        summary = reporting_service.sales_summary(actor_a)
        assert summary["total_sales"] == 0
        assert summary["transaction_count"] == 0
        assert summary["average_order_value"] == 0
        assert summary["top_category"] == "-"
        assert summary["sales_by_category"] == [
            {"category": "Kopi", "value": 0},
            {"category": "Non-Kopi", "value": 0},
            {"category": "Cemilan", "value": 0},
        ]

    def test_figures(self, db_session, actor_a, kopi_susu, matcha):
        first = _sell(actor_a, (kopi_susu, 2))
        second = _sell(actor_a, (matcha, 1))

        summary = reporting_service.sales_summary(actor_a)
        assert summary["transaction_count"] == 2
        assert summary["total_sales"] == first.total + second.total
        assert summary["average_order_value"] == (first.total + second.total + 1) // 2
        assert summary["top_category"] == "Kopi"
        by_category = {row["category"]: row["value"] for row in summary["sales_by_category"]}
        assert by_category == {"Kopi": 56000, "Non-Kopi": 32000, "Cemilan": 0}

    def test_top_category_tie_goes_alphabetically(self, db_session, actor_a, kopi_susu, matcha):
        _sell(actor_a, (kopi_susu, 1), (matcha, 1))
        assert reporting_service.sales_summary(actor_a)["top_category"] == "Kopi"

    def test_history_survives_product_deletion(self, db_session, actor_a, kopi_susu):
        _sell(actor_a, (kopi_susu, 1))
        db_session.delete(db.session.get(Product, kopi_susu.id))
        db_session.commit()
        assert reporting_service.sales_summary(actor_a)["top_category"] == "Kopi"

    def test_date_range_is_inclusive(self, db_session, actor_a, kopi_susu):
        old = _sell(actor_a, (kopi_susu, 1))
        recent = _sell(actor_a, (kopi_susu, 1))
        _backdate(old.id, datetime(2024, 3, 1, 23, 59))
        _backdate(recent.id, datetime(2024, 3, 3, 0, 0))

        assert reporting_service.sales_summary(actor_a, "2024-03-01", "2024-03-01")["transaction_count"] == 1
        assert reporting_service.sales_summary(actor_a, "2024-03-02", "2024-03-03")["transaction_count"] == 1
        assert reporting_service.sales_summary(actor_a, date(2024, 3, 1), date(2024, 3, 3))["transaction_count"] == 2

    def test_bad_range(self, db_session, actor_a):
        with pytest.raises(ValidationError):
            reporting_service.sales_summary(actor_a, "2024-03-05", "2024-03-01")
        with pytest.raises(ValidationError):
            reporting_service.sales_summary(actor_a, "kemarin")


class TestTransactionList:

    def test_newest_first_with_limit(self, db_session, actor_a, kopi_susu):
        refs = [_sell(actor_a, (kopi_susu, 1)).reference for _ in range(3)]
        listed = reporting_service.list_transactions(actor_a, limit=2)
        assert [t.reference for t in listed] == list(reversed(refs))[:2]

    def test_limit_must_be_positive(self, db_session, actor_a):
        with pytest.raises(ValidationError):
            reporting_service.list_transactions(actor_a, limit=0)


class TestResetHistory:

    def test_reset_only_own_vendor(self, db_session, actor_a, actor_b, kopi_susu, burger):
        _sell(actor_a, (kopi_susu, 2))
        _sell(actor_b, (burger, 1))

        assert reporting_service.reset_transactions(actor_a) == 1
        assert reporting_service.sales_summary(actor_a)["transaction_count"] == 0
        assert reporting_service.sales_summary(actor_b)["transaction_count"] == 1
        assert db_session.query(TransactionLine).count() == 1
        # Stock is not restored
        assert db.session.get(Product, kopi_susu.id).stock == 48

    def test_cashier_cannot_reset(self, db_session, cashier_actor_a):
        with pytest.raises(PermissionDeniedError):
            reporting_service.reset_transactions(cashier_actor_a)
