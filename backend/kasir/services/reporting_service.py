# Overview: Service-layer operations for reporting; per-vendor sales dashboard figures.

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Transaction, TransactionLine
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..validation import ValidationError
from kasir.time_utils import parse_iso_date, to_iso_date
from .catalog_service import list_categories
from .concurrency import acquire_vendor_lock, run_with_retry
from .tenant_service import ActorContext, require_role, require_tenant_id, scoped_query

NO_CATEGORY = "-"
DEFAULT_TRANSACTION_LIMIT = 100


def _as_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


def _parse_range(start, end) -> tuple[date | None, date | None]:
    start_d = _as_date(start)
    end_d = _as_date(end)
    if start_d and end_d and end_d < start_d:
        raise ValidationError("end must be on or after start")
    return start_d, end_d


def _transactions_query(actor: ActorContext, start: date | None, end: date | None):
    """Vendor transactions whose UTC day lies in [start, end]."""
    query = scoped_query(Transaction, actor)
    if start:
        query = query.filter(Transaction.created_at >= datetime(start.year, start.month, start.day))
    if end:
        day_after = end + timedelta(days=1)
        query = query.filter(Transaction.created_at < datetime(day_after.year, day_after.month, day_after.day))
    return query


def _round_div(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def sales_summary(actor: ActorContext, start=None, end=None) -> dict:
    """
    Dashboard figures for the actor's vendor.

    - total_sales: sum of transaction totals
    - average_order_value: total_sales / count, rounded half up (0 if none)
    - top_category: category with the most units sold, "-" if none
    - sales_by_category: line value per category of the vendor's list
    """
    start_d, end_d = _parse_range(start, end)
    txn_query = _transactions_query(actor, start_d, end_d)

    count, total_sales = txn_query.with_entities(
        func.count(Transaction.id), func.coalesce(func.sum(Transaction.total), 0)
    ).one()
    count = int(count or 0)
    total_sales = int(total_sales or 0)

    txn_ids = txn_query.with_entities(Transaction.id)
    rows = (
        db.session.query(
            TransactionLine.category,
            func.coalesce(func.sum(TransactionLine.quantity), 0).label("units"),
            func.coalesce(func.sum(TransactionLine.line_total), 0).label("value"),
        )
        .filter(TransactionLine.transaction_id.in_(txn_ids.scalar_subquery()))
        .group_by(TransactionLine.category)
        .all()
    )
    units = {row.category: int(row.units) for row in rows}
    values = {row.category: int(row.value) for row in rows}

    top_category = NO_CATEGORY
    if units:
        # Ties go to the alphabetically first category
        top_category = sorted(units.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]

    return {
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "total_sales": total_sales,
        "transaction_count": count,
        "average_order_value": _round_div(total_sales, count) if count else 0,
        "top_category": top_category,
        "sales_by_category": [
            {"category": name, "value": values.get(name, 0)} for name in list_categories(actor)
        ],
    }


def list_transactions(actor: ActorContext, start=None, end=None, limit: int | None = None) -> list[Transaction]:
    """Vendor transactions, newest first."""
    start_d, end_d = _parse_range(start, end)
    limit = DEFAULT_TRANSACTION_LIMIT if limit is None else int(limit)
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return (
        _transactions_query(actor, start_d, end_d)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )


def reset_transactions(actor: ActorContext) -> int:
    """
    Delete the vendor's whole transaction history. Other vendors, products
    and stock levels are not touched. Returns the number removed.
    """
    require_role(actor, ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
    vendor_id = require_tenant_id(actor)

    def _op() -> int:
        acquire_vendor_lock(vendor_id)
        txn_ids = db.session.query(Transaction.id).filter(Transaction.vendor_id == vendor_id)
        db.session.query(TransactionLine).filter(
            TransactionLine.transaction_id.in_(txn_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        removed = db.session.query(Transaction).filter(Transaction.vendor_id == vendor_id).delete(
            synchronize_session=False
        )
        db.session.commit()
        return removed

    removed = run_with_retry(_op)
    current_app.logger.info("Transaction history reset: vendor=%s removed=%s by=%s", vendor_id, removed, actor.user_id)
    return removed
