# Overview: Tenant directory; vendor lifecycle managed by super admins.

"""
Vendor Service

WHY: Vendors are the unit of data isolation. Only a super admin creates,
edits or removes them; everyone else reaches their vendor through
tenant_service.resolve_active_tenant.

DELETION POLICY:
- Soft-disable is the normal path: status='inactive' unbinds the vendor's
  users at their next request.
- delete_vendor(cascade=False) refuses while any dependent row exists.
- delete_vendor(cascade=True) removes every dependent row in the same
  transaction as the vendor itself.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Customer,
    Product,
    Promotion,
    ReferenceSequence,
    SavedOrder,
    SessionToken,
    Transaction,
    TransactionLine,
    User,
    Vendor,
    VendorCategory,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import run_with_retry
from .tenant_service import ActorContext, PermissionDeniedError

DEFAULT_VENDOR_CATEGORIES = ("Umum", "Makanan", "Minuman")

VENDOR_MUTABLE_FIELDS = {
    "name", "address", "phone", "owner_name", "logo_url", "status",
    "subscription_start", "subscription_end", "commission_rate_bps",
}

# Dependents checked (restrict) or removed (cascade), children first
_DEPENDENT_MODELS = (
    SavedOrder,
    Transaction,
    Promotion,
    Customer,
    Product,
    User,
)


def _require_super_admin(actor: ActorContext) -> None:
    if not actor.is_super_admin:
        raise PermissionDeniedError("Only a super admin can manage vendors")


def _get_vendor(vendor_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return vendor


def list_vendors(actor: ActorContext, search: str | None = None) -> list[dict]:
    """
    All vendors with revenue and best-selling product, for the super admin
    directory view.
    """
    _require_super_admin(actor)

    query = db.session.query(Vendor)
    if search:
        like = f"%{search.strip().lower()}%"
        query = query.filter(
            func.lower(Vendor.name).like(like) | func.lower(func.coalesce(Vendor.owner_name, "")).like(like)
        )
    vendors = query.order_by(Vendor.name.asc(), Vendor.id.asc()).all()

    revenue_rows = (
        db.session.query(Transaction.vendor_id, func.coalesce(func.sum(Transaction.total), 0))
        .group_by(Transaction.vendor_id)
        .all()
    )
    revenue = {vendor_id: int(total) for vendor_id, total in revenue_rows}

    qty_rows = (
        db.session.query(
            Transaction.vendor_id,
            TransactionLine.name,
            func.sum(TransactionLine.quantity).label("qty"),
        )
        .join(TransactionLine, TransactionLine.transaction_id == Transaction.id)
        .group_by(Transaction.vendor_id, TransactionLine.name)
        .all()
    )
    top_product: dict[int, tuple[str, int]] = {}
    for vendor_id, name, qty in qty_rows:
        best = top_product.get(vendor_id)
        # Ties go to the alphabetically first product
        if best is None or (-qty, name) < (-best[1], best[0]):
            top_product[vendor_id] = (name, int(qty))

    result = []
    for vendor in vendors:
        data = vendor.to_dict()
        data["total_revenue"] = revenue.get(vendor.id, 0)
        data["top_product"] = top_product[vendor.id][0] if vendor.id in top_product else "-"
        result.append(data)
    return result


def get_vendor(actor: ActorContext, vendor_id: int) -> Vendor:
    if not actor.is_super_admin and actor.vendor_id != vendor_id:
        raise NotFoundError("Vendor not found")
    return _get_vendor(vendor_id)


def create_vendor(actor: ActorContext, patch: dict) -> Vendor:
    """
    Create a vendor and seed its default category list.
    """
    _require_super_admin(actor)

    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("Vendor name is required")

    def _op() -> Vendor:
        vendor = Vendor(status="active", commission_rate_bps=0)
        for key, value in patch.items():
            if key in VENDOR_MUTABLE_FIELDS:
                setattr(vendor, key, value)
        vendor.name = name
        db.session.add(vendor)
        db.session.flush()

        for category in DEFAULT_VENDOR_CATEGORIES:
            db.session.add(VendorCategory(vendor_id=vendor.id, name=category))

        db.session.commit()
        return vendor

    vendor = run_with_retry(_op)
    current_app.logger.info("Vendor %s (%s) created by user %s", vendor.id, vendor.name, actor.user_id)
    return vendor


def update_vendor(actor: ActorContext, vendor_id: int, patch: dict) -> Vendor:
    _require_super_admin(actor)

    def _op() -> Vendor:
        vendor = _get_vendor(vendor_id)
        for key, value in patch.items():
            if key not in VENDOR_MUTABLE_FIELDS:
                continue
            setattr(vendor, key, value)
        if not (vendor.name or "").strip():
            raise ValidationError("Vendor name is required")
        db.session.commit()
        return vendor

    vendor = run_with_retry(_op)
    current_app.logger.info("Vendor %s updated by user %s (status=%s)", vendor.id, actor.user_id, vendor.status)
    return vendor


def _dependent_counts(vendor_id: int) -> dict[str, int]:
    counts = {}
    for model in _DEPENDENT_MODELS:
        n = db.session.query(func.count(model.id)).filter(model.vendor_id == vendor_id).scalar() or 0
        if n:
            counts[model.__tablename__] = int(n)
    return counts


def delete_vendor(actor: ActorContext, vendor_id: int, *, cascade: bool = False) -> dict:
    """
    Hard-delete a vendor.

    Without cascade this refuses (ConflictError) while dependent rows exist
    and reports what is still attached. With cascade every dependent row is
    removed in the same transaction.

    Returns a dict of removed row counts per table.
    """
    _require_super_admin(actor)

    def _op() -> dict:
        vendor = _get_vendor(vendor_id)
        counts = _dependent_counts(vendor_id)

        if counts and not cascade:
            raise ConflictError(
                "Vendor still has dependent records; deactivate it or delete with cascade",
                counts,
            )

        removed = dict(counts)
        if cascade:
            tx_ids = db.session.query(Transaction.id).filter(Transaction.vendor_id == vendor_id)
            db.session.query(TransactionLine).filter(
                TransactionLine.transaction_id.in_(tx_ids.scalar_subquery())
            ).delete(synchronize_session=False)

            user_ids = db.session.query(User.id).filter(User.vendor_id == vendor_id)
            db.session.query(SessionToken).filter(
                SessionToken.user_id.in_(user_ids.scalar_subquery())
            ).delete(synchronize_session=False)

            for model in _DEPENDENT_MODELS:
                db.session.query(model).filter(model.vendor_id == vendor_id).delete(synchronize_session=False)

        db.session.query(SessionToken).filter_by(active_vendor_id=vendor_id).update(
            {"active_vendor_id": None}, synchronize_session=False
        )
        db.session.query(VendorCategory).filter_by(vendor_id=vendor_id).delete(synchronize_session=False)
        db.session.query(ReferenceSequence).filter_by(vendor_id=vendor_id).delete(synchronize_session=False)
        db.session.query(Vendor).filter_by(id=vendor.id).delete(synchronize_session=False)
        db.session.commit()
        return removed

    removed = run_with_retry(_op)
    db.session.expire_all()
    current_app.logger.info(
        "Vendor %s deleted by user %s (cascade=%s, removed=%s)", vendor_id, actor.user_id, cascade, removed
    )
    return removed
