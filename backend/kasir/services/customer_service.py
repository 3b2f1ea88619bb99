# Overview: Vendor-scoped CRM; customer records and visit counters.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer
from ..validation import NotFoundError, ValidationError
from kasir.time_utils import utcnow
from .concurrency import run_with_retry
from .tenant_service import ActorContext, get_scoped_or_404, require_tenant_id, scoped_query

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "notes"}


def list_customers(actor: ActorContext, search: str | None = None) -> list[Customer]:
    q = scoped_query(Customer, actor)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(func.lower(Customer.name).like(like), Customer.phone.like(like)))
    return q.order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(actor: ActorContext, customer_id: int) -> Customer:
    return get_scoped_or_404(Customer, customer_id, actor)


def find_by_name(vendor_id: int, name: str) -> Customer | None:
    """Exact-name match inside one vendor (used when resuming saved orders)."""
    if not name:
        return None
    return (
        db.session.query(Customer)
        .filter(Customer.vendor_id == vendor_id, Customer.name == name)
        .order_by(Customer.id.asc())
        .first()
    )


def create_customer(actor: ActorContext, patch: dict) -> Customer:
    vendor_id = require_tenant_id(actor)
    name = (patch.get("name") or "").strip()
    phone = (patch.get("phone") or "").strip()
    if not name or not phone:
        raise ValidationError("name and phone are required")

    def _op() -> Customer:
        customer = Customer(vendor_id=vendor_id, total_visits=0)
        for key, value in patch.items():
            if key in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, key, value)
        customer.name = name
        customer.phone = phone
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def quick_add_customer(actor: ActorContext, name: str, phone: str) -> Customer:
    """Cashier shortcut from the POS screen; same rules as create_customer."""
    return create_customer(actor, {"name": name, "phone": phone})


def update_customer(actor: ActorContext, customer_id: int, patch: dict) -> Customer:
    def _op() -> Customer:
        customer = get_scoped_or_404(Customer, customer_id, actor)
        for key, value in patch.items():
            if key in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, key, value)
        if not (customer.name or "").strip() or not (customer.phone or "").strip():
            raise ValidationError("name and phone are required")
        db.session.commit()
        return customer

    return run_with_retry(_op)


def delete_customer(actor: ActorContext, customer_id: int) -> None:
    def _op() -> None:
        customer = get_scoped_or_404(Customer, customer_id, actor)
        db.session.delete(customer)
        db.session.commit()

    run_with_retry(_op)


def record_visit(vendor_id: int, customer_id: int) -> Customer:
    """
    Bump visit stats inside the caller's transaction (checkout only).

    Does not commit.
    """
    customer = (
        db.session.query(Customer)
        .filter(Customer.id == customer_id, Customer.vendor_id == vendor_id)
        .first()
    )
    if customer is None:
        raise NotFoundError("Customer not found")
    customer.total_visits = (customer.total_visits or 0) + 1
    customer.last_visit_at = utcnow()
    return customer
