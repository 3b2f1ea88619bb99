# Overview: Saved ("parked") orders; a cart set aside and resumed later, consumed exactly once.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Product, SavedOrder
from ..validation import NotFoundError
from .cart_service import Cart, CartError, CartLine, CheckoutState, validate_order_type
from .concurrency import acquire_vendor_lock, run_with_retry
from .customer_service import find_by_name
from .sequence_service import next_reference
from .tenant_service import ActorContext, require_tenant_id, scoped_query

SAVED_ORDER_KIND = "saved_order"
SAVED_ORDER_PREFIX = "ORD"


class MissingIdentifierError(CartError):
    """A parked order needs a customer or a label (e.g. a table number)."""


def list_saved_orders(actor: ActorContext) -> list[SavedOrder]:
    return scoped_query(SavedOrder, actor).order_by(SavedOrder.created_at.desc(), SavedOrder.id.desc()).all()


def save_order(
    actor: ActorContext,
    cart: Cart,
    customer_label: str | None = None,
    order_type: str | None = None,
) -> SavedOrder:
    """
    Park the cart.

    The order needs a non-empty cart plus either an attached customer or a
    free-text label. The cart is cleared once the order is stored.
    """
    vendor_id = require_tenant_id(actor)
    if cart.state != CheckoutState.CART_OPEN:
        raise CartError(f"Cart is {cart.state.value}; it cannot be saved")
    if cart.is_empty:
        raise MissingIdentifierError("Cart is empty")

    label = (customer_label or "").strip() or (cart.customer_name or "").strip()
    if not label:
        raise MissingIdentifierError("Customer name or table label is required")
    order_type = validate_order_type(order_type or cart.order_type)

    def _op() -> SavedOrder:
        acquire_vendor_lock(vendor_id)
        order = SavedOrder(
            vendor_id=vendor_id,
            reference=next_reference(vendor_id=vendor_id, kind=SAVED_ORDER_KIND, prefix=SAVED_ORDER_PREFIX),
            customer_name=label,
            customer_id=cart.customer_id,
            items=[{"product_id": line.product_id, "name": line.name, "category": line.category,
                    "unit_price": line.unit_price, "quantity": line.quantity} for line in cart.lines],
            order_type=order_type,
            created_by_user_id=actor.user_id,
        )
        db.session.add(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    cart.reset()
    current_app.logger.info("Order parked: vendor=%s reference=%s", vendor_id, order.reference)
    return order


def _rebuild_cart(actor: ActorContext, snapshot: dict) -> Cart:
    """
    Cart for a consumed order.

    Lines whose products still exist are re-priced from the catalog; the
    rest keep their parked snapshot and will be rejected at checkout.
    """
    vendor_id = require_tenant_id(actor)
    items = snapshot["items"]
    ids = [int(item["product_id"]) for item in items]
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.vendor_id == vendor_id, Product.id.in_(ids))
    } if ids else {}

    cart = Cart(vendor_id=vendor_id, order_type=validate_order_type(snapshot["order_type"]))
    for item in items:
        quantity = int(item.get("quantity", 1))
        product = products.get(int(item["product_id"]))
        if product is not None:
            cart.lines.append(CartLine.from_product(product, quantity))
            continue
        cart.lines.append(CartLine(
            product_id=item["product_id"],
            vendor_id=vendor_id,
            name=item.get("name", ""),
            category=item.get("category", ""),
            unit_price=int(item.get("unit_price", 0)),
            quantity=quantity,
        ))

    customer = None
    if snapshot.get("customer_id") is not None:
        customer = (
            db.session.query(Customer)
            .filter(Customer.id == snapshot["customer_id"], Customer.vendor_id == vendor_id)
            .first()
        )
    if customer is None:
        customer = find_by_name(vendor_id, snapshot["customer_name"])

    if customer is not None:
        cart.customer_id = customer.id
        cart.customer_name = customer.name
    else:
        cart.customer_name = snapshot["customer_name"]
    return cart


def load_order(actor: ActorContext, order_id: int) -> tuple[dict, Cart]:
    """
    Resume a parked order; the stored row is deleted in the same transaction.

    Two concurrent loads of one order: exactly one wins, the other gets
    NotFoundError.
    """
    vendor_id = require_tenant_id(actor)

    def _op() -> dict:
        acquire_vendor_lock(vendor_id)
        order = scoped_query(SavedOrder, actor).filter(SavedOrder.id == order_id).first()
        if order is None:
            raise NotFoundError("Saved order not found")
        snapshot = order.to_dict()
        deleted = (
            db.session.query(SavedOrder)
            .filter(SavedOrder.id == order_id, SavedOrder.vendor_id == vendor_id)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            raise NotFoundError("Saved order not found")
        db.session.commit()
        return snapshot

    snapshot = run_with_retry(_op)
    cart = _rebuild_cart(actor, snapshot)
    current_app.logger.info("Order resumed: vendor=%s reference=%s", vendor_id, snapshot["reference"])
    return snapshot, cart
