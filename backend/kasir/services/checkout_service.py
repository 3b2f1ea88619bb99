# Overview: Service-layer checkout; turns a PAYMENT_PENDING cart into an immutable transaction.

"""
Checkout Orchestrator

WHY: A sale must either happen completely or not at all. Stock checks,
stock decrements, the transaction record, its reference number and the
customer's visit counter are written in one database transaction, under
the vendor's write lock, so two terminals can never sell the same last unit.

DESIGN PRINCIPLES:
- Prices and discounts are recomputed from the catalog at commit time
- Stock never goes below zero
- Any failure rolls everything back and leaves the cart PAYMENT_PENDING
- The payment is a tagged union: cash, card or qr
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from flask import current_app

from ..extensions import db
from ..models import Customer, Product, Transaction, TransactionLine
from ..validation import ValidationError, coerce_int
from kasir.time_utils import utcnow
from .cart_service import (
    Cart,
    CartError,
    CartLine,
    CheckoutState,
    CheckoutStateError,
    InsufficientStockError,
    StaleCartError,
    begin_payment,
)
from .concurrency import acquire_vendor_lock, lock_for_update, run_with_retry
from .customer_service import record_visit
from .pricing_service import totals_from_config
from .promotion_service import apply_promotion_code
from .sequence_service import next_reference
from .tenant_service import ActorContext, require_tenant_id

WALK_IN_CUSTOMER = "Pelanggan Umum"
TRANSACTION_KIND = "transaction"
TRANSACTION_PREFIX = "TXN"


class InsufficientCashError(CartError):
    """Cash tendered is less than the transaction total."""


class EmptyCartError(CartError):
    """Checkout attempted with no lines."""


# =============================================================================
# PAYMENT DETAILS
# =============================================================================

CARD_TYPES = ("DEBIT", "CREDIT")


@dataclass(frozen=True)
class CashPayment:
    method: ClassVar[str] = "cash"
    cash_received: int

    def change_for(self, total: int) -> int:
        return self.cash_received - total


@dataclass(frozen=True)
class CardPayment:
    method: ClassVar[str] = "card"
    card_type: str
    bank_name: str


@dataclass(frozen=True)
class QrPayment:
    method: ClassVar[str] = "qr"


Payment = Union[CashPayment, CardPayment, QrPayment]

_PAYMENT_FIELDS = {
    "cash": {"cash_received"},
    "card": {"card_type", "bank_name"},
    "qr": set(),
}


def parse_payment(method: str | None, details: dict[str, Any] | None = None) -> Payment:
    """
    Build a payment variant from request data.

    Each method accepts only its own fields; anything else is rejected.
    """
    method = (method or "").strip().lower()
    details = {k: v for k, v in (details or {}).items() if k != "method"}
    if method not in _PAYMENT_FIELDS:
        raise ValidationError(f"payment method must be one of {', '.join(_PAYMENT_FIELDS)}")

    unknown = sorted(set(details) - _PAYMENT_FIELDS[method])
    if unknown:
        raise ValidationError(f"Unknown fields for {method} payment: {', '.join(unknown)}")

    if method == "cash":
        if details.get("cash_received") is None:
            raise ValidationError("cash_received is required")
        cash_received = coerce_int("cash_received", details["cash_received"])
        if cash_received < 0:
            raise ValidationError("cash_received must be >= 0")
        return CashPayment(cash_received=cash_received)

    if method == "card":
        card_type = (details.get("card_type") or "").strip().upper()
        if card_type not in CARD_TYPES:
            raise ValidationError("card_type must be DEBIT or CREDIT")
        bank_name = (details.get("bank_name") or "").strip()
        if not bank_name:
            raise ValidationError("bank_name is required")
        return CardPayment(card_type=card_type, bank_name=bank_name)

    return QrPayment()


# =============================================================================
# COMMIT
# =============================================================================

def _customer_name(cart: Cart, customer: Customer | None) -> str:
    if customer is not None:
        return customer.name
    return cart.customer_name or WALK_IN_CUSTOMER


def _load_products_locked(vendor_id: int, cart: Cart) -> dict[int, Product]:
    ids = [line.product_id for line in cart.lines]
    products = {
        p.id: p
        for p in lock_for_update(
            db.session.query(Product).filter(Product.vendor_id == vendor_id, Product.id.in_(ids))
        ).all()
    }
    missing = sorted(pid for pid in ids if pid not in products)
    if missing:
        raise StaleCartError("Cart contains products that are no longer available", {"product_ids": missing})
    return products


def commit_checkout(actor: ActorContext, cart: Cart, payment: Payment, config=None) -> Transaction:
    """
    Commit a PAYMENT_PENDING cart as a transaction.

    Raises:
        EmptyCartError, CheckoutStateError: precondition failures
        StaleCartError: a line's product was deleted or is not this vendor's
        InsufficientStockError: stock changed since the line was added
        PromotionRejectedError: the attached promotion no longer qualifies
        InsufficientCashError: cash tendered below the total

    On success the cart is cleared and marked COMMITTED. On failure nothing
    is written and the cart is untouched.
    """
    vendor_id = require_tenant_id(actor)
    config = config or current_app.config

    if cart.is_empty:
        raise EmptyCartError("Cart is empty")
    if cart.state != CheckoutState.PAYMENT_PENDING:
        raise CheckoutStateError(f"Cart must be PAYMENT_PENDING, not {cart.state.value}")
    if cart.vendor_id != vendor_id:
        raise StaleCartError("Cart belongs to another vendor", {"vendor_id": cart.vendor_id})
    if cart.payment_method and cart.payment_method != payment.method:
        raise ValidationError("Payment does not match the selected payment method")

    def _op() -> Transaction:
        acquire_vendor_lock(vendor_id)
        products = _load_products_locked(vendor_id, cart)

        for line in cart.lines:
            product = products[line.product_id]
            if product.stock < line.quantity:
                raise InsufficientStockError(
                    f"Not enough stock for {product.name}",
                    {"product_id": product.id, "requested": line.quantity, "available": product.stock},
                )

        lines = [CartLine.from_product(products[line.product_id], line.quantity) for line in cart.lines]
        discount = 0
        promotion_code = None
        if cart.promotion_code:
            promo, result = apply_promotion_code(actor, cart.promotion_code, lines)
            discount = result.discount
            promotion_code = promo.code
        totals = totals_from_config(sum(l.line_total for l in lines), discount, config)

        txn = Transaction(
            vendor_id=vendor_id,
            subtotal=totals.subtotal,
            discount=totals.discount,
            service_charge=totals.service_charge,
            tax=totals.tax,
            total=totals.total,
            promotion_code=promotion_code,
            payment_method=payment.method,
            order_type=cart.order_type,
            cashier_user_id=actor.user_id,
        )
        if isinstance(payment, CashPayment):
            if payment.cash_received < totals.total:
                raise InsufficientCashError(
                    "Cash received is less than the total",
                    {"total": totals.total, "cash_received": payment.cash_received},
                )
            txn.cash_received = payment.cash_received
            txn.change_given = payment.change_for(totals.total)
        elif isinstance(payment, CardPayment):
            txn.card_type = payment.card_type
            txn.bank_name = payment.bank_name

        customer = None
        if cart.customer_id is not None:
            customer = (
                db.session.query(Customer)
                .filter(Customer.id == cart.customer_id, Customer.vendor_id == vendor_id)
                .first()
            )
            if customer is not None:
                record_visit(vendor_id, customer.id)
        txn.customer_id = customer.id if customer is not None else None
        txn.customer_name = _customer_name(cart, customer)

        txn.reference = next_reference(vendor_id=vendor_id, kind=TRANSACTION_KIND, prefix=TRANSACTION_PREFIX)
        txn.created_at = utcnow()
        for line in lines:
            txn.lines.append(
                TransactionLine(
                    product_id=line.product_id,
                    name=line.name,
                    category=line.category,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                )
            )
            product = products[line.product_id]
            product.stock = max(0, product.stock - line.quantity)

        db.session.add(txn)
        db.session.commit()
        return txn

    txn = run_with_retry(_op)

    cart.reset()
    cart.state = CheckoutState.COMMITTED
    current_app.logger.info(
        "Checkout committed: vendor=%s reference=%s total=%s method=%s",
        vendor_id, txn.reference, txn.total, txn.payment_method,
    )
    return txn


def checkout(actor: ActorContext, cart: Cart, payment: Payment, config=None) -> Transaction:
    """begin_payment followed by commit_checkout (single-request checkout)."""
    if cart.is_empty:
        raise EmptyCartError("Cart is empty")
    begin_payment(cart, payment.method)
    return commit_checkout(actor, cart, payment, config=config)
