"""
Cart Service: in-memory cart and its checkout state machine.

A Cart is never persisted. The HTTP layer round-trips it with the client
and rebuilds it with cart_from_payload, which re-snapshots every line from
the vendor's catalog, so prices always come from the server.

States: CART_OPEN -> PAYMENT_PENDING -> COMMITTED
- begin_payment moves an open, non-empty cart to PAYMENT_PENDING
- checkout_service.commit_checkout moves it to COMMITTED and clears it
- a failed commit leaves it in PAYMENT_PENDING
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Customer, Product
from ..validation import ValidationError, coerce_int
from .pricing_service import Totals, totals_from_config
from .promotion_service import PromotionResult, apply_promotion_code
from .tenant_service import ActorContext, get_scoped_or_404, require_tenant_id

ORDER_TYPES = ("DINE_IN", "TAKE_AWAY", "ONLINE")
PAYMENT_METHODS = ("cash", "card", "qr")
DEFAULT_ORDER_TYPE = "DINE_IN"


class CheckoutState(str, Enum):
    CART_OPEN = "CART_OPEN"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    COMMITTED = "COMMITTED"


class CartError(Exception):
    """Base for cart and checkout state errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OutOfStockError(CartError):
    """Product has no stock left; nothing was added."""


class InsufficientStockError(CartError):
    """Requested quantity exceeds available stock; quantity unchanged."""


class StaleCartError(CartError):
    """Cart references products that are no longer in the catalog."""


class CheckoutStateError(CartError):
    """Operation not allowed in the cart's current state."""


@dataclass
class CartLine:
    """Product snapshot plus quantity."""
    product_id: int
    vendor_id: int
    name: str
    category: str
    unit_price: int
    quantity: int = 1

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartLine":
        return cls(
            product_id=product.id,
            vendor_id=product.vendor_id,
            name=product.name,
            category=product.category,
            unit_price=product.price,
            quantity=quantity,
        )

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "vendor_id": self.vendor_id,
            "name": self.name,
            "category": self.category,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }


@dataclass
class Cart:
    vendor_id: int
    lines: list[CartLine] = field(default_factory=list)
    customer_id: int | None = None
    customer_name: str | None = None
    order_type: str = DEFAULT_ORDER_TYPE
    promotion_code: str | None = None
    state: CheckoutState = CheckoutState.CART_OPEN
    payment_method: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal(self) -> int:
        return sum(line.line_total for line in self.lines)

    def find_line(self, product_id: int) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def reset(self) -> None:
        """Clear lines and the per-order session fields."""
        self.lines = []
        self.customer_id = None
        self.customer_name = None
        self.order_type = DEFAULT_ORDER_TYPE
        self.promotion_code = None
        self.payment_method = None

    def to_dict(self) -> dict:
        return {
            "vendor_id": self.vendor_id,
            "items": [line.to_dict() for line in self.lines],
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "order_type": self.order_type,
            "promotion_code": self.promotion_code,
            "state": self.state.value,
            "payment_method": self.payment_method,
            "subtotal": self.subtotal,
        }


def _require_open(cart: Cart) -> None:
    if cart.state != CheckoutState.CART_OPEN:
        raise CheckoutStateError(f"Cart is {cart.state.value}; it can no longer be edited")


def validate_order_type(order_type: str | None) -> str:
    order_type = (order_type or DEFAULT_ORDER_TYPE).upper()
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of {', '.join(ORDER_TYPES)}")
    return order_type


def new_cart(actor: ActorContext) -> Cart:
    return Cart(vendor_id=require_tenant_id(actor))


def cart_from_payload(actor: ActorContext, payload: dict[str, Any]) -> Cart:
    """
    Rebuild a cart from client JSON.

    Expected keys: items [{product_id, quantity}], customer_id,
    customer_name, order_type, promotion_code. Lines are re-snapshotted from
    the vendor's catalog; product ids outside it raise StaleCartError.
    Quantities are merged per product. Stock is not checked here.
    """
    vendor_id = require_tenant_id(actor)
    raw_items = payload.get("items") or []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    quantities: dict[int, int] = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("each item must be an object")
        product_id = coerce_int("product_id", raw.get("product_id"))
        quantity = coerce_int("quantity", raw.get("quantity", 1))
        if quantity < 1:
            raise ValidationError("quantity must be >= 1")
        quantities[product_id] = quantities.get(product_id, 0) + quantity

    products = {}
    if quantities:
        products = {
            p.id: p
            for p in db.session.query(Product).filter(
                Product.vendor_id == vendor_id, Product.id.in_(list(quantities))
            )
        }
    missing = sorted(pid for pid in quantities if pid not in products)
    if missing:
        raise StaleCartError("Cart contains products that are no longer available", {"product_ids": missing})

    cart = Cart(vendor_id=vendor_id)
    cart.lines = [CartLine.from_product(products[pid], qty) for pid, qty in quantities.items()]
    cart.order_type = validate_order_type(payload.get("order_type"))
    cart.customer_name = (payload.get("customer_name") or "").strip() or None
    cart.promotion_code = (payload.get("promotion_code") or "").strip().upper() or None

    if payload.get("customer_id") is not None:
        customer = get_scoped_or_404(Customer, coerce_int("customer_id", payload["customer_id"]), actor)
        attach_customer(cart, customer)
    return cart


def attach_customer(cart: Cart, customer: Customer | None) -> None:
    if customer is None:
        cart.customer_id = None
        return
    if customer.vendor_id != cart.vendor_id:
        raise ValidationError("Customer belongs to another vendor")
    cart.customer_id = customer.id
    cart.customer_name = customer.name


def add_to_cart(actor: ActorContext, cart: Cart, product_id: int) -> CartLine:
    """
    Add one unit of a product.

    Raises OutOfStockError when stock <= 0 and InsufficientStockError when
    the cart already holds all available units. No mutation on failure.
    """
    _require_open(cart)
    product = get_scoped_or_404(Product, product_id, actor)

    if product.stock <= 0:
        raise OutOfStockError(
            f"{product.name} is out of stock",
            {"product_id": product.id, "available": product.stock},
        )

    line = cart.find_line(product.id)
    if line is None:
        line = CartLine.from_product(product, 1)
        cart.lines.append(line)
        return line

    if line.quantity >= product.stock:
        raise InsufficientStockError(
            "Not enough stock",
            {"product_id": product.id, "requested": line.quantity + 1, "available": product.stock},
        )
    line.quantity += 1
    return line


def update_quantity(actor: ActorContext, cart: Cart, product_id: int, delta: int) -> CartLine:
    """
    Change a line's quantity by `delta`, floored at 1.

    Raises InsufficientStockError, leaving the quantity unchanged, when the
    new quantity would exceed current stock.
    """
    _require_open(cart)
    line = cart.find_line(product_id)
    if line is None:
        raise ValidationError("Product is not in the cart")

    product = get_scoped_or_404(Product, product_id, actor)
    new_quantity = line.quantity + delta
    if new_quantity > product.stock:
        raise InsufficientStockError(
            f"Only {product.stock} available",
            {"product_id": product.id, "requested": new_quantity, "available": product.stock},
        )
    line.quantity = max(1, new_quantity)
    return line


def remove_from_cart(cart: Cart, product_id: int) -> None:
    _require_open(cart)
    cart.lines = [line for line in cart.lines if line.product_id != product_id]


def clear_cart(cart: Cart) -> None:
    _require_open(cart)
    cart.reset()


def apply_promotion(actor: ActorContext, cart: Cart, code: str) -> PromotionResult:
    """
    Attach a promo code to the cart only if it qualifies.

    A rejection (PromotionRejectedError) leaves cart.promotion_code as it was.
    """
    _require_open(cart)
    promo, result = apply_promotion_code(actor, code, cart.lines)
    cart.promotion_code = promo.code
    return result


def quote(
    actor: ActorContext,
    cart: Cart,
    promo_code: str | None = None,
    config=None,
) -> tuple[PromotionResult | None, Totals]:
    """
    Price preview for the cart, with its promotion re-evaluated.

    `promo_code` overrides the code attached to the cart. Raises
    PromotionRejectedError when the code does not qualify.
    """
    code = promo_code or cart.promotion_code
    result = None
    discount = 0
    if code:
        _, result = apply_promotion_code(actor, code, cart.lines)
        discount = result.discount
    return result, totals_from_config(cart.subtotal, discount, config or current_app.config)


def begin_payment(cart: Cart, method: str) -> Cart:
    """CART_OPEN -> PAYMENT_PENDING once a payment method is chosen."""
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    if cart.state == CheckoutState.COMMITTED:
        raise CheckoutStateError("Cart has already been checked out")
    if cart.is_empty:
        raise CheckoutStateError("Cart is empty")
    cart.payment_method = method
    cart.state = CheckoutState.PAYMENT_PENDING
    return cart


def cancel_payment(cart: Cart) -> Cart:
    """PAYMENT_PENDING -> CART_OPEN (payment dialog closed)."""
    if cart.state == CheckoutState.PAYMENT_PENDING:
        cart.state = CheckoutState.CART_OPEN
        cart.payment_method = None
    return cart
