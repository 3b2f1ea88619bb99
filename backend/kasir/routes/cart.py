# Overview: Flask API routes for cart editing; the cart lives on the client and is re-priced here.

"""
Cart routes (stateless).

Every request carries the whole cart:

    {"cart": {"items": [{"product_id": 1, "quantity": 2}], "customer_id": null,
              "customer_name": null, "order_type": "DINE_IN", "promotion_code": null}}

The server rebuilds it from the vendor's catalog, applies the operation and
answers with the new cart plus a price quote. An attached promotion that no
longer qualifies after an edit is dropped and reported as promotion_dropped.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_tenant
from ..services import cart_service
from ..services.promotion_service import PromotionRejectedError
from ..validation import ValidationError, coerce_int

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _load():
    payload = request.get_json(silent=True) or {}
    return payload, cart_service.cart_from_payload(g.actor, payload.get("cart") or {})


def _product_id(payload: dict) -> int:
    if payload.get("product_id") is None:
        raise ValidationError("product_id is required")
    return coerce_int("product_id", payload["product_id"])


def _priced(cart) -> dict:
    dropped = None
    try:
        result, totals = cart_service.quote(g.actor, cart)
    except PromotionRejectedError as exc:
        dropped = {"code": cart.promotion_code, "reason": exc.reason}
        cart.promotion_code = None
        result, totals = cart_service.quote(g.actor, cart)
    return {
        "cart": cart.to_dict(),
        "promotion": result.to_dict() if result else None,
        "promotion_dropped": dropped,
        "totals": totals.to_dict(),
    }


@cart_bp.post("/add")
@require_auth
@require_tenant
def add_route():
    """Add one unit. 409 OUT_OF_STOCK / INSUFFICIENT_STOCK leave the cart unchanged."""
    payload, cart = _load()
    cart_service.add_to_cart(g.actor, cart, _product_id(payload))
    return _priced(cart)


@cart_bp.post("/quantity")
@require_auth
@require_tenant
def quantity_route():
    """Body adds "delta" (e.g. 1 or -1); quantity never drops below 1."""
    payload, cart = _load()
    delta = coerce_int("delta", payload.get("delta", 0))
    cart_service.update_quantity(g.actor, cart, _product_id(payload), delta)
    return _priced(cart)


@cart_bp.post("/remove")
@require_auth
@require_tenant
def remove_route():
    payload, cart = _load()
    cart_service.remove_from_cart(cart, _product_id(payload))
    return _priced(cart)


@cart_bp.post("/quote")
@require_auth
@require_tenant
def quote_route():
    """
    Price preview. An explicit "promo_code" that does not qualify is a
    409 PROMOTION_REJECTED rather than being dropped.
    """
    payload, cart = _load()
    promo_code = (payload.get("promo_code") or "").strip() or None
    if promo_code:
        result, totals = cart_service.quote(g.actor, cart, promo_code)
        return {
            "cart": cart.to_dict(),
            "promotion": result.to_dict() if result else None,
            "promotion_dropped": None,
            "totals": totals.to_dict(),
        }
    return _priced(cart)
