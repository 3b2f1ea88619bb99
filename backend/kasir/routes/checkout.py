# Overview: Flask API route for committing a checkout; returns the transaction or a typed failure.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_tenant
from ..services import cart_service, checkout_service

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.post("")
@require_auth
@require_tenant
def checkout_route():
    """
    Body:
        {"cart": {...},
         "payment": {"method": "cash", "cash_received": 70000}
                  | {"method": "card", "card_type": "DEBIT", "bank_name": "BCA"}
                  | {"method": "qr"}}

    201 with the transaction. Failures (all 409 unless noted) leave stock
    and history untouched: INSUFFICIENT_STOCK, INSUFFICIENT_CASH,
    STALE_CART, EMPTY_CART, PROMOTION_REJECTED, VALIDATION_ERROR (400).
    """
    payload = request.get_json(silent=True) or {}
    cart = cart_service.cart_from_payload(g.actor, payload.get("cart") or {})
    payment_data = payload.get("payment") or {}
    payment = checkout_service.parse_payment(payment_data.get("method"), payment_data)

    txn = checkout_service.checkout(g.actor, cart, payment)
    return {"transaction": txn.to_dict(), "cart": cart.to_dict()}, 201
