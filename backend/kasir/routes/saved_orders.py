# Overview: Flask API routes for parked orders; save a cart for later and resume it once.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_tenant
from ..services import cart_service, parking_service

saved_orders_bp = Blueprint("saved_orders", __name__, url_prefix="/api/saved-orders")


@saved_orders_bp.get("")
@require_auth
@require_tenant
def list_saved_orders_route():
    orders = parking_service.list_saved_orders(g.actor)
    return {"saved_orders": [o.to_dict() for o in orders]}


@saved_orders_bp.post("")
@require_auth
@require_tenant
def save_order_route():
    """Body: {"cart": {...}, "customer_label": "Meja 4", "order_type": "DINE_IN"}"""
    payload = request.get_json(silent=True) or {}
    cart = cart_service.cart_from_payload(g.actor, payload.get("cart") or {})
    order = parking_service.save_order(
        g.actor,
        cart,
        customer_label=payload.get("customer_label"),
        order_type=payload.get("order_type"),
    )
    return {"saved_order": order.to_dict(), "cart": cart.to_dict()}, 201


@saved_orders_bp.post("/<int:order_id>/load")
@require_auth
@require_tenant
def load_order_route(order_id: int):
    """Consumes the order: a second load of the same id is 404."""
    snapshot, cart = parking_service.load_order(g.actor, order_id)
    return {"saved_order": snapshot, "cart": cart.to_dict()}
