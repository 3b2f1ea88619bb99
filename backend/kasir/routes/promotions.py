# Overview: Flask API routes for promotions operations; parses input and returns JSON responses.

"""
Promotion routes.

CRUD and toggle are for vendor_admin / super_admin. Listing and applying a
code to a cart are open to cashiers too.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role, require_tenant
from ..models import Promotion
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import cart_service, promotion_service
from ..validation import ModelValidationPolicy, enforce_rules_promotion, validate_payload

PROMOTION_POLICY = ModelValidationPolicy(
    writable_fields=set(promotion_service.PROMOTION_MUTABLE_FIELDS),
    required_on_create={"code", "name", "promo_type", "value"},
)

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


@promotions_bp.get("")
@require_auth
@require_tenant
def list_promotions_route():
    """Query params: active=1 to list only active promotions."""
    active_only = request.args.get("active", "0").lower() in ("1", "true", "yes")
    promos = promotion_service.list_promotions(g.actor, active_only=active_only)
    return {"promotions": [p.to_dict() for p in promos]}


@promotions_bp.post("")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def create_promotion_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Promotion, payload=payload, policy=PROMOTION_POLICY, partial=False)
    enforce_rules_promotion(patch)
    promo = promotion_service.create_promotion(g.actor, patch)
    return {"promotion": promo.to_dict()}, 201


@promotions_bp.put("/<int:promo_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def update_promotion_route(promo_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Promotion, payload=payload, policy=PROMOTION_POLICY, partial=True)
    enforce_rules_promotion(patch)
    promo = promotion_service.update_promotion(g.actor, promo_id, patch)
    return {"promotion": promo.to_dict()}


@promotions_bp.post("/<int:promo_id>/toggle")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def toggle_promotion_route(promo_id: int):
    promo = promotion_service.toggle_promotion(g.actor, promo_id)
    return {"promotion": promo.to_dict()}


@promotions_bp.delete("/<int:promo_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def delete_promotion_route(promo_id: int):
    promotion_service.delete_promotion(g.actor, promo_id)
    return {"deleted": promo_id}


@promotions_bp.post("/apply")
@require_auth
@require_tenant
def apply_promotion_route():
    """
    Body: {"code": "...", "cart": {...}}

    Returns the cart with the code attached and a price quote, or 409
    PROMOTION_REJECTED with details.reason (INVALID_CODE, BELOW_MIN_SPEND,
    NO_ELIGIBLE_ITEMS).
    """
    payload = request.get_json(silent=True) or {}
    cart = cart_service.cart_from_payload(g.actor, payload.get("cart") or {})
    result = cart_service.apply_promotion(g.actor, cart, payload.get("code") or "")
    _, totals = cart_service.quote(g.actor, cart)
    return {"cart": cart.to_dict(), "promotion": result.to_dict(), "totals": totals.to_dict()}
