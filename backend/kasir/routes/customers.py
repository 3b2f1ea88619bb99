# Overview: Flask API routes for the vendor CRM; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role, require_tenant
from ..models import Customer
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import customer_service
from ..validation import ModelValidationPolicy, require_text, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(customer_service.CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_tenant
def list_customers_route():
    """Query params: q (name or phone substring)."""
    customers = customer_service.list_customers(g.actor, search=request.args.get("q") or None)
    return {"customers": [c.to_dict() for c in customers]}


@customers_bp.post("")
@require_auth
@require_tenant
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    customer = customer_service.create_customer(g.actor, patch)
    return {"customer": customer.to_dict()}, 201


@customers_bp.post("/quick")
@require_auth
@require_tenant
def quick_add_customer_route():
    """Cashier shortcut from the POS screen: name and phone only."""
    payload = request.get_json(silent=True) or {}
    require_text(payload, "name", "phone")
    customer = customer_service.quick_add_customer(g.actor, payload["name"], payload["phone"])
    return {"customer": customer.to_dict()}, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_tenant
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    customer = customer_service.update_customer(g.actor, customer_id, patch)
    return {"customer": customer.to_dict()}


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(g.actor, customer_id)
    return {"deleted": customer_id}
