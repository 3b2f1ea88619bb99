# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: Every product operation is scoped to the actor's bound
vendor (g.actor, set by @require_auth). A super admin must enter a vendor
first.

- Read: any role
- Write and AI description: vendor_admin, super_admin
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role, require_tenant
from ..models import Product
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import ai_service, catalog_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_product,
    require_text,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(catalog_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "category", "price", "stock"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_tenant
def list_products_route():
    """
    Query params:
    - category: exact category name (optional)
    - q: case-insensitive name substring (optional)
    """
    products = catalog_service.list_products(
        g.actor,
        category=request.args.get("category") or None,
        search=request.args.get("q") or None,
    )
    return {"products": [p.to_dict() for p in products]}


@products_bp.get("/<int:product_id>")
@require_auth
@require_tenant
def get_product_route(product_id: int):
    return {"product": catalog_service.get_product(g.actor, product_id).to_dict()}


@products_bp.post("")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def create_product_route():
    """Any vendor_id in the payload is rejected; the bound vendor is used."""
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    product = catalog_service.create_product(g.actor, patch)
    return {"product": product.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    product = catalog_service.update_product(g.actor, product_id, patch)
    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def delete_product_route(product_id: int):
    catalog_service.delete_product(g.actor, product_id)
    return {"deleted": product_id}


@products_bp.post("/describe")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def describe_product_route():
    """AI-written product blurb. Always 200; failures yield a fallback text."""
    payload = request.get_json(silent=True) or {}
    require_text(payload, "name", "category")
    text = ai_service.generate_product_description(payload["name"].strip(), payload["category"].strip())
    return {"description": text}
