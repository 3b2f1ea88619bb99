# Overview: Flask API routes for per-vendor product categories.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role, require_tenant
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import catalog_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_tenant
def list_categories_route():
    return {"categories": catalog_service.list_categories(g.actor)}


@categories_bp.post("")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def add_category_route():
    payload = request.get_json(silent=True) or {}
    categories = catalog_service.add_category(g.actor, payload.get("name"))
    return {"categories": categories}, 201


@categories_bp.delete("/<path:name>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def remove_category_route(name: str):
    """409 CATEGORY_IN_USE while any product still uses the category."""
    categories = catalog_service.remove_category(g.actor, name)
    return {"categories": categories}
