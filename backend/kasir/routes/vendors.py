# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor directory routes (super admin only).

DELETE /api/vendors/<id> refuses while the vendor still owns data;
?cascade=1 removes everything it owns in one transaction.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..models import Vendor
from ..models.auth import ROLE_SUPER_ADMIN
from ..services import vendor_service
from ..validation import ModelValidationPolicy, enforce_rules_vendor, validate_payload

VENDOR_POLICY = ModelValidationPolicy(
    writable_fields=set(vendor_service.VENDOR_MUTABLE_FIELDS),
    required_on_create={"name"},
)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def list_vendors_route():
    """Query params: q (name or owner substring)."""
    vendors = vendor_service.list_vendors(g.actor, search=request.args.get("q"))
    return {"vendors": vendors}


@vendors_bp.post("")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def create_vendor_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
    enforce_rules_vendor(patch)
    vendor = vendor_service.create_vendor(g.actor, patch)
    return {"vendor": vendor.to_dict()}, 201


@vendors_bp.get("/<int:vendor_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def get_vendor_route(vendor_id: int):
    return {"vendor": vendor_service.get_vendor(g.actor, vendor_id).to_dict()}


@vendors_bp.put("/<int:vendor_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def update_vendor_route(vendor_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=True)
    current = vendor_service.get_vendor(g.actor, vendor_id)
    enforce_rules_vendor({
        "subscription_start": current.subscription_start,
        "subscription_end": current.subscription_end,
        **patch,
    })
    vendor = vendor_service.update_vendor(g.actor, vendor_id, patch)
    return {"vendor": vendor.to_dict()}


@vendors_bp.delete("/<int:vendor_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def delete_vendor_route(vendor_id: int):
    cascade = request.args.get("cascade", "0").lower() in ("1", "true", "yes")
    removed = vendor_service.delete_vendor(g.actor, vendor_id, cascade=cascade)
    return {"deleted": vendor_id, "cascade": cascade, "removed": removed}
