# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login: username + password -> bearer token
- POST /api/auth/logout: revoke the current token
- GET  /api/auth/me: current user and the vendor the session acts in
- POST /api/auth/enter-vendor/<id>: super admin binds the session to a vendor
- POST /api/auth/exit-vendor: super admin returns to the global view
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_role, unbound_response
from ..models import Vendor
from ..models.auth import ROLE_SUPER_ADMIN
from ..extensions import db
from ..services import session_service, user_service
from ..services.tenant_service import UnboundActorError, resolve_active_tenant

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _actor_dict(actor) -> dict:
    return {
        "user_id": actor.user_id,
        "username": actor.username,
        "role": actor.role,
        "vendor_id": actor.vendor_id,
        "active_vendor_id": actor.bound_vendor_id,
    }


def _active_vendor(actor) -> dict | None:
    vendor_id = actor.bound_vendor_id
    if vendor_id is None:
        return None
    vendor = db.session.get(Vendor, vendor_id)
    return vendor.to_dict() if vendor else None


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and open a session.

    A vendor_admin or cashier whose vendor is missing or inactive cannot
    log in (401, logout=true).
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        return jsonify({"error": "username and password required", "code": "VALIDATION_ERROR", "details": {}}), 400

    user = user_service.authenticate(username, password)
    if not user:
        return jsonify({"error": "Invalid credentials", "code": "INVALID_CREDENTIALS", "details": {}}), 401

    actor = session_service.actor_for(user)
    if not actor.is_super_admin:
        try:
            resolve_active_tenant(actor)
        except UnboundActorError as exc:
            return unbound_response(str(exc))

    session, token = session_service.create_session(user)
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "actor": _actor_dict(actor),
        "vendor": _active_vendor(actor),
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "actor": _actor_dict(g.actor),
        "vendor": _active_vendor(g.actor),
    }), 200


@auth_bp.post("/enter-vendor/<int:vendor_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def enter_vendor_route(vendor_id: int):
    actor = session_service.enter_vendor(g.session_context, vendor_id)
    return jsonify({"actor": _actor_dict(actor), "vendor": _active_vendor(actor)}), 200


@auth_bp.post("/exit-vendor")
@require_auth
@require_role(ROLE_SUPER_ADMIN)
def exit_vendor_route():
    actor = session_service.exit_vendor(g.session_context)
    return jsonify({"actor": _actor_dict(actor), "vendor": None}), 200
