# Overview: Flask API routes for user management; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
def list_users_route():
    """
    Super admin without an entered vendor: all users.
    Otherwise: users of the bound vendor.
    """
    users = user_service.list_users(g.actor)
    return {"users": [u.to_dict() for u in users]}


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
def get_user_route(user_id: int):
    return {"user": user_service.get_user(g.actor, user_id).to_dict()}


@users_bp.post("")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
def create_user_route():
    payload = request.get_json(silent=True) or {}
    user = user_service.create_user(g.actor, payload)
    return {"user": user.to_dict()}, 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    user = user_service.update_user(g.actor, user_id, payload)
    return {"user": user.to_dict()}


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
def delete_user_route(user_id: int):
    user_service.delete_user(g.actor, user_id)
    return {"deleted": user_id}
