# Overview: Request decorators for API routes; authentication, role checks and tenant binding.

from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service
from .services.tenant_service import (
    TenantContextRequiredError,
    UnboundActorError,
    require_tenant_id,
    resolve_active_tenant,
)


def _is_authenticated() -> bool:
    return hasattr(g, "actor") and hasattr(g, "session_context")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def unbound_response(message: str = "User is not linked to an active vendor"):
    """401 telling the client to drop its session."""
    return jsonify({"error": message, "code": "UNBOUND_ACTOR", "details": {}, "logout": True}), 401


def require_auth(f):
    """
    Require a valid session and establish the actor.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext
    - g.token: the bearer token
    - g.actor: the ActorContext passed into every service call

    A vendor_admin or cashier whose vendor is missing or inactive has
    their session revoked and gets 401 with logout=true.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED", "details": {}}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token", "code": "UNAUTHENTICATED", "details": {}}), 401

        if not context.actor.is_super_admin:
            try:
                resolve_active_tenant(context.actor)
            except UnboundActorError as exc:
                session_service.revoke_session(token, reason="Vendor unavailable")
                return unbound_response(str(exc))

        g.current_user = context.user
        g.session_context = context
        g.token = token
        g.actor = context.actor

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require one of the given roles; must be applied after require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED", "details": {}}), 401

            if g.actor.role not in roles:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s path=%s", g.actor.user_id, g.actor.role, request.path
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "details": {"required_roles": list(roles)},
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_tenant(f):
    """
    Require a bound vendor. A super admin must enter a vendor first (409).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED", "details": {}}), 401

        try:
            require_tenant_id(g.actor)
        except TenantContextRequiredError as exc:
            return jsonify({"error": str(exc), "code": "TENANT_CONTEXT_REQUIRED", "details": {}}), 409
        except UnboundActorError as exc:
            session_service.revoke_session(g.token, reason="Vendor unavailable")
            return unbound_response(str(exc))

        return f(*args, **kwargs)

    return decorated_function
