# Overview: JSON error translation for service exceptions raised inside API routes.

"""
Every service exception maps to a status and a stable error code:

    {"error": message, "code": CODE, "details": {...}}

Flask picks the handler of the most specific registered class, so
subclasses listed here override their bases.
"""

from flask import current_app, g, jsonify
from werkzeug.exceptions import HTTPException

from ..services import session_service
from ..services.cart_service import (
    CartError,
    CheckoutStateError,
    InsufficientStockError,
    OutOfStockError,
    StaleCartError,
)
from ..services.catalog_service import CategoryInUseError
from ..services.checkout_service import EmptyCartError, InsufficientCashError
from ..services.parking_service import MissingIdentifierError
from ..services.promotion_service import PromotionRejectedError
from ..services.tenant_service import (
    PermissionDeniedError,
    TenantAccessError,
    TenantContextRequiredError,
    UnboundActorError,
)
from ..validation import ConflictError, NotFoundError, ValidationError

ERROR_MAP = [
    (ValidationError, 400, "VALIDATION_ERROR"),
    (MissingIdentifierError, 400, "MISSING_IDENTIFIER"),
    (PermissionDeniedError, 403, "FORBIDDEN"),
    (TenantAccessError, 403, "TENANT_ACCESS_DENIED"),
    (NotFoundError, 404, "NOT_FOUND"),
    (ConflictError, 409, "CONFLICT"),
    (TenantContextRequiredError, 409, "TENANT_CONTEXT_REQUIRED"),
    (CartError, 409, "CART_ERROR"),
    (OutOfStockError, 409, "OUT_OF_STOCK"),
    (InsufficientStockError, 409, "INSUFFICIENT_STOCK"),
    (InsufficientCashError, 409, "INSUFFICIENT_CASH"),
    (StaleCartError, 409, "STALE_CART"),
    (CheckoutStateError, 409, "CHECKOUT_STATE"),
    (EmptyCartError, 409, "EMPTY_CART"),
    (CategoryInUseError, 409, "CATEGORY_IN_USE"),
    (PromotionRejectedError, 409, "PROMOTION_REJECTED"),
]


def error_response(message: str, code: str, status: int, details: dict | None = None):
    return jsonify({"error": message, "code": code, "details": details or {}}), status


def _details(exc: Exception) -> dict:
    details = dict(getattr(exc, "details", None) or {})
    reason = getattr(exc, "reason", None)
    if reason:
        details["reason"] = reason
    return details


def _make_handler(status: int, code: str):
    def handler(exc):
        return error_response(str(exc), code, status, _details(exc))
    return handler


def register_error_handlers(app) -> None:
    for exc_class, status, code in ERROR_MAP:
        app.register_error_handler(exc_class, _make_handler(status, code))

    @app.errorhandler(UnboundActorError)
    def handle_unbound(exc):
        token = getattr(g, "token", None)
        if token:
            session_service.revoke_session(token, reason="Vendor unavailable")
        body = {"error": str(exc), "code": "UNBOUND_ACTOR", "details": {}, "logout": True}
        return jsonify(body), 401

    @app.errorhandler(HTTPException)
    def handle_http(exc):
        return error_response(exc.description or exc.name, exc.name.upper().replace(" ", "_"), exc.code)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        current_app.logger.exception("Unhandled error")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
