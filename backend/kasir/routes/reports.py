# Overview: Flask API routes for vendor reporting; parses input and returns JSON responses.

"""
Reporting routes (vendor_admin, super_admin inside a vendor).

Date filters are inclusive calendar days (YYYY-MM-DD, UTC):
- GET    /api/reports/summary?start=&end=
- GET    /api/reports/transactions?start=&end=&limit=
- DELETE /api/reports/transactions   (reset this vendor's history)
- POST   /api/reports/insight        (AI summary of recent sales)
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role, require_tenant
from ..models.auth import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..services import ai_service, reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def summary_route():
    summary = reporting_service.sales_summary(
        g.actor, start=request.args.get("start"), end=request.args.get("end")
    )
    return {"summary": summary}


@reports_bp.get("/transactions")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def list_transactions_route():
    transactions = reporting_service.list_transactions(
        g.actor,
        start=request.args.get("start"),
        end=request.args.get("end"),
        limit=request.args.get("limit", type=int),
    )
    return {"transactions": [t.to_dict() for t in transactions]}


@reports_bp.delete("/transactions")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def reset_transactions_route():
    removed = reporting_service.reset_transactions(g.actor)
    return {"removed": removed}


@reports_bp.post("/insight")
@require_auth
@require_role(ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)
@require_tenant
def insight_route():
    """Body (optional): {"start": "...", "end": "..."}. Always 200."""
    payload = request.get_json(silent=True) or {}
    transactions = reporting_service.list_transactions(
        g.actor,
        start=payload.get("start"),
        end=payload.get("end"),
        limit=ai_service.INSIGHT_TRANSACTION_LIMIT,
    )
    return {"insight": ai_service.generate_sales_insight(transactions)}
