"""
Promotion Service

Two halves:
- evaluate_promotion: pure discount computation for a cart and a promotion
- CRUD and code lookup, scoped to the actor's vendor

Non-qualification (below minimum spend, nothing eligible, unknown code) is a
rejection with a reason, never a silent zero-discount success: callers must
not mark a rejected promotion as applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Promotion
from ..validation import ConflictError, ValidationError
from .concurrency import run_with_retry
from .pricing_service import percent_of
from .tenant_service import ActorContext, get_scoped_or_404, require_tenant_id, scoped_query

PERCENTAGE = "PERCENTAGE"
FIXED = "FIXED"

REJECT_INVALID_CODE = "INVALID_CODE"
REJECT_BELOW_MIN_SPEND = "BELOW_MIN_SPEND"
REJECT_NO_ELIGIBLE_ITEMS = "NO_ELIGIBLE_ITEMS"

PROMOTION_MUTABLE_FIELDS = {
    "code", "name", "promo_type", "value", "min_spend", "is_active", "eligible_product_ids",
}


class PricedLine(Protocol):
    product_id: int
    unit_price: int
    quantity: int


class PromotionRejectedError(Exception):
    """Promotion does not qualify for the cart; `reason` is a REJECT_* code."""
    def __init__(self, message: str, reason: str, details: dict | None = None):
        super().__init__(message)
        self.reason = reason
        self.details = details or {}


@dataclass(frozen=True)
class PromotionResult:
    subtotal: int
    eligible_subtotal: int
    discount: int
    rejection: str | None = None

    @property
    def qualifies(self) -> bool:
        return self.rejection is None

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "eligible_subtotal": self.eligible_subtotal,
            "discount": self.discount,
            "rejection": self.rejection,
        }


def cart_subtotal(lines: Iterable[PricedLine]) -> int:
    return sum(line.unit_price * line.quantity for line in lines)


def evaluate_promotion(lines: Iterable[PricedLine], promotion) -> PromotionResult:
    """
    Discount a promotion grants on a cart.

    FIXED discounts are capped at the eligible subtotal. PERCENTAGE discounts
    round half up to a whole currency unit.
    """
    lines = list(lines)
    subtotal = cart_subtotal(lines)

    if subtotal < (promotion.min_spend or 0):
        return PromotionResult(subtotal, 0, 0, REJECT_BELOW_MIN_SPEND)

    eligible_ids = set(promotion.eligible_product_ids or [])
    if eligible_ids:
        eligible_lines = [line for line in lines if line.product_id in eligible_ids]
        if not eligible_lines:
            return PromotionResult(subtotal, 0, 0, REJECT_NO_ELIGIBLE_ITEMS)
        eligible_subtotal = cart_subtotal(eligible_lines)
    else:
        eligible_subtotal = subtotal

    if eligible_subtotal == 0:
        return PromotionResult(subtotal, 0, 0)

    if promotion.promo_type == PERCENTAGE:
        discount = min(percent_of(eligible_subtotal, promotion.value), eligible_subtotal)
    elif promotion.promo_type == FIXED:
        discount = min(promotion.value, eligible_subtotal)
    else:
        raise ValidationError(f"Unknown promotion type: {promotion.promo_type}")

    return PromotionResult(subtotal, eligible_subtotal, discount)


def require_qualifying(lines: Iterable[PricedLine], promotion) -> PromotionResult:
    """evaluate_promotion, raising PromotionRejectedError on any rejection."""
    result = evaluate_promotion(lines, promotion)
    if result.rejection == REJECT_BELOW_MIN_SPEND:
        raise PromotionRejectedError(
            "Cart is below the minimum spend for this promotion",
            REJECT_BELOW_MIN_SPEND,
            {"min_spend": promotion.min_spend, "subtotal": result.subtotal},
        )
    if result.rejection == REJECT_NO_ELIGIBLE_ITEMS:
        raise PromotionRejectedError(
            "Promotion does not apply to any item in the cart",
            REJECT_NO_ELIGIBLE_ITEMS,
            {"eligible_product_ids": list(promotion.eligible_product_ids or [])},
        )
    return result


def find_active_by_code(actor: ActorContext, code: str) -> Promotion:
    """Active promotion of the actor's vendor matching `code`, ignoring case."""
    normalized = (code or "").strip().upper()
    promo = None
    if normalized:
        promo = (
            scoped_query(Promotion, actor)
            .filter(func.upper(Promotion.code) == normalized, Promotion.is_active.is_(True))
            .first()
        )
    if promo is None:
        raise PromotionRejectedError("Promo code is invalid or inactive", REJECT_INVALID_CODE, {"code": normalized})
    return promo


def apply_promotion_code(actor: ActorContext, code: str, lines: Iterable[PricedLine]) -> tuple[Promotion, PromotionResult]:
    """
    Look up a code in the actor's vendor and evaluate it against the cart.

    Returns (promotion, result) only when the promotion qualifies.
    """
    promo = find_active_by_code(actor, code)
    return promo, require_qualifying(lines, promo)


def list_promotions(actor: ActorContext, active_only: bool = False) -> list[Promotion]:
    q = scoped_query(Promotion, actor)
    if active_only:
        q = q.filter(Promotion.is_active.is_(True))
    return q.order_by(Promotion.created_at.desc(), Promotion.id.desc()).all()


def _check_eligible_products(vendor_id: int, product_ids: list[int] | None) -> None:
    if not product_ids:
        return
    found = {
        row.id
        for row in db.session.query(Product.id).filter(
            Product.vendor_id == vendor_id, Product.id.in_(product_ids)
        )
    }
    missing = sorted(set(product_ids) - found)
    if missing:
        raise ValidationError(f"Unknown eligible products: {', '.join(str(m) for m in missing)}")


def _check_code_unique(vendor_id: int, code: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Promotion.id).filter(
        Promotion.vendor_id == vendor_id, func.upper(Promotion.code) == code.upper()
    )
    if exclude_id is not None:
        q = q.filter(Promotion.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Promo code {code.upper()} already exists")


def create_promotion(actor: ActorContext, data: dict) -> Promotion:
    vendor_id = require_tenant_id(actor)

    def _op() -> Promotion:
        _check_code_unique(vendor_id, data["code"])
        _check_eligible_products(vendor_id, data.get("eligible_product_ids"))
        promo = Promotion(
            vendor_id=vendor_id,
            code=data["code"].upper(),
            name=data["name"],
            promo_type=data["promo_type"],
            value=data["value"],
            min_spend=data.get("min_spend") or 0,
            eligible_product_ids=data.get("eligible_product_ids") or [],
            is_active=data.get("is_active", True),
        )
        db.session.add(promo)
        db.session.commit()
        return promo

    return run_with_retry(_op)


def update_promotion(actor: ActorContext, promo_id: int, data: dict) -> Promotion:
    vendor_id = require_tenant_id(actor)

    def _op() -> Promotion:
        promo = get_scoped_or_404(Promotion, promo_id, actor)
        if "code" in data:
            _check_code_unique(vendor_id, data["code"], exclude_id=promo.id)
        if "eligible_product_ids" in data:
            _check_eligible_products(vendor_id, data["eligible_product_ids"])
        if data.get("promo_type", promo.promo_type) == PERCENTAGE and data.get("value", promo.value) > 100:
            raise ValidationError("PERCENTAGE value cannot exceed 100")
        for key in PROMOTION_MUTABLE_FIELDS:
            if key in data:
                value = data[key]
                if key == "code":
                    value = value.upper()
                elif key == "min_spend":
                    value = value or 0
                elif key == "eligible_product_ids":
                    value = value or []
                setattr(promo, key, value)
        db.session.commit()
        return promo

    return run_with_retry(_op)


def toggle_promotion(actor: ActorContext, promo_id: int) -> Promotion:
    def _op() -> Promotion:
        promo = get_scoped_or_404(Promotion, promo_id, actor)
        promo.is_active = not promo.is_active
        db.session.commit()
        return promo

    return run_with_retry(_op)


def delete_promotion(actor: ActorContext, promo_id: int) -> None:
    def _op() -> None:
        promo = get_scoped_or_404(Promotion, promo_id, actor)
        db.session.delete(promo)
        db.session.commit()

    run_with_retry(_op)
