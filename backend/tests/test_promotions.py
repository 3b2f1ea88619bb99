# Overview: Pytest coverage for promotion evaluation and promo code lookup.

from dataclasses import dataclass

import pytest

from kasir.services import promotion_service
from kasir.services.promotion_service import (
    REJECT_BELOW_MIN_SPEND,
    REJECT_INVALID_CODE,
    REJECT_NO_ELIGIBLE_ITEMS,
    PromotionRejectedError,
    evaluate_promotion,
)
from kasir.validation import ConflictError


@dataclass
class Line:
    product_id: int
    unit_price: int
    quantity: int


@dataclass
class Promo:
    promo_type: str
    value: int
    min_spend: int = 0
    eligible_product_ids: list = None


class TestEvaluatePromotion:

    def test_percentage_on_whole_cart(self):
        result = evaluate_promotion([Line(1, 28000, 2)], Promo("PERCENTAGE", 10))
        assert result.qualifies
        assert result.discount == 5600

    def test_fixed_is_capped_at_eligible_subtotal(self):
        result = evaluate_promotion([Line(1, 3000, 1)], Promo("FIXED", 5000))
        assert result.discount == 3000

    def test_below_min_spend_is_rejected_not_zero(self):
        result = evaluate_promotion([Line(1, 28000, 1)], Promo("PERCENTAGE", 10, min_spend=50000))
        assert not result.qualifies
        assert result.rejection == REJECT_BELOW_MIN_SPEND
        assert result.discount == 0

    def test_min_spend_boundary_qualifies(self):
        result = evaluate_promotion([Line(1, 25000, 2)], Promo("PERCENTAGE", 10, min_spend=50000))
        assert result.qualifies
        assert result.discount == 5000

    def test_eligible_items_only(self):
        lines = [Line(1, 28000, 1), Line(2, 32000, 1)]
        result = evaluate_promotion(lines, Promo("PERCENTAGE", 50, eligible_product_ids=[2]))
        assert result.eligible_subtotal == 32000
        assert result.discount == 16000

    def test_min_spend_uses_whole_cart(self):
        lines = [Line(1, 40000, 1), Line(2, 15000, 1)]
        promo = Promo("FIXED", 5000, min_spend=50000, eligible_product_ids=[2])
        assert evaluate_promotion(lines, promo).discount == 5000

    def test_no_eligible_items_rejected(self):
        result = evaluate_promotion([Line(1, 28000, 1)], Promo("FIXED", 5000, eligible_product_ids=[99]))
        assert result.rejection == REJECT_NO_ELIGIBLE_ITEMS

    def test_percentage_rounds_half_up(self):
        result = evaluate_promotion([Line(1, 15, 1)], Promo("PERCENTAGE", 10))
        assert result.discount == 2

    def test_require_qualifying_raises_with_reason(self):
        with pytest.raises(PromotionRejectedError) as exc:
            promotion_service.require_qualifying([Line(1, 100, 1)], Promo("FIXED", 50, min_spend=1000))
        assert exc.value.reason == REJECT_BELOW_MIN_SPEND
        assert exc.value.details == {"min_spend": 1000, "subtotal": 100}


class TestPromotionCodes:

    def test_code_lookup_ignores_case(self, db_session, actor_a, hemat10):
        promo = promotion_service.find_active_by_code(actor_a, "hemat10")
        assert promo.id == hemat10.id

    def test_unknown_code_rejected(self, db_session, actor_a, hemat10):
        with pytest.raises(PromotionRejectedError) as exc:
            promotion_service.find_active_by_code(actor_a, "NOPE")
        assert exc.value.reason == REJECT_INVALID_CODE

    def test_inactive_code_rejected(self, db_session, actor_a, hemat10):
        promotion_service.toggle_promotion(actor_a, hemat10.id)
        with pytest.raises(PromotionRejectedError):
            promotion_service.find_active_by_code(actor_a, "HEMAT10")

    def test_code_of_other_vendor_is_invalid(self, db_session, actor_b, hemat10):
        with pytest.raises(PromotionRejectedError) as exc:
            promotion_service.find_active_by_code(actor_b, "HEMAT10")
        assert exc.value.reason == REJECT_INVALID_CODE

    def test_duplicate_code_in_vendor_conflicts(self, db_session, actor_a, hemat10):
        with pytest.raises(ConflictError):
            promotion_service.create_promotion(
                actor_a, {"code": "hemat10", "name": "Lagi", "promo_type": "FIXED", "value": 1000}
            )

    def test_same_code_allowed_in_other_vendor(self, db_session, actor_b, hemat10):
        promo = promotion_service.create_promotion(
            actor_b, {"code": "HEMAT10", "name": "Burger hemat", "promo_type": "FIXED", "value": 1000}
        )
        assert promo.vendor_id == actor_b.vendor_id

    def test_list_active_only(self, db_session, actor_a, hemat10):
        promotion_service.create_promotion(
            actor_a, {"code": "OFF", "name": "Off", "promo_type": "FIXED", "value": 1000, "is_active": False}
        )
        assert [p.code for p in promotion_service.list_promotions(actor_a, active_only=True)] == ["HEMAT10"]
        assert len(promotion_service.list_promotions(actor_a)) == 2
