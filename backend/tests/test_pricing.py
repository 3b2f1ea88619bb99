"""
Pricing engine tests.

Amounts are whole Rupiah. Service charge (5%) is applied to the discounted
base, tax (10%) to base + service charge, each rounded half up.
"""

import pytest

from kasir.services.pricing_service import apply_bps, compute_totals, percent_of, totals_from_config
from kasir.validation import ValidationError


class TestComputeTotals:

    def test_no_discount(self):
        totals = compute_totals(56000)
        assert totals.service_charge == 2800
        assert totals.tax == 5880
        assert totals.total == 64680

    def test_with_discount(self):
        totals = compute_totals(56000, 5600)
        assert totals.base == 50400
        assert totals.service_charge == 2520
        assert totals.tax == 5292
        assert totals.total == 58212

    def test_parts_add_up(self):
        for subtotal, discount in [(1, 0), (15, 0), (12345, 678), (99999, 99999), (0, 0)]:
            t = compute_totals(subtotal, discount)
            assert t.total == t.subtotal - t.discount + t.service_charge + t.tax

    def test_empty_cart_is_zero(self):
        totals = compute_totals(0)
        assert totals.to_dict() == {
            "subtotal": 0, "discount": 0, "service_charge": 0, "tax": 0, "total": 0, "base": 0,
        }

    def test_rounds_half_up(self):
        # 5% of 10 = 0.5 -> 1; tax on 11 = 1.1 -> 1
        totals = compute_totals(10)
        assert totals.service_charge == 1
        assert totals.tax == 1
        assert totals.total == 12

    def test_discount_larger_than_subtotal_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals(1000, 1001)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals(-1)

    def test_non_integer_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals(100.5)

    def test_rates_from_config(self):
        totals = totals_from_config(10000, 0, {"SERVICE_CHARGE_BPS": 0, "TAX_RATE_BPS": 1100})
        assert totals.service_charge == 0
        assert totals.tax == 1100
        assert totals.total == 11100


class TestRoundingHelpers:

    def test_apply_bps(self):
        assert apply_bps(10000, 500) == 500
        assert apply_bps(1, 5000) == 1
        assert apply_bps(1, 4999) == 0

    def test_percent_of(self):
        assert percent_of(56000, 10) == 5600
        assert percent_of(15, 10) == 2
        assert percent_of(14, 10) == 1
