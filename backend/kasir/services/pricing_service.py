"""
Pricing Engine

Turns a cart subtotal and a discount into the amounts stored on a
transaction. Pure and deterministic; no database or request access.

Ordering is fixed and part of the contract:

    base           = subtotal - discount
    service_charge = 5% of base
    tax            = 10% of (base + service_charge)
    total          = base + service_charge + tax

All amounts are integers in the smallest currency unit. Each percentage
step rounds half up to a whole unit, so the stored parts always add up:
total == subtotal - discount + service_charge + tax.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..validation import ValidationError

DEFAULT_SERVICE_CHARGE_BPS = 500
DEFAULT_TAX_RATE_BPS = 1000
BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Totals:
    subtotal: int
    discount: int
    service_charge: int
    tax: int
    total: int

    @property
    def base(self) -> int:
        return self.subtotal - self.discount

    def to_dict(self) -> dict:
        data = asdict(self)
        data["base"] = self.base
        return data


def apply_bps(amount: int, bps: int) -> int:
    """amount * bps / 10000, rounded half up. Inputs must be non-negative."""
    return (amount * bps * 2 + BPS_DENOMINATOR) // (2 * BPS_DENOMINATOR)


def percent_of(amount: int, percent: int) -> int:
    """amount * percent / 100, rounded half up."""
    return apply_bps(amount, percent * 100)


def compute_totals(
    subtotal: int,
    discount: int = 0,
    *,
    service_charge_bps: int = DEFAULT_SERVICE_CHARGE_BPS,
    tax_rate_bps: int = DEFAULT_TAX_RATE_BPS,
) -> Totals:
    """
    Compute service charge, tax and total for a discounted subtotal.

    Raises ValidationError for negative inputs or a discount larger than the
    subtotal; promotion evaluation never produces either.
    """
    for label, value in (("subtotal", subtotal), ("discount", discount)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{label} must be an integer")
        if value < 0:
            raise ValidationError(f"{label} must be >= 0")
    if discount > subtotal:
        raise ValidationError("discount cannot exceed subtotal")
    if service_charge_bps < 0 or tax_rate_bps < 0:
        raise ValidationError("rates must be >= 0")

    base = subtotal - discount
    service_charge = apply_bps(base, service_charge_bps)
    tax_base = base + service_charge
    tax = apply_bps(tax_base, tax_rate_bps)

    return Totals(
        subtotal=subtotal,
        discount=discount,
        service_charge=service_charge,
        tax=tax,
        total=tax_base + tax,
    )


def totals_from_config(subtotal: int, discount: int, config) -> Totals:
    """compute_totals with rates taken from a Flask config mapping."""
    return compute_totals(
        subtotal,
        discount,
        service_charge_bps=int(config.get("SERVICE_CHARGE_BPS", DEFAULT_SERVICE_CHARGE_BPS)),
        tax_rate_bps=int(config.get("TAX_RATE_BPS", DEFAULT_TAX_RATE_BPS)),
    )
