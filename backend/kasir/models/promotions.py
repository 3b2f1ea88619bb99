from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class Promotion(db.Model):
    """
    Promo code scoped to one vendor.

    Codes are stored upper-case and are unique per vendor, never globally.
    PERCENTAGE value is a whole percent (10 = 10%); FIXED value is an amount
    in the smallest currency unit. An empty eligible_product_ids list means
    the promotion applies to the whole cart.
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "code", name="uq_promotions_vendor_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)

    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    promo_type = db.Column(db.String(16), nullable=False)  # PERCENTAGE, FIXED
    value = db.Column(db.Integer, nullable=False)
    min_spend = db.Column(db.Integer, nullable=False, default=0)

    eligible_product_ids = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self):
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "code": self.code,
            "name": self.name,
            "promo_type": self.promo_type,
            "value": self.value,
            "min_spend": self.min_spend,
            "eligible_product_ids": list(self.eligible_product_ids or []),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
