from __future__ import annotations

from ..extensions import db
from kasir.time_utils import days_until, to_iso_date, to_utc_z

# A subscription ending within this many days is flagged as expiring
SUBSCRIPTION_WARNING_DAYS = 7


class Vendor(db.Model):
    """
    Multi-tenant root: every merchant account is a Vendor.

    All products, customers, promotions, transactions, saved orders and
    non-super-admin users belong to exactly one vendor (vendor_id FK).
    No data may cross vendor boundaries.

    Vendors are soft-disabled with status='inactive'; hard deletion goes
    through vendor_service.delete_vendor, which restricts or cascades
    explicitly.
    """
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    owner_name = db.Column(db.String(128), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    subscription_start = db.Column(db.Date, nullable=True)
    subscription_end = db.Column(db.Date, nullable=True)
    commission_rate_bps = db.Column(db.Integer, nullable=False, default=0)  # 500 = 5%

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def subscription_status(self) -> tuple[str, int | None]:
        days_left = days_until(self.subscription_end)
        if days_left is None:
            return "unknown", None
        if days_left < 0:
            return "expired", days_left
        if days_left < SUBSCRIPTION_WARNING_DAYS:
            return "expiring", days_left
        return "active", days_left

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        sub_status, days_left = self.subscription_status()
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "owner_name": self.owner_name,
            "logo_url": self.logo_url,
            "status": self.status,
            "subscription_start": to_iso_date(self.subscription_start),
            "subscription_end": to_iso_date(self.subscription_end),
            "subscription_status": sub_status,
            "days_left": days_left,
            "commission_rate_bps": self.commission_rate_bps,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class VendorCategory(db.Model):
    """Product category names, keyed per vendor."""
    __tablename__ = "vendor_categories"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "name", name="uq_vendor_categories_vendor_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("categories", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "name": self.name,
        }


class ReferenceSequence(db.Model):
    """
    Atomic per-vendor reference counters (TXN-000001, ORD-000001).
    """
    __tablename__ = "reference_sequences"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "kind", name="uq_reference_sequences_vendor_kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    kind = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
